from flask import Blueprint, flash, redirect, render_template, url_for

from .. import db
from ..clientes.models import Cliente
from ..utils_db import get_or_404, transactional
from .forms import EspecieForm, MascotaForm, RazaForm
from .models import Especie, Mascota, Raza
from .services import buscar_especie, vincular_catalogo

mascotas_bp = Blueprint("mascotas", __name__, template_folder=".")


def _cliente_choices() -> list[tuple[int, str]]:
    return [(c.id, c.nombre) for c in Cliente.query.order_by(Cliente.nombre).all()]


def _especie_choices() -> list[tuple[int, str]]:
    return [(e.id, e.nombre) for e in Especie.query.order_by(Especie.nombre).all()]


def _guardar(mascota: Mascota, form: MascotaForm) -> None:
    mascota.nombre = form.nombre.data
    mascota.especie = (form.especie.data or "").strip() or None
    mascota.raza = (form.raza.data or "").strip() or None
    mascota.fecha_nacimiento = form.fecha_nacimiento.data
    mascota.cliente_id = form.cliente_id.data
    vincular_catalogo(mascota)


@mascotas_bp.route("/", methods=["GET", "POST"])
def listar():
    form = MascotaForm()
    form.cliente_id.choices = _cliente_choices()
    if form.validate_on_submit():
        mascota = Mascota()
        with transactional():
            _guardar(mascota, form)
            db.session.add(mascota)
        flash("Mascota registrada", "success")
        return redirect(url_for("mascotas.listar"))
    mascotas = (
        db.session.query(Mascota, Cliente.nombre.label("cliente_nombre"))
        .join(Cliente, Cliente.id == Mascota.cliente_id)
        .order_by(Mascota.id.desc())
        .all()
    )
    return render_template(
        "mascotas/lista.html",
        mascotas=mascotas,
        form=form,
        especies=Especie.query.order_by(Especie.nombre).all(),
    )


@mascotas_bp.route("/<int:mascota_id>/editar", methods=["GET", "POST"])
def editar(mascota_id: int):
    mascota = get_or_404(Mascota, mascota_id)
    form = MascotaForm(obj=mascota)
    form.cliente_id.choices = _cliente_choices()
    if form.validate_on_submit():
        with transactional():
            _guardar(mascota, form)
        flash("Mascota actualizada", "success")
        return redirect(url_for("mascotas.listar"))
    return render_template("mascotas/form.html", form=form, mascota=mascota)


# ----------------- CATÁLOGO -----------------
@mascotas_bp.route("/especies", methods=["GET", "POST"])
def especies():
    form = EspecieForm()
    raza_form = RazaForm(formdata=None, prefix="raza")
    raza_form.especie_id.choices = _especie_choices()
    if form.validate_on_submit():
        nombre = form.nombre.data.strip()
        if buscar_especie(nombre) is not None:
            flash("La especie ya existe", "warning")
        else:
            especie = Especie()
            especie.nombre = nombre
            with transactional():
                db.session.add(especie)
            flash("Especie agregada", "success")
        return redirect(url_for("mascotas.especies"))
    catalogo = Especie.query.order_by(Especie.nombre).all()
    return render_template(
        "mascotas/especies.html", especies=catalogo, form=form, raza_form=raza_form
    )


@mascotas_bp.route("/razas", methods=["POST"])
def nueva_raza():
    form = RazaForm(prefix="raza")
    form.especie_id.choices = _especie_choices()
    if not form.validate_on_submit():
        flash("Datos de raza inválidos", "danger")
        return redirect(url_for("mascotas.especies"))
    nombre = form.nombre.data.strip()
    existente = Raza.query.filter_by(nombre=nombre, especie_id=form.especie_id.data).first()
    if existente is not None:
        flash("La raza ya existe para esa especie", "warning")
    else:
        raza = Raza()
        raza.nombre = nombre
        raza.especie_id = form.especie_id.data
        with transactional():
            db.session.add(raza)
        flash("Raza agregada", "success")
    return redirect(url_for("mascotas.especies"))
