from datetime import date

from flask import Blueprint, flash, redirect, render_template, url_for

from .. import db
from ..mascotas.models import Mascota
from ..utils_db import get_or_404, transactional
from .forms import VacunaForm
from .models import Vacuna
from .services import actualizar_vacuna, proximas_dosis, registrar_vacuna

vacunas_bp = Blueprint("vacunas", __name__, template_folder=".")


def _mascota_choices() -> list[tuple[int, str]]:
    return [(m.id, m.nombre) for m in Mascota.query.order_by(Mascota.nombre).all()]


@vacunas_bp.route("/", methods=["GET", "POST"])
def listar():
    form = VacunaForm()
    form.mascota_id.choices = _mascota_choices()
    if form.validate_on_submit():
        with transactional():
            registrar_vacuna(mascota_id=form.mascota_id.data, **form.datos())
        flash("Vacuna registrada", "success")
        return redirect(url_for("vacunas.listar"))
    vacunas = (
        db.session.query(Vacuna, Mascota.nombre.label("mascota_nombre"))
        .join(Mascota, Mascota.id == Vacuna.mascota_id)
        .order_by(Vacuna.fecha_aplicacion.desc(), Vacuna.id.desc())
        .all()
    )
    return render_template(
        "vacunas/lista.html",
        vacunas=vacunas,
        pendientes=proximas_dosis(desde=date.today()),
        form=form,
    )


@vacunas_bp.route("/<int:vacuna_id>/editar", methods=["GET", "POST"])
def editar(vacuna_id: int):
    vacuna = get_or_404(Vacuna, vacuna_id)
    form = VacunaForm(obj=vacuna)
    form.mascota_id.choices = _mascota_choices()
    if form.validate_on_submit():
        # La mascota de una vacuna no cambia al editar
        with transactional():
            actualizar_vacuna(vacuna, **form.datos())
        flash("Vacuna actualizada", "success")
        return redirect(url_for("vacunas.listar"))
    return render_template("vacunas/form.html", form=form, vacuna=vacuna)
