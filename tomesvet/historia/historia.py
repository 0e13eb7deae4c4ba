from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from .. import db
from ..mascotas.models import Mascota
from ..utils_db import get_or_404, transactional
from .adjuntos import PdfAdjunto, adjuntar_documento, adjuntos_de_historia
from .forms import DocumentoForm, HistoriaForm
from .models import HistoriaClinica
from .services import crear_historia, eliminar_historia

historia_bp = Blueprint("historia", __name__, template_folder=".")


def _mascota_choices() -> list[tuple[int, str]]:
    return [(m.id, m.nombre) for m in Mascota.query.order_by(Mascota.nombre).all()]


@historia_bp.route("/", methods=["GET", "POST"])
def listar():
    form = HistoriaForm()
    form.mascota_id.choices = _mascota_choices()
    if form.validate_on_submit():
        # Errores de adjunto (AdjuntoError) los atiende el handler global
        with transactional():
            historia = crear_historia(
                mascota_id=form.mascota_id.data,
                fecha=form.fecha.data,
                motivo=form.motivo.data,
                diagnostico=form.diagnostico.data,
                tratamiento=form.tratamiento.data,
                observaciones=form.observaciones.data,
                adjunto=PdfAdjunto.desde_form(request.form),
            )
        current_app.logger.info("Historia %s creada", historia.id)
        flash("Historia clínica registrada", "success")
        return redirect(url_for("historia.listar"))
    historias = (
        db.session.query(HistoriaClinica, Mascota.nombre.label("mascota_nombre"))
        .join(Mascota, Mascota.id == HistoriaClinica.mascota_id)
        .order_by(HistoriaClinica.fecha.desc(), HistoriaClinica.id.desc())
        .all()
    )
    return render_template("historia/lista.html", historias=historias, form=form)


@historia_bp.route("/<int:historia_id>")
def visualizar(historia_id: int):
    historia = get_or_404(HistoriaClinica, historia_id)
    return render_template(
        "historia/visualizar.html",
        historia=historia,
        adjuntos=adjuntos_de_historia(historia),
        form=DocumentoForm(formdata=None),
    )


@historia_bp.route("/<int:historia_id>/documentos", methods=["POST"])
def agregar_documento(historia_id: int):
    form = DocumentoForm()
    if not form.validate_on_submit():
        flash("Formulario inválido", "danger")
        return redirect(url_for("historia.visualizar", historia_id=historia_id))
    with transactional():
        documento = adjuntar_documento(
            historia_id, PdfAdjunto.desde_form(request.form), obligatorio=True
        )
    current_app.logger.info("Documento %s agregado a historia %s", documento.id, historia_id)
    flash("Documento adjuntado", "success")
    return redirect(url_for("historia.visualizar", historia_id=historia_id))


@historia_bp.route("/<int:historia_id>/eliminar", methods=["POST"])
def eliminar(historia_id: int):
    historia = get_or_404(HistoriaClinica, historia_id)
    with transactional():
        eliminar_historia(historia)
    flash("Historia clínica eliminada", "info")
    return redirect(url_for("historia.listar"))
