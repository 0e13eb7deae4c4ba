"""Servicios de historia clínica (alta y baja con sus documentos)."""

from __future__ import annotations

from datetime import date

from .. import db
from .adjuntos import PdfAdjunto, adjuntar_documento
from .models import HistoriaClinica


def crear_historia(
    *,
    mascota_id: int,
    fecha: date,
    motivo: str | None = None,
    diagnostico: str | None = None,
    tratamiento: str | None = None,
    observaciones: str | None = None,
    adjunto: PdfAdjunto | None = None,
) -> HistoriaClinica:
    """Crea la historia y, si viene, su primer documento.

    Sin commit: si el adjunto es inválido la excepción sube y la transacción
    de la ruta descarta también la historia.
    """
    historia = HistoriaClinica()
    historia.mascota_id = mascota_id
    historia.fecha = fecha
    historia.motivo = motivo
    historia.diagnostico = diagnostico
    historia.tratamiento = tratamiento
    historia.observaciones = observaciones
    db.session.add(historia)
    db.session.flush()  # id necesario para vincular el documento
    adjuntar_documento(historia.id, adjunto, obligatorio=False)
    return historia


def eliminar_historia(historia: HistoriaClinica) -> None:
    # Los documentos se borran por ON DELETE CASCADE; los PDF quedan en disco
    db.session.delete(historia)
