"""Regla de próxima dosis de vacunas.

Para cada terna (mascota, producto, tipo) sólo la programación más reciente
es significativa: al guardar una vacuna con `proxima_dosis`, las demás filas
de la misma terna pierden la suya. La limpieza y la escritura van en la misma
transacción (la de la sesión), así dos altas concurrentes no dejan dos
próximas dosis pendientes.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import update

from .. import db
from .models import Vacuna


def limpiar_proximas_dosis(
    mascota_id: int,
    producto: str | None,
    tipo: str,
    *,
    excluir_id: int | None = None,
) -> int:
    """Pone en NULL la próxima dosis de las vacunas hermanas; devuelve cuántas."""
    stmt = (
        update(Vacuna)
        .where(Vacuna.mascota_id == mascota_id)
        .where(Vacuna.tipo == tipo)
        .where(Vacuna.proxima_dosis.is_not(None))
    )
    if producto is None:
        stmt = stmt.where(Vacuna.producto.is_(None))
    else:
        stmt = stmt.where(Vacuna.producto == producto)
    if excluir_id is not None:
        stmt = stmt.where(Vacuna.id != excluir_id)
    result = db.session.execute(
        stmt.values(proxima_dosis=None).execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def registrar_vacuna(
    *,
    mascota_id: int,
    fecha_aplicacion: date,
    tipo: str,
    producto: str | None = None,
    lote: str | None = None,
    proxima_dosis: date | None = None,
    observaciones: str | None = None,
) -> Vacuna:
    if proxima_dosis is not None:
        limpiar_proximas_dosis(mascota_id, producto, tipo)
    vacuna = Vacuna()
    vacuna.mascota_id = mascota_id
    vacuna.fecha_aplicacion = fecha_aplicacion
    vacuna.tipo = tipo
    vacuna.producto = producto
    vacuna.lote = lote
    vacuna.proxima_dosis = proxima_dosis
    vacuna.observaciones = observaciones
    db.session.add(vacuna)
    db.session.flush()
    return vacuna


def actualizar_vacuna(
    vacuna: Vacuna,
    *,
    fecha_aplicacion: date,
    tipo: str,
    producto: str | None = None,
    lote: str | None = None,
    proxima_dosis: date | None = None,
    observaciones: str | None = None,
) -> Vacuna:
    """Actualiza la vacuna; la limpieza de hermanas excluye a la propia fila."""
    if proxima_dosis is not None:
        limpiar_proximas_dosis(vacuna.mascota_id, producto, tipo, excluir_id=vacuna.id)
    vacuna.fecha_aplicacion = fecha_aplicacion
    vacuna.tipo = tipo
    vacuna.producto = producto
    vacuna.lote = lote
    vacuna.proxima_dosis = proxima_dosis
    vacuna.observaciones = observaciones
    db.session.flush()
    return vacuna


def proximas_dosis(desde: date | None = None) -> list[Vacuna]:
    """Vacunas con próxima dosis pendiente, ordenadas por fecha."""
    query = Vacuna.query.filter(Vacuna.proxima_dosis.is_not(None))
    if desde is not None:
        query = query.filter(Vacuna.proxima_dosis >= desde)
    return query.order_by(Vacuna.proxima_dosis, Vacuna.id).all()
