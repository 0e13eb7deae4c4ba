"""Servicios de mascotas: vínculo entre texto libre y catálogo."""

from __future__ import annotations

from sqlalchemy import func

from .models import Especie, Mascota, Raza


def _normalizar(texto: str | None) -> str:
    return (texto or "").strip().lower()


def buscar_especie(nombre: str | None) -> Especie | None:
    clave = _normalizar(nombre)
    if not clave:
        return None
    return Especie.query.filter(func.lower(func.trim(Especie.nombre)) == clave).first()


def buscar_raza(nombre: str | None, especie: Especie | None) -> Raza | None:
    clave = _normalizar(nombre)
    if not clave or especie is None:
        return None
    return (
        Raza.query.filter(func.lower(func.trim(Raza.nombre)) == clave)
        .filter(Raza.especie_id == especie.id)
        .first()
    )


def vincular_catalogo(mascota: Mascota) -> None:
    """Completa especie_id / raza_id a partir del texto libre.

    Sin coincidencia el vínculo queda en NULL; nunca se inventa una entrada
    de catálogo.
    """
    especie = buscar_especie(mascota.especie)
    raza = buscar_raza(mascota.raza, especie)
    mascota.especie_id = especie.id if especie else None
    mascota.raza_id = raza.id if raza else None
