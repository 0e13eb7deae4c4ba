"""Pasos de esquema en el orden en que deben aplicarse.

El orden importa: cada backfill lee columnas o tablas creadas por pasos
anteriores (p. ej. el vínculo raza -> especie debe existir y estar
completo antes de vincular mascotas con razas).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection

# Los modelos deben estar registrados en db.metadata antes de crear tablas
from ..clientes import models as _clientes_models  # noqa: F401
from ..historia import models as _historia_models  # noqa: F401
from ..historia.adjuntos import NOMBRE_POR_DEFECTO
from ..mascotas import models as _mascotas_models  # noqa: F401
from ..turnos import models as _turnos_models  # noqa: F401
from ..usuarios import models as _usuarios_models  # noqa: F401
from ..vacunas import models as _vacunas_models  # noqa: F401
from .upgrade import AddColumnsStep, BackfillStep, CreateTablesStep, SchemaStep


def _igual(a: str, b: str) -> str:
    # Igualdad de nombres tolerante a mayúsculas y espacios de borde
    return f"LOWER(TRIM({a})) = LOWER(TRIM({b}))"


class DocumentosLegadosBackfill(BackfillStep):
    """Refleja cada adjunto legado (archivo_nombre/archivo_path) como documento."""

    name = "historia_clinica_documentos_backfill"
    description = "Copia el adjunto único heredado a historia_clinica_documentos"

    _candidatos_sql = text(
        """
        SELECT h.id, h.archivo_nombre, h.archivo_path
          FROM historia_clinica h
         WHERE h.archivo_path IS NOT NULL
           AND h.archivo_path <> ''
           AND NOT EXISTS (
               SELECT 1 FROM historia_clinica_documentos d
                WHERE d.ruta = h.archivo_path
           )
         ORDER BY h.id
        """
    )

    def pending(self, conn: Connection) -> int:
        return len(conn.execute(self._candidatos_sql).all())

    def apply(self, conn: Connection) -> dict[str, Any]:
        ahora = datetime.utcnow()
        copiadas = 0
        vistas: set[str] = set()
        for historia_id, nombre, ruta in conn.execute(self._candidatos_sql).all():
            # Dos historias con la misma ruta legada: sólo la primera la conserva
            if ruta in vistas:
                continue
            vistas.add(ruta)
            conn.execute(
                text(
                    """
                    INSERT INTO historia_clinica_documentos
                        (historia_id, nombre_original, ruta, creado_en)
                    VALUES (:historia_id, :nombre, :ruta, :creado_en)
                    """
                ),
                {
                    "historia_id": historia_id,
                    "nombre": (nombre or "").strip() or NOMBRE_POR_DEFECTO,
                    "ruta": ruta,
                    "creado_en": ahora,
                },
            )
            copiadas += 1
        return {"copiadas": copiadas}


class RazasEspecieBackfill(BackfillStep):
    """Vincula razas sin especie usando el texto libre de las mascotas.

    Una raza se vincula a la especie cuando alguna mascota tiene esa raza y
    una especie presente en el catálogo. Si el texto apunta a más de una
    especie la raza queda en NULL (ambigua), igual que si no hay coincidencia.
    """

    name = "mascotas_razas_backfill"
    description = "Completa mascotas_razas.especie_id por igualdad de nombre"

    _candidatos_sql = text(
        f"""
        SELECT r.id, r.nombre, MIN(e.id), COUNT(DISTINCT e.id)
          FROM mascotas_razas r
          JOIN mascotas m ON {_igual("m.raza", "r.nombre")}
          JOIN mascotas_especies e ON {_igual("e.nombre", "m.especie")}
         WHERE r.especie_id IS NULL
         GROUP BY r.id, r.nombre
         ORDER BY r.id
        """
    )

    def _vinculables(self, conn: Connection) -> list[tuple[int, int]]:
        vinculos: list[tuple[int, int]] = []
        tomados: set[tuple[str, int]] = set()
        for raza_id, nombre, especie_id, especies in conn.execute(self._candidatos_sql).all():
            if especies != 1:
                continue
            par = (nombre, especie_id)
            existe = conn.execute(
                text("SELECT 1 FROM mascotas_razas WHERE nombre = :nombre AND especie_id = :especie"),
                {"nombre": nombre, "especie": especie_id},
            ).first()
            # El par (nombre, especie) es único: no duplicar uno ya vinculado
            if existe is not None or par in tomados:
                continue
            tomados.add(par)
            vinculos.append((raza_id, especie_id))
        return vinculos

    def pending(self, conn: Connection) -> int:
        return len(self._vinculables(conn))

    def apply(self, conn: Connection) -> dict[str, Any]:
        vinculos = self._vinculables(conn)
        for raza_id, especie_id in vinculos:
            conn.execute(
                text(
                    "UPDATE mascotas_razas SET especie_id = :especie "
                    "WHERE id = :id AND especie_id IS NULL"
                ),
                {"especie": especie_id, "id": raza_id},
            )
        sin_vinculo = conn.execute(
            text("SELECT COUNT(*) FROM mascotas_razas WHERE especie_id IS NULL")
        ).scalar_one()
        return {"vinculadas": len(vinculos), "sin_coincidencia": sin_vinculo}


class MascotasCatalogoBackfill(BackfillStep):
    """Completa mascotas.especie_id y mascotas.raza_id desde el texto libre."""

    name = "mascotas_backfill"
    description = "Vincula mascotas con especie/raza del catálogo por nombre"

    _especies_sql = text(
        f"""
        SELECT m.id, MIN(e.id)
          FROM mascotas m
          JOIN mascotas_especies e ON {_igual("e.nombre", "m.especie")}
         WHERE m.especie_id IS NULL
         GROUP BY m.id
        """
    )
    _razas_sql = text(
        f"""
        SELECT m.id, MIN(r.id)
          FROM mascotas m
          JOIN mascotas_razas r
            ON {_igual("r.nombre", "m.raza")}
           AND r.especie_id = m.especie_id
         WHERE m.raza_id IS NULL
         GROUP BY m.id
        """
    )

    def pending(self, conn: Connection) -> int:
        especies = len(conn.execute(self._especies_sql).all())
        razas = len(conn.execute(self._razas_sql).all())
        return especies + razas

    def apply(self, conn: Connection) -> dict[str, Any]:
        especies = conn.execute(self._especies_sql).all()
        for mascota_id, especie_id in especies:
            conn.execute(
                text(
                    "UPDATE mascotas SET especie_id = :especie "
                    "WHERE id = :id AND especie_id IS NULL"
                ),
                {"especie": especie_id, "id": mascota_id},
            )
        # Después de las especies: la raza se busca dentro de la especie vinculada
        razas = conn.execute(self._razas_sql).all()
        for mascota_id, raza_id in razas:
            conn.execute(
                text("UPDATE mascotas SET raza_id = :raza WHERE id = :id AND raza_id IS NULL"),
                {"raza": raza_id, "id": mascota_id},
            )
        sin_coincidencia = conn.execute(
            text(
                "SELECT COUNT(*) FROM mascotas "
                "WHERE especie_id IS NULL AND TRIM(COALESCE(especie, '')) <> ''"
            )
        ).scalar_one()
        return {
            "especies": len(especies),
            "razas": len(razas),
            "sin_coincidencia": sin_coincidencia,
        }


SCHEMA_STEPS: list[SchemaStep] = [
    CreateTablesStep(
        "mascotas_especies_tabla",
        ["mascotas_especies"],
        description="Catálogo de especies",
    ),
    CreateTablesStep(
        "mascotas_razas_tabla",
        ["mascotas_razas"],
        description="Catálogo de razas",
    ),
    CreateTablesStep(
        "tablas_base",
        ["clientes", "mascotas", "usuarios", "historia_clinica", "turnos"],
        description="Tablas originales de la aplicación",
    ),
    AddColumnsStep(
        "historia_clinica_archivo",
        "historia_clinica",
        [("archivo_nombre", "VARCHAR(255)"), ("archivo_path", "VARCHAR(255)")],
        description="Par de adjunto único (legado)",
    ),
    AddColumnsStep(
        "historia_clinica_observaciones",
        "historia_clinica",
        [("observaciones", "TEXT")],
    ),
    CreateTablesStep(
        "historia_clinica_documentos_tabla",
        ["historia_clinica_documentos"],
        description="Documentos PDF por historia (muchos a uno, cascada)",
    ),
    DocumentosLegadosBackfill(),
    CreateTablesStep("vacunas_tabla", ["vacunas"]),
    AddColumnsStep(
        "vacunas_producto_proxima_dosis",
        "vacunas",
        [("producto", "VARCHAR(150)"), ("proxima_dosis", "DATE")],
    ),
    AddColumnsStep(
        "mascotas_razas_especie",
        "mascotas_razas",
        [
            (
                "especie_id",
                "INTEGER REFERENCES mascotas_especies(id) ON DELETE CASCADE",
            )
        ],
        unique=("uq_mascotas_razas_nombre_especie", ["nombre", "especie_id"]),
        description="Vínculo explícito raza -> especie",
    ),
    RazasEspecieBackfill(),
    AddColumnsStep(
        "mascotas_especie_raza",
        "mascotas",
        [
            ("especie_id", "INTEGER REFERENCES mascotas_especies(id) ON DELETE SET NULL"),
            ("raza_id", "INTEGER REFERENCES mascotas_razas(id) ON DELETE SET NULL"),
        ],
    ),
    MascotasCatalogoBackfill(),
]
