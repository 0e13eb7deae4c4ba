"""Evolución de esquema al iniciar la aplicación.

No es un framework de migraciones: no hay tabla de versiones ni
downgrades. Cada paso se describe a sí mismo con `check()` (¿ya está
aplicado?) consultando el catálogo de la base activa, y `apply()` sólo corre
si falta. Los pasos se ejecutan en orden fijo, cada `apply()` en su propia
transacción; el primer fallo aborta toda la secuencia y se propaga.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import click
from flask import Flask
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine

from .. import db

logger = logging.getLogger("schema.upgrade")


class SchemaUpgradeError(RuntimeError):
    def __init__(self, step: str, error: BaseException):
        super().__init__(f"Paso de esquema '{step}' falló: {error}")
        self.step = step
        self.error = error


class SchemaProbeFailure(SchemaUpgradeError):
    """Falló la consulta de catálogo de un paso."""


class SchemaMutationFailure(SchemaUpgradeError):
    """Falló el cambio estructural o el backfill de un paso."""


@dataclass
class StepResult:
    name: str
    applied: bool
    detail: dict[str, Any] = field(default_factory=dict)


# ===================== Consultas de catálogo =====================
# inspect() trabaja sobre el esquema por defecto de la conexión activa;
# se crea un Inspector nuevo en cada consulta para no leer caché vieja.
def table_exists(conn: Connection, table: str) -> bool:
    return inspect(conn).has_table(table)


def column_names(conn: Connection, table: str) -> set[str]:
    insp = inspect(conn)
    if not insp.has_table(table):
        return set()
    return {col["name"] for col in insp.get_columns(table)}


def has_unique(conn: Connection, table: str, columns: Sequence[str]) -> bool:
    """True si existe un índice único o constraint UNIQUE sobre exactamente `columns`."""
    insp = inspect(conn)
    if not insp.has_table(table):
        return False
    wanted = list(columns)
    for uc in insp.get_unique_constraints(table):
        if list(uc.get("column_names") or []) == wanted:
            return True
    for ix in insp.get_indexes(table):
        if ix.get("unique") and list(ix.get("column_names") or []) == wanted:
            return True
    return False


# ===================== Pasos =====================
class SchemaStep:
    name = ""
    description = ""

    def check(self, conn: Connection) -> bool:
        raise NotImplementedError

    def apply(self, conn: Connection) -> dict[str, Any] | None:
        raise NotImplementedError

    def __repr__(self):  # pragma: no cover
        return f"<SchemaStep {self.name}>"


class CreateTablesStep(SchemaStep):
    """Crea las tablas faltantes con la forma declarada en los modelos."""

    def __init__(self, name: str, tables: Sequence[str], description: str = ""):
        self.name = name
        self.tables = list(tables)
        self.description = description

    def _missing(self, conn: Connection) -> list[str]:
        return [t for t in self.tables if not table_exists(conn, t)]

    def check(self, conn: Connection) -> bool:
        return not self._missing(conn)

    def apply(self, conn: Connection) -> dict[str, Any]:
        missing = self._missing(conn)
        tables = [db.metadata.tables[t] for t in missing]
        db.metadata.create_all(bind=conn, tables=tables)
        return {"creadas": missing}


class AddColumnsStep(SchemaStep):
    """Agrega columnas (nulas o con default) y, opcionalmente, un índice único.

    `columns` es una lista de (nombre, DDL del tipo). Las filas existentes
    siguen siendo válidas porque ninguna columna nueva es NOT NULL sin default.
    """

    def __init__(
        self,
        name: str,
        table: str,
        columns: Iterable[tuple[str, str]],
        unique: tuple[str, Sequence[str]] | None = None,
        description: str = "",
    ):
        self.name = name
        self.table = table
        self.columns = list(columns)
        self.unique = unique
        self.description = description

    def check(self, conn: Connection) -> bool:
        cols = column_names(conn, self.table)
        if any(name not in cols for name, _ in self.columns):
            return False
        if self.unique is not None:
            return has_unique(conn, self.table, self.unique[1])
        return True

    def apply(self, conn: Connection) -> dict[str, Any]:
        cols = column_names(conn, self.table)
        added = []
        for name, ddl in self.columns:
            if name in cols:
                continue
            conn.exec_driver_sql(f"ALTER TABLE {self.table} ADD COLUMN {name} {ddl}")
            added.append(name)
        detail: dict[str, Any] = {"columnas": added}
        if self.unique is not None and not has_unique(conn, self.table, self.unique[1]):
            index_name, index_cols = self.unique
            conn.exec_driver_sql(
                f"CREATE UNIQUE INDEX {index_name} ON {self.table} ({', '.join(index_cols)})"
            )
            detail["indice"] = index_name
        return detail


class BackfillStep(SchemaStep):
    """Paso de datos: se considera aplicado cuando no queda nada por completar.

    Las subclases implementan `pending(conn)` (filas que el paso actualizaría)
    y `apply(conn)`. Sólo se tocan filas con el destino en NULL, así que
    repetir el paso no cambia nada.
    """

    def pending(self, conn: Connection) -> int:
        raise NotImplementedError

    def check(self, conn: Connection) -> bool:
        return self.pending(conn) == 0


# ===================== Runner =====================
def default_steps() -> list[SchemaStep]:
    from .pasos import SCHEMA_STEPS  # noqa: WPS433

    return list(SCHEMA_STEPS)


def run_schema_upgrade(
    engine: Engine | None = None,
    steps: Sequence[SchemaStep] | None = None,
) -> list[StepResult]:
    """Ejecuta los pasos pendientes en orden; el primer error aborta todo."""
    engine = engine or db.engine
    results: list[StepResult] = []
    for step in steps if steps is not None else default_steps():
        try:
            with engine.connect() as conn:
                done = step.check(conn)
        except Exception as exc:
            logger.error("Consulta de catálogo falló en %s: %s", step.name, exc)
            raise SchemaProbeFailure(step.name, exc) from exc
        if done:
            logger.debug("Paso %s ya aplicado", step.name)
            results.append(StepResult(step.name, False))
            continue
        try:
            with engine.begin() as conn:
                detail = step.apply(conn) or {}
        except Exception as exc:
            logger.error("Paso %s falló; arranque abortado: %s", step.name, exc)
            raise SchemaMutationFailure(step.name, exc) from exc
        if detail.get("sin_coincidencia"):
            logger.warning(
                "Paso %s: %s fila(s) sin coincidencia quedaron en NULL",
                step.name,
                detail["sin_coincidencia"],
            )
        logger.info("Paso %s aplicado %s", step.name, detail)
        results.append(StepResult(step.name, True, detail))
    return results


def register_cli(app: Flask) -> None:
    @app.cli.command("upgrade-schema")
    def upgrade_schema_command():
        """Aplica los pasos de esquema pendientes e informa cada uno."""
        for result in run_schema_upgrade():
            estado = "aplicado" if result.applied else "sin cambios"
            extra = f" {result.detail}" if result.detail else ""
            click.echo(f"[{estado}] {result.name}{extra}")
