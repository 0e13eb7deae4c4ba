import logging
from contextlib import contextmanager

from flask import abort
from sqlalchemy.exc import OperationalError

from . import db

logger = logging.getLogger("db.lock")


def get_or_404(model, ident):
    """Session.get que responde 404 si el registro no existe."""
    obj = db.session.get(model, ident)
    if obj is None:
        abort(404)
    return obj


def is_sqlite_busy(error: BaseException) -> bool:
    msg = str(error).lower()
    return "database is locked" in msg or "database table is locked" in msg or "sqlite_busy" in msg


@contextmanager
def transactional():
    """Unidad de trabajo de una ruta: commit al salir, rollback ante error.

    Uso:
        with transactional():
            # cambios sobre db.session
            ...

    No se reintenta: la espera ante bloqueo la hace SQLite (busy_timeout)
    antes de que la transacción quede inválida. Si el plazo se agota, el
    rollback descarta los cambios pendientes y el error se propaga, así la
    ruta nunca informa éxito de una escritura perdida.
    """
    try:
        yield
        db.session.commit()
    except OperationalError as exc:
        db.session.rollback()
        if is_sqlite_busy(exc):
            logger.error("Base ocupada, escritura descartada: %s", exc)
        raise
    except Exception:
        db.session.rollback()
        raise
