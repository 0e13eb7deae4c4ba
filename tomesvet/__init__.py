import os
import sqlite3
import logging

from flask import Flask, render_template, send_from_directory
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from sqlalchemy import event
from sqlalchemy.engine import Engine

"""Aplicación principal y fábrica Flask.

Los blueprints se importan dentro de create_app para evitar ciclos de
importación con los modelos. La evolución de esquema corre antes de que la
aplicación quede lista para atender pedidos.
"""


# Extensiones globales (inicializadas en create_app)
db = SQLAlchemy()
csrf = CSRFProtect()


def _install_sqlite_pragmas(engine: Engine, busy_timeout_ms: int) -> None:
    """PRAGMAs de SQLite para toda conexión nueva del engine.

    foreign_keys=ON es obligatorio: los borrados en cascada de documentos,
    vacunas y razas dependen de la integridad referencial del motor.
    busy_timeout es la única espera ante bloqueo: el motor reintenta antes de
    invalidar la transacción; agotado el plazo el OperationalError se propaga.
    """

    @event.listens_for(engine, "connect")
    def _sqlite_pragmas_on_connect(dbapi_connection, connection_record):  # pragma: no cover - infra
        if isinstance(dbapi_connection, sqlite3.Connection):
            cur = dbapi_connection.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL")
            except sqlite3.OperationalError:
                # Bases en memoria no aceptan WAL
                pass
            cur.execute("PRAGMA foreign_keys=ON")
            cur.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            cur.execute("PRAGMA synchronous=NORMAL")
            cur.close()


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    for name in ("schema.upgrade", "adjuntos", "db.lock"):
        logging.getLogger(name).setLevel(level)


def _register_error_pages(app: Flask) -> None:
    from .historia.adjuntos import AdjuntoError  # noqa: WPS433

    clinic = app.config.get("CLINIC_NAME", "TomesVet")

    @app.errorhandler(404)
    def not_found(error):
        return (
            render_template(
                "core/error.html",
                title=f"Página no encontrada | {clinic}",
                heading="Página no encontrada",
                message="La ruta solicitada no existe. Verifica la dirección e intenta nuevamente.",
            ),
            404,
        )

    @app.errorhandler(500)
    def server_error(error):
        app.logger.error("Error inesperado: %s", getattr(error, "original_exception", error))
        db.session.rollback()
        return (
            render_template(
                "core/error.html",
                title=f"Error del servidor | {clinic}",
                heading="Ocurrió un problema",
                message=(
                    "No pudimos completar la solicitud. Intenta nuevamente "
                    "o revisa los registros del servidor."
                ),
            ),
            500,
        )

    @app.errorhandler(AdjuntoError)
    def adjunto_error(error: AdjuntoError):
        # Ninguna fila parcial debe quedar pendiente en la sesión
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error("Fallo al guardar adjunto: %s", error)
        else:
            app.logger.info("Adjunto rechazado: %s", error)
        return (
            render_template(
                "core/error.html",
                title=f"Adjunto inválido | {clinic}",
                heading="No se pudo guardar el documento",
                message=str(error),
            ),
            error.status_code,
        )


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    # Config base
    app.config.from_object("config.Config")

    # Override opcional
    if config_object:
        app.config.from_object(config_object)

    _configure_logging(app)

    # Garantiza la carpeta instance y la carpeta de adjuntos (recursiva)
    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    db.init_app(app)
    csrf.init_app(app)
    with app.app_context():
        _install_sqlite_pragmas(db.engine, app.config.get("SQLITE_BUSY_TIMEOUT_MS", 5000))

    # Amplía la búsqueda de templates a la raíz del paquete para permitir
    # rutas como 'core/base.html' y 'modulo/archivo.html'.
    from jinja2 import ChoiceLoader, FileSystemLoader

    existing_loader = app.jinja_env.loader
    loaders: list[object] = []
    if existing_loader is not None:
        loaders.append(existing_loader)
    loaders.append(FileSystemLoader(app.root_path))
    app.jinja_env.loader = ChoiceLoader(loaders)  # type: ignore[assignment]

    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")

    # Blueprints importados tardíamente
    from .clientes.clientes import clientes_bp  # noqa: WPS433
    from .core.core import core_bp  # noqa: WPS433
    from .historia.historia import historia_bp  # noqa: WPS433
    from .mascotas.mascotas import mascotas_bp  # noqa: WPS433
    from .turnos.turnos import turnos_bp  # noqa: WPS433
    from .usuarios.usuarios import usuarios_bp  # noqa: WPS433
    from .vacunas.vacunas import vacunas_bp  # noqa: WPS433

    app.register_blueprint(core_bp)
    app.register_blueprint(clientes_bp, url_prefix="/clientes")
    app.register_blueprint(mascotas_bp, url_prefix="/mascotas")
    app.register_blueprint(usuarios_bp, url_prefix="/usuarios")
    app.register_blueprint(historia_bp, url_prefix="/historia-clinica")
    app.register_blueprint(vacunas_bp, url_prefix="/vacunas")
    app.register_blueprint(turnos_bp, url_prefix="/turnos")

    _register_error_pages(app)

    @app.context_processor
    def inject_clinic_name():
        return {"clinic_name": app.config.get("CLINIC_NAME", "TomesVet")}

    # Evolución de esquema antes de aceptar tráfico. Cualquier fallo se
    # propaga: no se arranca con un esquema migrado a medias.
    from .esquema.upgrade import register_cli, run_schema_upgrade  # noqa: WPS433

    register_cli(app)
    if app.config.get("AUTO_SCHEMA_UPGRADE"):
        with app.app_context():
            run_schema_upgrade()

    @app.route(app.config["UPLOAD_URL_PREFIX"].rstrip("/") + "/<path:nombre>")
    def uploaded_pdf(nombre: str):
        return send_from_directory(
            app.config["UPLOAD_FOLDER"], nombre, mimetype="application/pdf"
        )

    @app.route("/health")
    def health():  # pragma: no cover - endpoint trivial
        return {"status": "ok"}

    return app
