import base64
import os
import sys
import tempfile

import pytest

# Asegura la raíz del proyecto (padre de tests) en sys.path antes de importar la app
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tomesvet import create_app, db  # noqa: E402

PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"
PDF_DATA_URL = "data:application/pdf;base64," + base64.b64encode(PDF_BYTES).decode("ascii")


def make_config(instance: str):
    class TestConfig:
        TESTING = True
        SECRET_KEY = "test"
        WTF_CSRF_ENABLED = False
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + os.path.join(instance, "tomesvet.db")
        SQLALCHEMY_TRACK_MODIFICATIONS = False
        UPLOAD_FOLDER = os.path.join(instance, "uploads", "historia-clinica")
        AUTO_SCHEMA_UPGRADE = True
        SQLITE_BUSY_TIMEOUT_MS = 1000

    return TestConfig


def dispose(flask_app) -> None:
    # Libera conexiones para evitar lock en Windows al borrar el directorio
    with flask_app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def instance_dir():
    tmpdir = tempfile.TemporaryDirectory()
    yield tmpdir.name
    tmpdir.cleanup()


@pytest.fixture()
def app(instance_dir):
    # Base nueva: la evolución de esquema crea todas las tablas al iniciar
    flask_app = create_app(make_config(instance_dir))
    yield flask_app
    dispose(flask_app)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


@pytest.fixture()
def upload_dir(app):
    return app.config["UPLOAD_FOLDER"]


@pytest.fixture()
def mascota(app):
    """Cliente + mascota mínimos; devuelve el id de la mascota."""
    from tomesvet.clientes.models import Cliente
    from tomesvet.mascotas.models import Mascota

    with app.app_context():
        cliente = Cliente()
        cliente.nombre = "Ana Pérez"
        db.session.add(cliente)
        db.session.flush()
        m = Mascota()
        m.nombre = "Firulais"
        m.especie = "Perro"
        m.raza = "Caniche"
        m.cliente_id = cliente.id
        db.session.add(m)
        db.session.commit()
        return m.id
