from flask import Blueprint, render_template

from .. import db
from ..clientes.models import Cliente
from ..historia.models import HistoriaClinica
from ..mascotas.models import Mascota
from ..turnos.models import Turno
from ..usuarios.models import Usuario
from ..vacunas.models import Vacuna

core_bp = Blueprint(
    "core",
    __name__,
    template_folder=".",
    static_folder="static",
    static_url_path="/core/static",
)


@core_bp.route("/")
def index():
    counts = {
        nombre: db.session.query(model).count()
        for nombre, model in (
            ("clientes", Cliente),
            ("mascotas", Mascota),
            ("usuarios", Usuario),
            ("historias", HistoriaClinica),
            ("turnos", Turno),
            ("vacunas", Vacuna),
        )
    }
    return render_template("core/index.html", counts=counts)
