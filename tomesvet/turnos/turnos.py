from flask import Blueprint, flash, redirect, render_template, url_for
from flask_wtf import FlaskForm
from wtforms import DateField, SelectField, StringField, SubmitField, TimeField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from .. import db
from ..clientes.models import Cliente
from ..mascotas.models import Mascota
from ..utils_db import transactional
from .models import Turno

turnos_bp = Blueprint("turnos", __name__, template_folder=".")


class TurnoForm(FlaskForm):
    cliente_id = SelectField("Cliente", coerce=int, validators=[DataRequired()])
    mascota_id = SelectField("Mascota", coerce=int, validators=[DataRequired()])
    fecha = DateField("Fecha", validators=[DataRequired()])
    hora = TimeField("Hora", validators=[DataRequired()])
    motivo = StringField("Motivo", validators=[Optional(), Length(max=255)])
    submit = SubmitField("Agendar")

    def validate_mascota_id(self, field):
        mascota = db.session.get(Mascota, field.data)
        if mascota is None or mascota.cliente_id != self.cliente_id.data:
            raise ValidationError("La mascota no pertenece al cliente seleccionado")


@turnos_bp.route("/", methods=["GET", "POST"])
def listar():
    form = TurnoForm()
    form.cliente_id.choices = [
        (c.id, c.nombre) for c in Cliente.query.order_by(Cliente.nombre).all()
    ]
    mascotas = (
        db.session.query(Mascota, Cliente.nombre.label("cliente_nombre"))
        .join(Cliente, Cliente.id == Mascota.cliente_id)
        .order_by(Mascota.nombre)
        .all()
    )
    form.mascota_id.choices = [(m.id, f"{m.nombre} ({cliente})") for m, cliente in mascotas]
    if form.validate_on_submit():
        turno = Turno()
        turno.cliente_id = form.cliente_id.data
        turno.mascota_id = form.mascota_id.data
        turno.fecha = form.fecha.data
        turno.hora = form.hora.data
        turno.motivo = form.motivo.data
        with transactional():
            db.session.add(turno)
        flash("Turno agendado", "success")
        return redirect(url_for("turnos.listar"))
    turnos = Turno.query.order_by(Turno.fecha.desc(), Turno.hora.desc()).all()
    return render_template("turnos/lista.html", turnos=turnos, form=form)
