from flask import Blueprint, flash, redirect, render_template, url_for
from flask_wtf import FlaskForm
from wtforms import StringField, SubmitField
from wtforms.validators import DataRequired, Email, Length, Optional

from .. import db
from ..utils_db import get_or_404, transactional
from .models import Cliente

clientes_bp = Blueprint("clientes", __name__, template_folder=".")


class ClienteForm(FlaskForm):
    nombre = StringField("Nombre", validators=[DataRequired(), Length(max=150)])
    telefono = StringField("Teléfono", validators=[Optional(), Length(max=50)])
    email = StringField("Email", validators=[Optional(), Email(), Length(max=150)])
    direccion = StringField("Dirección", validators=[Optional(), Length(max=255)])
    submit = SubmitField("Guardar")


@clientes_bp.route("/", methods=["GET", "POST"])
def listar():
    form = ClienteForm()
    if form.validate_on_submit():
        cliente = Cliente()
        with transactional():
            form.populate_obj(cliente)
            db.session.add(cliente)
        flash("Cliente registrado", "success")
        return redirect(url_for("clientes.listar"))
    clientes = Cliente.query.order_by(Cliente.id.desc()).all()
    return render_template("clientes/lista.html", clientes=clientes, form=form)


@clientes_bp.route("/<int:cliente_id>/editar", methods=["GET", "POST"])
def editar(cliente_id: int):
    cliente = get_or_404(Cliente, cliente_id)
    form = ClienteForm(obj=cliente)
    if form.validate_on_submit():
        with transactional():
            form.populate_obj(cliente)
        flash("Cliente actualizado", "success")
        return redirect(url_for("clientes.listar"))
    return render_template("clientes/form.html", form=form, cliente=cliente)
