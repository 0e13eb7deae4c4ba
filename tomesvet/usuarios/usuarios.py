from flask import Blueprint, flash, redirect, render_template, url_for
from flask_wtf import FlaskForm
from wtforms import SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Email, Length, Optional

from .. import db
from ..utils_db import transactional
from .models import Usuario

usuarios_bp = Blueprint("usuarios", __name__, template_folder=".")

ROLES = [
    ("veterinario", "Veterinario/a"),
    ("recepcion", "Recepción"),
    ("administrador", "Administrador/a"),
]


class UsuarioForm(FlaskForm):
    nombre = StringField("Nombre", validators=[DataRequired(), Length(max=150)])
    rol = SelectField("Rol", choices=ROLES)
    email = StringField("Email", validators=[Optional(), Email(), Length(max=150)])
    submit = SubmitField("Guardar")


@usuarios_bp.route("/", methods=["GET", "POST"])
def listar():
    form = UsuarioForm()
    if form.validate_on_submit():
        usuario = Usuario()
        with transactional():
            form.populate_obj(usuario)
            db.session.add(usuario)
        flash("Usuario registrado", "success")
        return redirect(url_for("usuarios.listar"))
    usuarios = Usuario.query.order_by(Usuario.id.desc()).all()
    return render_template("usuarios/lista.html", usuarios=usuarios, form=form)
