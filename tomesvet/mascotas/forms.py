from flask_wtf import FlaskForm
from wtforms import DateField, SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Length, Optional


class MascotaForm(FlaskForm):
    nombre = StringField("Nombre", validators=[DataRequired(), Length(max=150)])
    especie = StringField("Especie", validators=[Optional(), Length(max=100)])
    raza = StringField("Raza", validators=[Optional(), Length(max=100)])
    fecha_nacimiento = DateField("Fecha de nacimiento", validators=[Optional()])
    cliente_id = SelectField("Cliente", coerce=int, validators=[DataRequired()])
    submit = SubmitField("Guardar")


class EspecieForm(FlaskForm):
    nombre = StringField("Especie", validators=[DataRequired(), Length(max=100)])
    submit = SubmitField("Agregar")


class RazaForm(FlaskForm):
    nombre = StringField("Raza", validators=[DataRequired(), Length(max=100)])
    especie_id = SelectField("Especie", coerce=int, validators=[DataRequired()])
    submit = SubmitField("Agregar")
