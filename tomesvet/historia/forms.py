from flask_wtf import FlaskForm
from wtforms import DateField, HiddenField, SelectField, StringField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional


class HistoriaForm(FlaskForm):
    mascota_id = SelectField("Mascota", coerce=int, validators=[DataRequired()])
    fecha = DateField("Fecha", validators=[DataRequired()])
    motivo = StringField("Motivo", validators=[Optional(), Length(max=255)])
    diagnostico = TextAreaField("Diagnóstico", validators=[Optional()])
    tratamiento = TextAreaField("Tratamiento", validators=[Optional()])
    observaciones = TextAreaField("Observaciones", validators=[Optional()])
    # Completados en el navegador a partir del <input type=file>
    archivo_nombre = HiddenField(validators=[Optional(), Length(max=255)])
    archivo_base64 = HiddenField(validators=[Optional()])
    submit = SubmitField("Guardar")


class DocumentoForm(FlaskForm):
    archivo_nombre = HiddenField(validators=[Optional(), Length(max=255)])
    archivo_base64 = HiddenField(validators=[Optional()])
    submit = SubmitField("Adjuntar")
