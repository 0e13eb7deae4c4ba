from flask_wtf import FlaskForm
from wtforms import DateField, SelectField, StringField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional


class VacunaForm(FlaskForm):
    mascota_id = SelectField("Mascota", coerce=int, validators=[DataRequired()])
    fecha_aplicacion = DateField("Fecha de aplicación", validators=[DataRequired()])
    tipo = StringField("Tipo de vacuna", validators=[DataRequired(), Length(max=100)])
    producto = StringField("Producto comercial", validators=[Optional(), Length(max=150)])
    lote = StringField("Lote", validators=[Optional(), Length(max=50)])
    proxima_dosis = DateField("Próxima dosis", validators=[Optional()])
    observaciones = TextAreaField("Observaciones", validators=[Optional()])
    submit = SubmitField("Guardar")

    def datos(self) -> dict:
        """Valores normalizados para los servicios (texto vacío -> None)."""
        return {
            "fecha_aplicacion": self.fecha_aplicacion.data,
            "tipo": self.tipo.data.strip(),
            "producto": (self.producto.data or "").strip() or None,
            "lote": (self.lote.data or "").strip() or None,
            "proxima_dosis": self.proxima_dosis.data,
            "observaciones": self.observaciones.data or None,
        }
