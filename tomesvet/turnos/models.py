from .. import db


class Turno(db.Model):
    __tablename__ = "turnos"
    id = db.Column(db.Integer, primary_key=True)
    cliente_id = db.Column(
        db.Integer, db.ForeignKey("clientes.id", ondelete="CASCADE"), nullable=False
    )
    mascota_id = db.Column(
        db.Integer, db.ForeignKey("mascotas.id", ondelete="CASCADE"), nullable=False
    )
    fecha = db.Column(db.Date, nullable=False)
    hora = db.Column(db.Time, nullable=False)
    motivo = db.Column(db.String(255))

    cliente = db.relationship("Cliente")
    mascota = db.relationship("Mascota")
