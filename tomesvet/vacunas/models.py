from datetime import datetime

from .. import db


class Vacuna(db.Model):
    __tablename__ = "vacunas"
    id = db.Column(db.Integer, primary_key=True)
    mascota_id = db.Column(
        db.Integer, db.ForeignKey("mascotas.id", ondelete="CASCADE"), nullable=False
    )
    fecha_aplicacion = db.Column(db.Date, nullable=False)
    tipo = db.Column(db.String(100), nullable=False)
    # Nombre comercial del producto aplicado
    producto = db.Column(db.String(150))
    lote = db.Column(db.String(50))
    # Sólo la última programación de cada (mascota, producto, tipo) la conserva
    proxima_dosis = db.Column(db.Date)
    observaciones = db.Column(db.Text)
    creado_en = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):  # pragma: no cover
        return f"<Vacuna {self.tipo} mascota={self.mascota_id}>"
