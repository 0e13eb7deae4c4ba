from .. import db


class Cliente(db.Model):
    __tablename__ = "clientes"
    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(150), nullable=False)
    telefono = db.Column(db.String(50))
    email = db.Column(db.String(150))
    direccion = db.Column(db.String(255))
    mascotas = db.relationship(
        "Mascota",
        backref="cliente",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):  # pragma: no cover
        return f"<Cliente {self.id} - {self.nombre}>"
