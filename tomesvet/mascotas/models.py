"""Modelos de mascotas y catálogo de especies/razas.

`especie` y `raza` en Mascota son los campos de texto libre originales; se
siguen escribiendo para compatibilidad. Los vínculos normalizados
(`especie_id`, `raza_id`) se completan al guardar y, para filas antiguas,
los reconcilia la evolución de esquema por igualdad de nombre.
"""

from datetime import date

from .. import db


class Especie(db.Model):
    __tablename__ = "mascotas_especies"
    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(100), unique=True, nullable=False)
    razas = db.relationship(
        "Raza",
        backref="especie",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):  # pragma: no cover
        return f"<Especie {self.nombre}>"


class Raza(db.Model):
    __tablename__ = "mascotas_razas"
    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(100), nullable=False)
    especie_id = db.Column(
        db.Integer,
        db.ForeignKey("mascotas_especies.id", ondelete="CASCADE"),
    )

    __table_args__ = (
        db.UniqueConstraint("nombre", "especie_id", name="uq_mascotas_razas_nombre_especie"),
    )

    def __repr__(self):  # pragma: no cover
        return f"<Raza {self.nombre}>"


class Mascota(db.Model):
    __tablename__ = "mascotas"
    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(150), nullable=False)
    especie = db.Column(db.String(100))
    raza = db.Column(db.String(100))
    fecha_nacimiento = db.Column(db.Date)
    cliente_id = db.Column(
        db.Integer, db.ForeignKey("clientes.id", ondelete="CASCADE"), nullable=False
    )
    especie_id = db.Column(
        db.Integer, db.ForeignKey("mascotas_especies.id", ondelete="SET NULL")
    )
    raza_id = db.Column(db.Integer, db.ForeignKey("mascotas_razas.id", ondelete="SET NULL"))

    especie_ref = db.relationship("Especie")
    raza_ref = db.relationship("Raza")
    historias = db.relationship(
        "HistoriaClinica",
        backref="mascota",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    vacunas = db.relationship(
        "Vacuna",
        backref="mascota",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def edad(self) -> int | None:
        if not self.fecha_nacimiento:
            return None
        hoy = date.today()
        anos = hoy.year - self.fecha_nacimiento.year
        if (hoy.month, hoy.day) < (
            self.fecha_nacimiento.month,
            self.fecha_nacimiento.day,
        ):
            anos -= 1
        return anos
