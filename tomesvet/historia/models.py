from datetime import datetime

from .. import db


class HistoriaClinica(db.Model):
    """Una visita veterinaria de una mascota.

    `archivo_nombre` / `archivo_path` son el par de adjunto único heredado.
    Tras el backfill de documentos quedan reflejados en DocumentoHistoria y
    ya no se escriben: los adjuntos nuevos van sólo a `documentos`.
    """

    __tablename__ = "historia_clinica"
    id = db.Column(db.Integer, primary_key=True)
    mascota_id = db.Column(
        db.Integer, db.ForeignKey("mascotas.id", ondelete="CASCADE"), nullable=False
    )
    fecha = db.Column(db.Date, nullable=False)
    motivo = db.Column(db.String(255))
    diagnostico = db.Column(db.Text)
    tratamiento = db.Column(db.Text)
    observaciones = db.Column(db.Text)
    archivo_nombre = db.Column(db.String(255))
    archivo_path = db.Column(db.String(255))
    documentos = db.relationship(
        "DocumentoHistoria",
        backref="historia",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):  # pragma: no cover
        return f"<HistoriaClinica {self.id} mascota={self.mascota_id}>"


class DocumentoHistoria(db.Model):
    """PDF adjunto a una historia clínica (muchos a uno, nunca se edita)."""

    __tablename__ = "historia_clinica_documentos"
    id = db.Column(db.Integer, primary_key=True)
    historia_id = db.Column(
        db.Integer,
        db.ForeignKey("historia_clinica.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    nombre_original = db.Column(db.String(255), nullable=False)
    ruta = db.Column(db.String(255), nullable=False, unique=True)
    creado_en = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):  # pragma: no cover
        return f"<DocumentoHistoria {self.ruta}>"
