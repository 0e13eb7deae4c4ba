from .. import db


class Usuario(db.Model):
    """Personal de la clínica (registro administrativo, sin credenciales)."""

    __tablename__ = "usuarios"
    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(150), nullable=False)
    # Roles: veterinario, recepcion, administrador
    rol = db.Column(db.String(50), nullable=False, default="veterinario")
    email = db.Column(db.String(150))

    def __repr__(self):  # pragma: no cover
        return f"<Usuario {self.nombre} ({self.rol})>"
