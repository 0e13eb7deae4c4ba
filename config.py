import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(os.getcwd(), "instance", "tomesvet.db"),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # --- Adjuntos (PDF de historia clínica) ---
    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER",
        os.path.join(os.getcwd(), "uploads", "historia-clinica"),
    )
    # Prefijo público con el que se sirven los PDF guardados
    UPLOAD_URL_PREFIX = "/uploads/historia-clinica"
    # Un PDF en base64 ocupa ~4/3 del original
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024
    # --- Esquema ---
    # Ejecuta los pasos de evolución de esquema al iniciar (fail-fast)
    AUTO_SCHEMA_UPGRADE = os.environ.get("AUTO_SCHEMA_UPGRADE", "true").lower() in (
        "1",
        "true",
        "yes",
    )
    # Espera máxima ante bloqueo de escritura de otra conexión SQLite
    SQLITE_BUSY_TIMEOUT_MS = int(os.environ.get("SQLITE_BUSY_TIMEOUT_MS", "5000"))
    CLINIC_NAME = os.environ.get("CLINIC_NAME", "TomesVet")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
