"""
Respaldo de la base SQLite y evolución de esquema manual.

Copia instance/tomesvet.db (si existe) y ejecuta los pasos de esquema
pendientes sin borrar datos. Útil cuando la aplicación se despliega con
AUTO_SCHEMA_UPGRADE=false.

Uso:
    python scripts/upgrade_schema.py
"""

from __future__ import annotations

import shutil
import sys
from datetime import datetime
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from tomesvet import create_app  # noqa: E402


class ManualUpgradeConfig:
    AUTO_SCHEMA_UPGRADE = False


def backup_db(base_dir: Path) -> Path | None:
    src = base_dir / "instance" / "tomesvet.db"
    if not src.exists():
        return None
    bak = src.with_name(f"tomesvet.db.bak-{datetime.now():%Y%m%d%H%M%S}")
    shutil.copy2(src, bak)
    return bak


def main() -> int:
    app = create_app(ManualUpgradeConfig)
    bak = backup_db(BASE_DIR)
    if bak:
        print(f"Backup creado: {bak}")
    with app.app_context():
        from tomesvet.esquema.upgrade import run_schema_upgrade

        for result in run_schema_upgrade():
            estado = "aplicado" if result.applied else "sin cambios"
            print(f"[{estado}] {result.name} {result.detail or ''}".rstrip())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
