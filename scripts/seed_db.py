from __future__ import annotations

import importlib
import logging

from talent_attendance.config import get_settings_module
from talent_attendance.database.bootstrap import apply_seed_sql
from talent_attendance.database.connection import DBConfig


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config)
    print(f"OK: default departments seeded on {DBConfig.from_dict(db_config).describe()}")


if __name__ == "__main__":
    main()
