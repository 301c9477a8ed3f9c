from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .common.http import register_error_handlers
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_SESSION_HOURS, DEFAULT_ATTENDANCE_YEAR
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .database.connection import DBConfig
from .departments.controller import register as register_departments
from .statistics.controller import register as register_statistics
from .students.controller import register as register_students
from .talents.controller import register as register_talents

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    """Build the Flask app.

    Passing ``container`` skips all database setup; tests use it to run the
    routes against in-memory repositories.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["ADMIN_SESSION_HOURS"] = int(getattr(settings, "ADMIN_SESSION_HOURS", DEFAULT_ADMIN_SESSION_HOURS))
    app.json.ensure_ascii = False

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info("settings=%s db=%s", settings_module, DBConfig.from_dict(db_config).describe())

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config)

        container = build_container(
            db_config=db_config,
            attendance_year=int(getattr(settings, "ATTENDANCE_YEAR", DEFAULT_ATTENDANCE_YEAR)),
            admin_default_password=str(getattr(settings, "ADMIN_DEFAULT_PASSWORD", DEFAULT_ADMIN_PASSWORD)),
        )

    app.extensions["container"] = container

    @app.get("/api/health", endpoint="health")
    def health():
        return jsonify({"status": "ok", "attendanceYear": container.ledger_service.attendance_year})

    register_error_handlers(app)
    register_auth(app, container)
    register_departments(app, container)
    register_students(app, container)
    register_attendance(app, container)
    register_talents(app, container)
    register_statistics(app, container)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=app.config["DEBUG"])


if __name__ == "__main__":
    main()
