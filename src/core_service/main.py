from __future__ import annotations

import importlib
import logging
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, jsonify

from .attendance.controller import register as register_attendance
from .branches.controller import register as register_branches
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .divisions.controller import register as register_divisions
from .employees.controller import register as register_employees
from .errors import register_error_handlers
from .holidays.controller import register as register_holidays
from .leave.controller import register as register_leave
from .logging_config import setup_logging
from .org_changes.controller import register as register_org_changes
from .positions.controller import register as register_positions
from .schedules.controller import register as register_schedules
from .service_areas.controller import register as register_service_areas

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = dict(getattr(settings, "DB_CONFIG"))
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["JWT_SECRET"] = getattr(settings, "JWT_SECRET")
    app.config["JWT_ALGORITHM"] = getattr(settings, "JWT_ALGORITHM", "HS256")
    app.config["DB_CONFIG"] = db_config

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
        container = build_container(
            db_config=db_config,
            geofence_radius=getattr(settings, "GEOFENCE_DEFAULT_RADIUS", 100),
            carryover_expiry=getattr(settings, "LEAVE_CARRYOVER_EXPIRY", (6, 30)),
        )

    register_error_handlers(app)
    register_branches(app, container)
    register_org_changes(app, container)
    register_divisions(app, container)
    register_positions(app, container)
    register_employees(app, container)
    register_schedules(app, container)
    register_holidays(app, container)
    register_attendance(app, container)
    register_leave(app, container)
    register_service_areas(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok", "service": "core-service"})

    @app.cli.command("init-db")
    def init_db():
        """Apply schema.sql to the configured database."""
        apply_schema(db_config)
        click.echo(f"Schema applied (tables={len(list_tables(db_config))})")

    return app
