from __future__ import annotations

import atexit
import importlib
import logging

from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .config import get_settings_module
from .container import build_container
from .database.bootstrap import apply_schema, list_tables
from .zones.controller import register as register_zones

logger = logging.getLogger(__name__)


def create_app(settings_module: str | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    storage_backend = getattr(settings, "STORAGE_BACKEND", "memory")
    db_config = getattr(settings, "DB_CONFIG", None)
    logger.info("settings=%s storage=%s", settings_module, storage_backend)

    if storage_backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info(
            "schema ready on %s@%s:%s/%s (tables=%d)",
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
            len(list_tables(db_config)),
        )

    container = build_container(
        storage_backend=storage_backend,
        db_config=db_config,
        lock_timeout=float(getattr(settings, "LOCK_TIMEOUT_SECONDS", 2.0)),
        audit_async=bool(getattr(settings, "AUDIT_ASYNC", False)),
        zone_refresh_seconds=getattr(settings, "ZONE_REFRESH_SECONDS", None),
    )
    app.extensions["site_presence"] = container
    atexit.register(container.audit_log.close)

    register_zones(app, container)
    register_attendance(app, container)

    return app
