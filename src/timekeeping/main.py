from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import (
    AlreadyActiveEntryError,
    AlreadyClockedOutError,
    DomainError,
    ExportedEntryImmutableError,
    NotFoundError,
    PeriodAlreadyExistsError,
)
from .database.bootstrap import apply_schema, list_tables
from .logging_config import configure_logging
from .payroll.controller import register as register_payroll
from .timeclock.controller import register as register_timeclock

logger = logging.getLogger(__name__)

_CONFLICTS = (AlreadyActiveEntryError, AlreadyClockedOutError, ExportedEntryImmutableError, PeriodAlreadyExistsError)


def error_status(exc: DomainError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, _CONFLICTS):
        return 409
    return 400


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(
        getattr(settings, "LOG_LEVEL", "INFO"),
        json_output=bool(getattr(settings, "LOG_JSON", True)),
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        container = build_container(
            db_config=db_config,
            default_policy=getattr(settings, "DEFAULT_POLICY", None),
        )
        logger.info(
            "timekeeping starting",
            extra={
                "settings": settings_module,
                "db": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
            },
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(container.conn)
            logger.info("schema ready", extra={"tables": len(list_tables(container.conn))})

    app.extensions["timekeeping"] = container

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = error_status(exc)
        body = {"success": False, "message": str(exc)}
        if getattr(exc, "errors", None):
            body["errors"] = list(exc.errors)
        logger.warning("request refused", extra={"error": type(exc).__name__, "status": status})
        return jsonify(body), status

    register_timeclock(app, container)
    register_payroll(app, container)

    return app


if __name__ == "__main__":
    create_app().run()
