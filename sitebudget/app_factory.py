'''
Assembles the Flask app: config, server-side sessions, database engine,
shared in-process components, blueprints and JSON error handlers.
Nothing here starts a server; run.py, a WSGI server or the tests call create_app().
'''
# sitebudget/app_factory.py
import os
import tempfile
from typing import Any, Dict, Optional

from cachelib import FileSystemCache
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_session import Session
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from sitebudget.db.session import configure_engine
from sitebudget.errors import LedgerError
from sitebudget.logger import get_logger
from sitebudget.schemas.error_type import ErrorType
from sitebudget.services.approval_event_bus import ApprovalEventBus
from sitebudget.services.view_cache import ViewCache

load_dotenv()

logger = get_logger(__name__)

# project root (parent of the sitebudget package)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def create_app(config_name: str = "development", overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    :param config_name: "development" / "production" / "testing";
        testing uses a throwaway SQLite file and session directory
    :param overrides: config values applied last
    """
    app = Flask(__name__)

    secret_key = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    if isinstance(secret_key, bytes):
        secret_key = secret_key.decode("utf-8")
    app.config["SECRET_KEY"] = secret_key

    # =========
    # Database
    # =========
    if config_name == "testing":
        scratch_dir = tempfile.mkdtemp(prefix="sitebudget-test-")
        app.config["TESTING"] = True
        app.config["DATABASE_URL"] = f"sqlite:///{os.path.join(scratch_dir, 'test.db')}"
        session_dir = os.path.join(scratch_dir, "flask_session")
    else:
        default_db_url = f"sqlite:///{os.path.join(BASE_DIR, 'sitebudget.db')}"
        app.config["DATABASE_URL"] = os.getenv("DATABASE_URL", default_db_url)
        session_dir = os.getenv("SESSION_FILE_DIR", os.path.join(BASE_DIR, "flask_session"))

    # =========
    # Ledger settings
    # =========
    app.config["DEFAULT_CURRENCY"] = os.getenv("DEFAULT_CURRENCY", "NGN")
    app.config["LOGIN_REDIRECT_DELAY_MS"] = int(os.getenv("LOGIN_REDIRECT_DELAY_MS", 500))
    app.config["VIEW_CACHE_TIMEOUT"] = int(os.getenv("VIEW_CACHE_TIMEOUT", 300))
    app.config["APPROVAL_STREAM_HEARTBEAT_SECONDS"] = int(os.getenv("APPROVAL_STREAM_HEARTBEAT_SECONDS", 15))

    # =========
    # Sessions (server side, cachelib file store)
    # =========
    os.makedirs(session_dir, exist_ok=True)
    app.config["SESSION_TYPE"] = os.getenv("SESSION_TYPE", "cachelib")
    app.config["SESSION_CACHELIB"] = FileSystemCache(cache_dir=session_dir, threshold=500)
    app.config["SESSION_PERMANENT"] = False
    app.config["SESSION_KEY_PREFIX"] = "sitebudget:"

    if overrides:
        app.config.update(overrides)

    configure_engine(app.config["DATABASE_URL"])
    Session(app)

    app.extensions["view_cache"] = ViewCache(default_timeout=app.config["VIEW_CACHE_TIMEOUT"])
    app.extensions["approval_event_bus"] = ApprovalEventBus()

    register_blueprints(app)
    register_error_handlers(app)

    logger.info(f"sitebudget app created ({config_name})")
    return app


def register_blueprints(app: Flask) -> None:
    from sitebudget.routes.alert import alert_bp
    from sitebudget.routes.analytics import analytics_bp
    from sitebudget.routes.approval import approval_bp
    from sitebudget.routes.audit import audit_bp
    from sitebudget.routes.auth import auth_bp
    from sitebudget.routes.catalog import catalog_bp
    from sitebudget.routes.company import company_bp
    from sitebudget.routes.cost_allocation import cost_allocation_bp
    from sitebudget.routes.project import project_bp
    from sitebudget.routes.project_assignment import project_assignment_bp
    from sitebudget.routes.proposal import budget_amendment_bp, change_order_bp
    from sitebudget.routes.team import team_bp
    from sitebudget.routes.transaction import transaction_bp
    from sitebudget.routes.user import user_bp

    for blueprint in (
        auth_bp,
        company_bp,
        user_bp,
        project_bp,
        project_assignment_bp,
        budget_amendment_bp,
        change_order_bp,
        cost_allocation_bp,
        catalog_bp,
        approval_bp,
        analytics_bp,
        transaction_bp,
        alert_bp,
        team_bp,
        audit_bp,
    ):
        app.register_blueprint(blueprint)


def _error_body(error_type: ErrorType, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"ok": False, "error_type": error_type.value, "message": message, "details": details or {}}


def register_error_handlers(app: Flask) -> None:
    """Every failure leaves as {"ok": false, "error_type", "message", "details"}."""

    @app.errorhandler(LedgerError)
    def ledger_error(error: LedgerError):
        if error.status_code >= 500:
            logger.error(f"{error.error_type.value}: {error.message}")
        else:
            logger.warning(f"{error.error_type.value} ({error.status_code}): {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ValidationError)
    def validation_error(error: ValidationError):
        fields = [
            {"field": ".".join(str(part) for part in e["loc"]), "message": e["msg"]}
            for e in error.errors()
        ]
        return jsonify(_error_body(ErrorType.VALIDATION_ERROR, "Request validation failed", {"fields": fields})), 400

    @app.errorhandler(SQLAlchemyError)
    def database_error(error: SQLAlchemyError):
        logger.exception("Database error")
        return jsonify(_error_body(ErrorType.DATABASE_ERROR, "Database error")), 500

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        error_type = ErrorType.NOT_FOUND if error.code == 404 else ErrorType.INPUT_ERROR
        return jsonify(_error_body(error_type, error.description or error.name)), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        logger.exception("Unhandled error")
        return jsonify(_error_body(ErrorType.SYSTEM_ERROR, "Internal server error")), 500
