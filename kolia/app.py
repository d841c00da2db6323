"""KOLIA food ordering API Flask application."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .common.config import AppConfig, load_env
from .common.db.session import build_engine, init_db, make_session_factory
from .common.errors import KoliaError, PersistenceError
from .common.services.auth_service import AuthService
from .common.services.catalog_service import CatalogService
from .common.services.logging import configure_logging, log_event
from .common.services.order_service import OrderService
from .common.services.order_status import OrderStatusMachine
from .common.services.payment_service import PaymentService
from .common.services.user_service import UserService
from .routes import register_routes
from .services import CinetPayGateway, WhatsAppNotifier


logger = logging.getLogger(__name__)


def build_components(config: AppConfig, session_factory, *, gateway=None, notifier=None) -> Dict[str, Any]:
    gateway = gateway or CinetPayGateway(config)
    notifier = notifier or WhatsAppNotifier(config)
    return {
        "gateway": gateway,
        "notifier": notifier,
        "auth_service": AuthService(config.secret_key, config.jwt_expire_days, session_factory=session_factory),
        "user_service": UserService(session_factory=session_factory),
        "catalog_service": CatalogService(
            session_factory=session_factory, default_delivery_fee=config.default_delivery_fee
        ),
        "order_service": OrderService(
            session_factory,
            notifier=notifier,
            commission_rate=config.commission_rate,
            default_delivery_fee=config.default_delivery_fee,
            currency=config.currency,
        ),
        "status_machine": OrderStatusMachine(session_factory, notifier=notifier),
        "payment_service": PaymentService(config, gateway, session_factory=session_factory),
    }


def _register_error_handlers(app: Flask, config: AppConfig) -> None:
    @app.errorhandler(KoliaError)
    def handle_kolia_error(exc: KoliaError):
        body: Dict[str, Any] = {"success": False, "message": exc.message}
        if exc.details and not config.is_production:
            body["details"] = exc.details
        return jsonify(body), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc: SQLAlchemyError):
        logger.exception("database error")
        log_event("error", "request.error", kind="persistence", error=str(exc))
        err = PersistenceError()
        body: Dict[str, Any] = {"success": False, "message": err.message}
        if not config.is_production:
            body["error"] = str(exc)
        return jsonify(body), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("unhandled error")
        log_event("error", "request.error", kind="unhandled", error=str(exc))
        body: Dict[str, Any] = {"success": False, "message": "Erreur interne du serveur"}
        if not config.is_production:
            body["error"] = str(exc)
        return jsonify(body), 500


def create_app(
    config: Optional[AppConfig] = None,
    *,
    session_factory=None,
    gateway=None,
    notifier=None,
) -> Flask:
    config = config or load_env()
    configure_logging(config.log_level)

    if session_factory is None:
        engine = build_engine(config.database_url)
        init_db(engine)
        session_factory = make_session_factory(engine)

    app = Flask(__name__, static_folder=None)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["KOLIA_CONFIG"] = config
    app.extensions["kolia_components"] = build_components(
        config, session_factory, gateway=gateway, notifier=notifier
    )

    @app.get("/api/health")
    def health():
        return jsonify({"success": True, "message": "KOLIA API is running", "environment": config.environment})

    register_routes(app)
    _register_error_handlers(app, config)
    return app


def main() -> None:
    config = load_env()
    app = create_app(config)
    app.run(host="0.0.0.0", port=5000, debug=not config.is_production)


if __name__ == "__main__":
    main()
