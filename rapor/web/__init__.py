from __future__ import annotations

import logging

from flask import Flask, jsonify

from rapor.bootstrap.container import AppContainer, build_container
from rapor.bootstrap.settings import Settings
from rapor.core.errors import AppError, AuthorizationError, NotFoundError, ValidationError
from rapor.core.operational_logging import log_operational_error

logger = logging.getLogger(__name__)

CONTAINER_KEY = "rapor.container"


def create_app(container: AppContainer | None = None) -> Flask:
    app = Flask(__name__)
    container = container or build_container(Settings.from_env())
    app.config["SECRET_KEY"] = container.settings.secret_key
    app.extensions[CONTAINER_KEY] = container

    from rapor.web.routes import api

    app.register_blueprint(api)
    _register_error_handlers(app)
    logger.info("Web application created", extra={"extra": {"semester_id": container.settings.semester_id}})
    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AuthorizationError)
    def _unauthorized(exc: AuthorizationError):
        return jsonify(error=str(exc)), 401

    @app.errorhandler(ValidationError)
    def _bad_request(exc: ValidationError):
        return jsonify(error=str(exc)), 400

    @app.errorhandler(NotFoundError)
    def _not_found(exc: NotFoundError):
        return jsonify(error=str(exc)), 404

    @app.errorhandler(AppError)
    def _app_error(exc: AppError):
        log_operational_error("Request failed", exc=exc)
        return jsonify(error=str(exc)), 500
