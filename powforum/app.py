# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import atexit
import sys
import time

import socketio
from flask import Flask, g, request
from flask_cors import CORS
from werkzeug.serving import run_simple

from powforum.application.services.secret_provisioner import SESSION_SECRET
from powforum.infrastructure.container import Container
from powforum.infrastructure.db import init_db
from powforum.infrastructure.observability import observe_request
from powforum.infrastructure.realtime import SessionBridge
from powforum.shared.config import AppConfig, load_config
from powforum.shared.errors import (
    ConfigMissingError,
    PersistenceUnavailableError,
    SecretGenerationError,
)
from powforum.shared.logging import logger, setup_logging
from powforum.shared.middleware.error_handler import configure_error_handling
from powforum.shared.middleware.request_logger import configure_request_logging

CONTAINER_KEY = "powforum.container"

_STARTUP_ERRORS = (ConfigMissingError, SecretGenerationError, PersistenceUnavailableError)


def create_app(
    config: AppConfig | None = None,
    *,
    container: Container | None = None,
    start_scheduler: bool = True,
) -> Flask:
    """Secrets, then database, then bootstrap, then the maintenance timer.

    Any of ``ConfigMissingError``, ``SecretGenerationError`` or
    ``PersistenceUnavailableError`` raised here means the process must not serve.
    """

    config = config or load_config()
    container = container or Container(config)

    session_secret = container.secrets.ensure_secret(SESSION_SECRET)
    container.secrets.ensure_key_pair()
    init_db(config)

    app = Flask(__name__)
    app.config.update(SECRET_KEY=session_secret)
    app.extensions[CONTAINER_KEY] = container

    configure_error_handling(app, debug_mode=config.debug_logging)
    configure_request_logging(app, debug_mode=config.debug_logging)

    cors_kwargs: dict[str, object] = {"resources": {r"/api/*": {"origins": config.realtime.origins}}}
    if config.realtime.origins != "*":
        cors_kwargs["supports_credentials"] = True
    CORS(app, **cors_kwargs)

    @app.before_request
    def _resolve_identity() -> None:
        g.identity = container.session_resolver.resolve(request)

    app.register_blueprint(container.misc_controller.as_blueprint())
    app.register_blueprint(container.auth_controller.as_blueprint())

    if config.observability.metrics_enabled:

        @app.after_request
        def _observe_request(resp):
            started = getattr(g, "request_start_time", None)
            if started is not None:
                endpoint = request.url_rule.rule if request.url_rule else "unmatched"
                observe_request(endpoint, resp.status_code, time.perf_counter() - started)
            return resp

    @app.after_request
    def _add_security_headers(resp):
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        resp.headers.setdefault("X-Permitted-Cross-Domain-Policies", "none")
        if config.security.cookie_secure:
            resp.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return resp

    bridge = SessionBridge(
        app, container.session_resolver, container.connection_registry, container.store
    )
    bridge.attach(container.socketio_server)

    container.bootstrap.reconcile()

    if start_scheduler and config.maintenance.enabled:
        if container.maintenance.start():
            atexit.register(container.maintenance.stop)
    elif not config.maintenance.enabled:
        logger.info("maintenance: disabled by MAINTENANCE_ENABLED")

    logger.info("Flask app initialized")
    return app


def build_wsgi_app(app: Flask) -> socketio.WSGIApp:
    container: Container = app.extensions[CONTAINER_KEY]
    return socketio.WSGIApp(
        container.socketio_server,
        app,
        socketio_path=container.config.realtime.socketio_path,
    )


def main() -> int:
    config = load_config()
    setup_logging(debug_mode=config.debug_logging)

    try:
        app = create_app(config)
    except _STARTUP_ERRORS as exc:
        logger.critical(f"Startup aborted: {exc.code} {dict(exc.context or {})}")
        return 1

    container: Container = app.extensions[CONTAINER_KEY]
    logger.info(f"Server listening on {config.host}:{config.port}")
    try:
        run_simple(
            config.host,
            config.port,
            build_wsgi_app(app),
            threaded=True,
            use_reloader=False,
        )
    finally:
        container.maintenance.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
