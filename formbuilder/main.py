from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from formbuilder.config import AppConfig, load_config
from formbuilder.db.base import get_engine, ping
from formbuilder.db.migrations_runner import apply_migrations
from formbuilder.http.problem import (
    handle_domain_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from formbuilder.http.request_id import RequestIdMiddleware
from formbuilder.logging_setup import configure_logging
from formbuilder.logic.errors import FormBuilderError
from formbuilder.middleware.cors import apply_cors
from formbuilder.routes import api_router

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the ASGI application.

    Configuration is loaded from the environment when not supplied. With
    `database.auto_migrate` enabled, pending SQL migrations are applied
    before the first request is served.
    """
    configure_logging()
    cfg = config or load_config()

    engine = get_engine(cfg.database.dsn)
    if cfg.database.auto_migrate:
        applied = apply_migrations(engine)
        logger.info("startup_migrations applied=%s", applied)

    app = FastAPI(title="Form Builder", version="0.1.0")
    app.state.config = cfg

    app.add_exception_handler(FormBuilderError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=cfg.cors.origins)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"], operation_id="health")
    def health():
        return ping()

    logger.info("app_created dialect=%s cors_origins=%s", engine.dialect.name, cfg.cors.origins)
    return app


__all__ = ["create_app"]
