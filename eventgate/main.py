"""
Main FastAPI application entry point.

This module builds the event gateway: it loads settings, routes and
templates once, wires the dispatcher and its collaborators together, and
registers middleware, endpoints and error handlers. Any configuration
problem aborts startup before the server binds its port.
"""

import sys
from contextlib import asynccontextmanager
from typing import Mapping, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eventgate import __version__
from eventgate.api.endpoints.collect import register_collect_routes
from eventgate.api.router import api_router
from eventgate.config.logging import get_logger, setup_logging
from eventgate.config.routes import load_routes
from eventgate.config.settings import Settings, load_settings
from eventgate.core.middleware import RequestContextMiddleware
from eventgate.gateway.dispatcher import Dispatcher
from eventgate.gateway.proxy.http_client import EventForwarder
from eventgate.gateway.routing.table import RouteTable
from eventgate.gateway.templates.engine import TemplateEngine
from eventgate.services.debug_log import DebugLog
from eventgate.services.outcomes import OutcomeRecorder
from eventgate.utils.errors import ConfigurationError
from eventgate.utils.helpers import error_body

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    environ: Optional[Mapping[str, str]] = None
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Settings to use, loaded from the environment when omitted
        transport: Optional httpx transport for outbound calls
        environ: Environment for settings and ``{{ENV_VAR}}`` route tokens

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: If settings, routes or templates are invalid
    """
    if settings is None:
        settings = load_settings(environ=environ)

    template_engine = TemplateEngine(settings.templates_dir)
    routes = load_routes(settings.routes_file, template_engine, environ)
    try:
        route_table = RouteTable(routes)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    debug_log = DebugLog(settings.debug_max_entries, echo=settings.debug_logging)
    recorder = OutcomeRecorder(
        debug_log,
        include_request_body=settings.debug_logging,
        test_mode=settings.test_mode
    )
    forwarder = EventForwarder(transport=transport)
    dispatcher = Dispatcher(route_table, template_engine, forwarder, recorder, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(
            f"eventgate {__version__} ready with {len(route_table.all_routes)} routes",
            extra=route_table.describe() if settings.debug_logging else {}
        )
        logger.info(f"Debug logging: {'enabled' if settings.debug_logging else 'disabled'}")
        logger.info(f"Debug max entries: {settings.debug_max_entries}")

        yield

        # Cleanup
        await forwarder.close()

    app = FastAPI(
        title="eventgate",
        description="GA4 event ingestion gateway with templated forwarding",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug_logging else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug_logging else None
    )

    app.state.settings = settings
    app.state.route_table = route_table
    app.state.template_engine = template_engine
    app.state.debug_log = debug_log
    app.state.forwarder = forwarder
    app.state.dispatcher = dispatcher

    app.add_middleware(RequestContextMiddleware, debug_logging=settings.debug_logging)

    register_collect_routes(app, route_table.allowed_methods())
    app.include_router(api_router)

    register_exception_handlers(app, settings)

    return app


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Make every error response use the ``{"error": ...}`` body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_body(f"Invalid request: {exc.errors()}", settings.debug_logging)
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Server error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(str(exc), settings.debug_logging)
        )


def app_factory() -> FastAPI:
    """Build the app from the process environment, for ``uvicorn --factory``."""
    settings = load_settings()
    setup_logging(settings)
    return create_app(settings)


def run() -> None:
    """Load configuration, then serve; exit with status 1 on configuration errors."""
    try:
        settings = load_settings()
        setup_logging(settings)
        logger.info("Starting eventgate...")
        app = create_app(settings)
    except ConfigurationError as e:
        logger.critical(f"Fatal startup error: {e.message}")
        sys.exit(1)

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
