"""
Main entrypoint for the EventHub API.

This module assembles the FastAPI application, sets up logging,
registers the error handlers that render the JSON envelope and includes
versioned routers.  The ``create_app`` function builds and configures
the app, which is then instantiated at module import time as ``app``::

    uvicorn eventhub_api.app.main:app --reload

The application title and version are provided via ``Settings`` from
``core.config``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.errors import AppError
from .core.logging_config import log_requests, setup_logging
from .core.timeutils import utcnow
from .schemas.common import envelope, error_envelope


logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.message, exc.code, exc.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = "NotFoundError" if exc.status_code == 404 else "HTTPError"
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(message, code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {key: value for key, value in error.items() if key not in ("ctx", "url")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=error_envelope("Validation failed", "ValidationError", jsonable_encoder(errors)),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_envelope("Internal server error", "InternalError"),
        )


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Logging first so that the imports and startup hooks below can log.
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title=settings.project_name, version=settings.api_version)
    app.middleware("http")(log_requests)
    _register_error_handlers(app)

    # Mount versioned routes under /api.
    app.include_router(v1_router, prefix="/api")

    @app.get("/", tags=["meta"])
    async def index() -> dict:
        return envelope(
            {
                "name": settings.project_name,
                "version": settings.api_version,
                "endpoints": {
                    "auth": "/api/auth",
                    "events": "/api/events",
                    "users": "/api/users",
                    "analytics": "/api/analytics",
                    "admin": "/api/admin",
                },
            },
            message="EventHub API is running",
        )

    @app.get("/health", tags=["meta"])
    async def health() -> dict:
        return envelope(
            {"status": "OK", "timestamp": utcnow(), "environment": settings.environment}
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies pending migrations.
        init_db()
        logger.info("%s %s started", settings.project_name, settings.api_version)

    return app


# Created at import time so that uvicorn can discover it without calling
# create_app manually.
app = create_app()
