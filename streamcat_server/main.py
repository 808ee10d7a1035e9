# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""StreamCat Server - Main FastAPI application."""

import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from streamcat_server.config import Settings, settings as default_settings
from streamcat_server.database import Database
from streamcat_server.errors import CatalogError, NotificationError
from streamcat_server.rate_limit import RateLimiter
from streamcat_server.routers import auth, catalog
from streamcat_server.services.catalog import TmdbClient
from streamcat_server.services.codes import utcnow
from streamcat_server.services.email import NotificationSender, build_sender

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _get_cors_origins(settings: Settings) -> list[str]:
    raw = (settings.cors_origins or "*").strip()
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database handle at startup and dispose it at shutdown."""
    owns_db = app.state.db is None
    if owns_db:
        app.state.db = Database.from_settings(app.state.settings)
    await app.state.db.create_all()
    if not app.state.catalog.configured:
        logger.info(
            "TMDB_API_KEY not set - catalog endpoints answer 503. "
            "Get a key at https://www.themoviedb.org/settings/api"
        )
    yield
    if owns_db:
        await app.state.db.dispose()


def _fail(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        kinds = {e.get("type") for e in errors}
        # A blank email fails EmailStr with a value_error; answer it as a missing field
        blank = any(isinstance(e.get("input"), str) and not e["input"].strip() for e in errors)
        if blank or kinds & {"missing", "string_too_short", "json_invalid", "model_attributes_type"}:
            return _fail(status.HTTP_400_BAD_REQUEST, "Todos los campos son obligatorios")
        return _fail(status.HTTP_400_BAD_REQUEST, "Datos inválidos")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _fail(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(NotificationError)
    async def notification_error(request: Request, exc: NotificationError) -> JSONResponse:
        return _fail(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "No se pudo enviar el código. Intenta de nuevo.",
        )

    @app.exception_handler(CatalogError)
    async def catalog_error(request: Request, exc: CatalogError) -> JSONResponse:
        return _fail(status.HTTP_502_BAD_GATEWAY, "El catálogo no está disponible")

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno del servidor")


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    sender: NotificationSender | None = None,
    catalog_client: TmdbClient | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Build the application. Collaborators not passed in are built from settings."""
    settings = settings or default_settings
    app = FastAPI(
        title="StreamCat Server",
        description="Accounts, password recovery and catalog proxy for the StreamCat app",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = settings
    app.state.db = database
    app.state.sender = sender or build_sender(settings)
    app.state.catalog = catalog_client or TmdbClient.from_settings(settings)
    app.state.clock = clock
    app.state.rate_limiter = RateLimiter() if settings.rate_limit_enabled else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log method, path, status, and duration for each request (no body or auth headers)."""
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info("%s %s %s %.1fms", request.method, request.url.path, status_code, duration_ms)

    _install_error_handlers(app)

    app.include_router(auth.router, prefix="/api")
    app.include_router(catalog.router, prefix="/api")

    @app.get("/")
    async def root():
        """API info."""
        return {
            "name": "StreamCat Server",
            "version": VERSION,
            "api": "/api",
            "docs": "/api/docs",
        }

    @app.get("/api/health")
    async def health():
        """Health check for load balancers."""
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=default_settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "streamcat_server.main:app",
        host=default_settings.host,
        port=default_settings.port,
    )


if __name__ == "__main__":
    run()
