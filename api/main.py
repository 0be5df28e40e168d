#!/usr/bin/env python3
"""
Price Archive API - upload and download priced items as ZIP-wrapped CSV.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from core.config import Settings, settings as default_settings
from api.middleware.logging import LoggingMiddleware
from api.routers import health, prices
from db.session import Database, init_db

# Configure logging
logging.basicConfig(level=getattr(logging, default_settings.log_level))
logger = logging.getLogger(__name__)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Turn any fault that escaped a handler into a generic 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


async def upload_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer a malformed upload form field with 400 instead of FastAPI's 422."""
    if any(tuple(error.get("loc", ()))[:2] == ("body", "file") for error in exc.errors()):
        logger.error(f"Error reading file from form on {request.url.path}: field 'file' is not a file")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Failed to read file"},
        )
    return await request_validation_exception_handler(request, exc)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings, defaults to the process settings
        database: Storage client to use; when omitted one is opened from
            ``settings.database_url`` at startup and closed at shutdown
    """
    settings = settings or default_settings
    owns_database = database is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_database:
            app.state.database = Database(settings.database_url, echo=settings.database_echo)
        init_db(app.state.database)
        logger.info(f"{settings.project_name} started ({settings.environment})")
        try:
            yield
        finally:
            if owns_database:
                app.state.database.close()

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        description="Import and export priced items as ZIP archives of CSV files",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if database is not None:
        app.state.database = database

    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(RequestValidationError, upload_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(prices.router, prefix=settings.api_prefix)

    @app.get("/healthz")
    async def root_health_check(request: Request):
        """Root-level health endpoint for external monitors."""
        return await health.health_check(request)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.api_host, port=default_settings.api_port)
