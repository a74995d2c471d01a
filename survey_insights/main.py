"""
Main FastAPI application.

WHY: This is the entry point for the application. It configures middleware,
routes, exception handlers, and other application-level concerns.
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from survey_insights.api import surveys
from survey_insights.core.config import settings
from survey_insights.core.exception_handlers import (
    app_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from survey_insights.core.exceptions import AppException


def configure_logging() -> None:
    """Apply LOG_LEVEL to the package logger."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("survey_insights").setLevel(settings.LOG_LEVEL.upper())


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows easier testing with different configurations
    and makes it possible to create multiple app instances if needed.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Survey response analytics and export API",
        version=settings.VERSION,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
    )

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Configure CORS
    # Content-Disposition is exposed so browsers can read the export filename
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Health check endpoint (no auth, no database)."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
        }

    # Register API routers
    app.include_router(surveys.router, prefix=settings.API_PREFIX)

    return app


# Create app instance
# Imported by uvicorn: `uvicorn survey_insights.main:app`
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "survey_insights.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
