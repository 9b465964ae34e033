"""Kindred Matching - Main FastAPI Application

Compatibility scoring, preference learning and match ranking service.

This module creates and configures the main FastAPI application, including:
- Matching and observability routers
- Middleware (request ID correlation, CORS)
- Domain exception handlers
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from config import get_settings
from database import dispose_engine
from domain.matching import (
    NotFoundError,
    OperationCancelledError,
    PersistenceError,
    ValidationError,
)
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router
from matching.router import router as matching_router

logger = logging.getLogger(__name__)

# Non-standard status used by nginx for "client closed request"
HTTP_499_CLIENT_CLOSED_REQUEST = 499


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: log configuration
    - Shutdown: dispose the database engine
    """
    settings = get_settings()
    logger.info("Kindred matching API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    yield

    await dispose_engine()
    logger.info("Kindred matching API shutting down...")


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"method": request.method, "path": request.url.path}
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that are not JSON serializable
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def domain_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning(f"Rejected input on {request.url.path}: {exc}", extra={"path": request.url.path})
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", str(exc))


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info(f"Not found on {request.url.path}: {exc}", extra={"path": request.url.path})
    return _error_response(status.HTTP_404_NOT_FOUND, "not_found", str(exc))


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Handle storage failures.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(f"Persistence error on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "persistence_error",
        "A storage error occurred. Please try again later.",
    )


async def cancelled_handler(request: Request, exc: OperationCancelledError) -> JSONResponse:
    logger.info(f"Request cancelled: {exc}", extra={"path": request.url.path})
    return _error_response(HTTP_499_CLIENT_CLOSED_REQUEST, "cancelled", str(exc))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions.

    Full details are logged but not exposed to the client.
    """
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred. Please try again later.",
    )


def create_app() -> FastAPI:
    """Application factory.

    Builds a fresh app from current settings; tests call this after
    adjusting the environment.
    """
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    docs_enabled = settings.ENVIRONMENT != "production"
    application = FastAPI(
        title="Kindred Matching API",
        description="Compatibility scoring, preference learning and match ranking",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    # =========================================================================
    # MIDDLEWARE CONFIGURATION
    # =========================================================================

    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(ValidationError, domain_validation_handler)
    application.add_exception_handler(NotFoundError, not_found_handler)
    application.add_exception_handler(PersistenceError, persistence_error_handler)
    application.add_exception_handler(OperationCancelledError, cancelled_handler)
    application.add_exception_handler(Exception, generic_exception_handler)

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    application.include_router(observability_router)
    application.include_router(matching_router)

    @application.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {
            "name": "Kindred Matching API",
            "version": "0.1.0",
            "status": "running",
            "docs": "/docs" if docs_enabled else None,
        }

    return application


app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=get_settings().ENVIRONMENT == "development",
        log_level=get_settings().LOG_LEVEL.lower(),
    )
