"""FastAPI application for the versioned API demo service.

This module provides the application factory: configuration, versioning,
the authentication gate, versioned routes, OpenAPI documents and the
Scalar API reference are wired together in `create_app`.

Run with:
    uvicorn app.main:create_app --factory --reload

Examples:
    >>> # Say hello (v2, public)
    >>> curl http://localhost:8000/api/v2/hello/Ada

    >>> # API reference
    >>> # Open http://localhost:8000/scalar

Tests:
    - tests/unit/test_main.py
    - tests/integration/test_api_hello.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.responses import Response

from app import __version__
from app.api import docs_router, register_routes
from app.auth import BearerTokenValidator, bearer_auth_gate
from app.config import Settings, get_settings
from app.core.interceptors import RequestIntercepted, record_api_version
from app.core.openapi import BEARER_SCHEME, DOCUMENT_DESCRIPTION, DocumentRegistry
from app.core.routing import RouteTable
from app.core.versioning import (
    SUPPORTED_VERSIONS_HEADER,
    ApiVersionMiddleware,
    format_reported_versions,
    format_version,
    is_api_path,
)
from app.schemas import HealthResponse

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Builds the OpenAPI document of every registered version on startup.
    """
    settings: Settings = app.state.settings
    logger.info(
        f"Starting {settings.SERVICE_NAME} v{__version__} ({settings.ENVIRONMENT.value})"
    )

    app.state.documents.build_all()
    logger.info(
        "Serving API versions "
        f"{', '.join(format_version(v) for v in settings.API_VERSIONS)} "
        f"(default {format_version(settings.DEFAULT_API_VERSION)})"
    )

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME}")


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Install the service's error response format."""

    @app.exception_handler(RequestIntercepted)
    async def intercepted_handler(request: Request, exc: RequestIntercepted) -> Response:
        """Return the terminal response produced by an interceptor."""
        return exc.response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with consistent response format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "detail": None},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Reject malformed input with 400."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Bad request", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(f"Unexpected error: {exc}")

        if settings.DEBUG:
            detail = str(exc)
        else:
            detail = None

        # Runs outside ApiVersionMiddleware, which never sees this response
        headers = None
        if settings.REPORT_API_VERSIONS and is_api_path(request.url.path):
            headers = {
                SUPPORTED_VERSIONS_HEADER: format_reported_versions(settings.API_VERSIONS)
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "detail": detail},
            headers=headers,
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the application.

    Args:
        settings: Application settings. Loaded from the environment when
            omitted.

    Returns:
        The configured FastAPI application.

    Raises:
        pydantic.ValidationError: If required configuration (SERVICE_NAME)
            is missing or invalid.
        ValueError: If a route is registered for an unknown version.
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description=DOCUMENT_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings

    # Last added runs first: HTTPS redirect, CORS, then version resolution
    app.add_middleware(
        ApiVersionMiddleware,
        versions=settings.API_VERSIONS,
        default=settings.DEFAULT_API_VERSION,
        report_versions=settings.REPORT_API_VERSIONS,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.HTTPS_REDIRECT:
        app.add_middleware(HTTPSRedirectMiddleware)

    validator = None
    if settings.AUTH_ENABLED:
        validator = BearerTokenValidator.from_settings(settings)
    else:
        logger.warning("Authentication is disabled; protected routes are open")

    table = RouteTable(settings.API_VERSIONS)
    register_routes(table)
    table.mount(app, interceptors=[record_api_version, bearer_auth_gate(validator)])
    app.state.route_table = table

    app.state.documents = DocumentRegistry(
        app,
        table,
        service_name=settings.SERVICE_NAME,
        security_scheme=BEARER_SCHEME if validator is not None else None,
    )
    if settings.DOCS_ENABLED:
        app.include_router(docs_router)

    register_exception_handlers(app, settings)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Check application health."""
        return HealthResponse(
            status="healthy",
            service=settings.SERVICE_NAME,
            version=__version__,
            api_versions=[format_version(v) for v in settings.API_VERSIONS],
            auth_enabled=settings.AUTH_ENABLED,
        )

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint with basic info."""
        info = {
            "name": settings.SERVICE_NAME,
            "version": __version__,
            "health": "/health",
        }
        if settings.DOCS_ENABLED:
            info["docs"] = "/scalar"
        return info

    return app


# Entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
