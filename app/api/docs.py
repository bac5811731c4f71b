"""OpenAPI documents and the Scalar API reference.

Endpoints:
    GET /openapi/{document}.json - OpenAPI document for a version (e.g. v1)
    GET /scalar                  - API reference for the default version
    GET /scalar/{document}       - API reference for a version
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from app.config import Settings
from app.core.docs_ui import render_scalar_page
from app.core.openapi import DocumentRegistry
from app.core.versioning import format_version, parse_version

router = APIRouter(tags=["docs"], include_in_schema=False)


def _resolve_document(request: Request, document_name: str) -> int:
    """Map a document name to a registered version or raise 404."""
    registry: DocumentRegistry = request.app.state.documents
    version = parse_version(document_name)
    if version is None or version not in registry.versions:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"OpenAPI document '{document_name}' not found",
        )
    return version


def document_url(version: int) -> str:
    return f"/openapi/{format_version(version)}.json"


@router.get("/openapi/{document_name}.json")
async def get_openapi_document(request: Request, document_name: str) -> JSONResponse:
    """Return the OpenAPI document for one API version."""
    version = _resolve_document(request, document_name)
    registry: DocumentRegistry = request.app.state.documents
    return JSONResponse(content=registry.get(version))


def _scalar_response(settings: Settings, version: int) -> HTMLResponse:
    page = render_scalar_page(
        title=settings.SERVICE_NAME,
        document_url=document_url(version),
        configuration=settings.get_docs_config(),
        cdn_url=settings.DOCS_CDN_URL,
    )
    return HTMLResponse(content=page)


@router.get("/scalar", response_class=HTMLResponse)
async def scalar_default(request: Request) -> HTMLResponse:
    """Render the API reference for the default version."""
    settings: Settings = request.app.state.settings
    return _scalar_response(settings, settings.DEFAULT_API_VERSION)


@router.get("/scalar/{document_name}", response_class=HTMLResponse)
async def scalar_document(request: Request, document_name: str) -> HTMLResponse:
    """Render the API reference for one API version."""
    version = _resolve_document(request, document_name)
    return _scalar_response(request.app.state.settings, version)
