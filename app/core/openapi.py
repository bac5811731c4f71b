"""OpenAPI document builder.

One document is built per API version from the routes the route table
registered for it. FastAPI generates the paths and schemas; the functions
below then derive the final document. Each of them returns a new dict and
leaves its input untouched, so building twice yields the same document.

Examples:
    >>> document = build_document(
    ...     app.routes, table, version=1, service_name="Demo",
    ...     security_scheme=BEARER_SCHEME,
    ... )
    >>> document["info"]["title"]
    'Demo | v1'
    >>> document["components"]["securitySchemes"]["Bearer"]["bearerFormat"]
    'JWT'

Tests:
    - tests/unit/test_openapi.py
    - tests/integration/test_api_docs.py
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Collection, Iterable

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.routing import APIRoute
from starlette.routing import BaseRoute

from app.core.routing import RouteTable
from app.core.versioning import format_version

logger = logging.getLogger(__name__)

DOCUMENT_DESCRIPTION = (
    "Service demonstrating FastAPI's generated OpenAPI documents with "
    "URL-segment API versioning, JWT bearer authentication and the Scalar UI"
)

INTERNAL_ERROR_RESPONSE: dict[str, Any] = {"description": "Internal server error"}

HTTP_METHODS = frozenset(
    {"get", "put", "post", "delete", "options", "head", "patch", "trace"}
)


@dataclass(frozen=True)
class SecurityScheme:
    """An HTTP authentication scheme referenced by protected operations."""

    name: str = "Bearer"
    header: str = "Authorization"
    scheme: str = "bearer"
    bearer_format: str = "JWT"
    description: str = "JWT access token sent as `Authorization: Bearer <token>`"

    def to_openapi(self) -> dict[str, Any]:
        return {
            "type": "http",
            "scheme": self.scheme,
            "bearerFormat": self.bearer_format,
            "in": "header",
            "name": self.header,
            "description": self.description,
        }

    def requirement(self) -> dict[str, list[str]]:
        return {self.name: []}


BEARER_SCHEME = SecurityScheme()


def document_title(service_name: str, version: int) -> str:
    return f"{service_name} | {format_version(version)}"


def _operations(document: dict[str, Any]) -> Iterable[dict[str, Any]]:
    for path_item in document.get("paths", {}).values():
        for method, operation in path_item.items():
            if method in HTTP_METHODS:
                yield operation


def with_default_responses(
    document: dict[str, Any],
    responses: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """Declare ``responses`` on every operation that does not declare them."""
    document = copy.deepcopy(document)
    for operation in _operations(document):
        declared = operation.setdefault("responses", {})
        for status_code, response in responses.items():
            declared.setdefault(status_code, copy.deepcopy(response))
    return document


def with_bad_request_responses(document: dict[str, Any]) -> dict[str, Any]:
    """Document validation failures as 400 instead of FastAPI's 422."""
    document = copy.deepcopy(document)
    for operation in _operations(document):
        declared = operation.get("responses", {})
        validation = declared.pop("422", None)
        if validation is None or "400" in declared:
            continue
        bad_request: dict[str, Any] = {"description": "Bad Request"}
        if "content" in validation:
            bad_request["content"] = validation["content"]
        declared["400"] = bad_request
    return document


def with_json_error_responses(
    document: dict[str, Any],
    media_type: str = "application/json",
) -> dict[str, Any]:
    """Document 4xx/5xx bodies under ``media_type``.

    Error bodies are always JSON, even on routes whose success response is
    plain text, while FastAPI files them under the route's media type.
    """
    document = copy.deepcopy(document)
    for operation in _operations(document):
        for status_code, response in operation.get("responses", {}).items():
            content = response.get("content")
            if not content or not str(status_code).startswith(("4", "5")):
                continue
            if media_type in content:
                response["content"] = {media_type: content[media_type]}
            else:
                response["content"] = {media_type: next(iter(content.values()))}
    return document


def with_security_scheme(
    document: dict[str, Any],
    scheme: SecurityScheme,
    protected_operation_ids: Collection[str],
) -> dict[str, Any]:
    """Add ``scheme`` and reference it from the protected operations.

    Protected operations get ``security: [{<scheme>: []}]``; every other
    operation gets an explicit empty list so the document-level requirement
    does not apply to it.
    """
    document = copy.deepcopy(document)
    components = document.setdefault("components", {})
    components["securitySchemes"] = {scheme.name: scheme.to_openapi()}

    for operation in _operations(document):
        if operation.get("operationId") in protected_operation_ids:
            operation["security"] = [scheme.requirement()]
        else:
            operation["security"] = []

    document["security"] = [scheme.requirement()]
    return document


def build_document(
    routes: Iterable[BaseRoute],
    table: RouteTable,
    *,
    version: int,
    service_name: str,
    security_scheme: SecurityScheme | None,
    description: str = DOCUMENT_DESCRIPTION,
) -> dict[str, Any]:
    """Build the OpenAPI document for one API version.

    Args:
        routes: The application's routes.
        table: Route table declaring which routes belong to ``version``.
        version: API version to document.
        service_name: Service name used in the title.
        security_scheme: Scheme required by protected routes, or None when
            authentication is disabled.
        description: Document description.

    Returns:
        A new OpenAPI document dict.
    """
    operation_ids = {spec.operation_id for spec in table.for_version(version)}
    version_routes = [
        route
        for route in routes
        if isinstance(route, APIRoute) and route.operation_id in operation_ids
    ]

    document = get_openapi(
        title=document_title(service_name, version),
        version=format_version(version),
        description=description,
        routes=version_routes,
    )
    document = with_bad_request_responses(document)
    document = with_json_error_responses(document)
    document = with_default_responses(document, {"500": INTERNAL_ERROR_RESPONSE})
    if security_scheme is not None:
        document = with_security_scheme(
            document,
            security_scheme,
            table.protected_operation_ids(version),
        )
    return document


class DocumentRegistry:
    """Per-version OpenAPI documents for an application.

    Documents are built at startup by `build_all` or on first access.
    """

    def __init__(
        self,
        app: FastAPI,
        table: RouteTable,
        *,
        service_name: str,
        security_scheme: SecurityScheme | None,
        description: str = DOCUMENT_DESCRIPTION,
    ) -> None:
        self.app = app
        self.table = table
        self.service_name = service_name
        self.security_scheme = security_scheme
        self.description = description
        self._documents: dict[int, dict[str, Any]] = {}

    @property
    def versions(self) -> tuple[int, ...]:
        return self.table.versions

    def _build(self, version: int) -> dict[str, Any]:
        document = build_document(
            self.app.routes,
            self.table,
            version=version,
            service_name=self.service_name,
            security_scheme=self.security_scheme,
            description=self.description,
        )
        logger.info(
            f"Built OpenAPI document {format_version(version)} "
            f"with {len(document.get('paths', {}))} paths"
        )
        return document

    def build_all(self) -> None:
        for version in self.versions:
            self._documents[version] = self._build(version)

    def get(self, version: int) -> dict[str, Any]:
        """Return a copy of the document for ``version``.

        Raises:
            KeyError: If the version is not registered.
        """
        if version not in self.versions:
            raise KeyError(format_version(version))
        if version not in self._documents:
            self._documents[version] = self._build(version)
        return copy.deepcopy(self._documents[version])
