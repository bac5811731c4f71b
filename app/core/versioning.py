"""URL-segment API versioning.

Requests address a version through the first segment after ``/api``::

    /api/v1/hello        -> version 1
    /api/v1.0/hello      -> version 1 (normalised to /api/v1/hello)
    /api/hello           -> default version (rewritten to /api/v1/hello)
    /api/v3/hello        -> left as is; the router answers 404

Versions are never negotiated through headers or query strings.

Examples:
    >>> resolve_version_path("/api/hello", versions=[1, 2], default=1)
    '/api/v1/hello'
    >>> format_reported_versions([1, 2])
    '1.0, 2.0'
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
SUPPORTED_VERSIONS_HEADER = "api-supported-versions"

_VERSION_SEGMENT = re.compile(r"^[vV](\d+)(?:\.0)?$")


def parse_version(segment: str) -> int | None:
    """Parse a version segment such as ``v1`` or ``v2.0``.

    Returns:
        The major version, or None if the segment is not a version.
    """
    match = _VERSION_SEGMENT.match(segment)
    if match is None:
        return None
    return int(match.group(1))


def format_version(version: int) -> str:
    """Format a version as used in URLs and document names (``v1``)."""
    return f"v{version}"


def format_reported_versions(versions: Iterable[int]) -> str:
    """Format versions for the api-supported-versions header (``1.0, 2.0``)."""
    return ", ".join(f"{version}.0" for version in sorted(versions))


def version_prefix(version: int) -> str:
    """Route prefix for a version (``/api/v1``)."""
    return f"{API_PREFIX}/{format_version(version)}"


def is_api_path(path: str) -> bool:
    return path == API_PREFIX or path.startswith(API_PREFIX + "/")


def resolve_version_path(path: str, versions: Iterable[int], default: int) -> str:
    """Resolve the version addressed by a request path.

    Args:
        path: The decoded request path.
        versions: Registered versions.
        default: Version assumed when the path carries no version segment.

    Returns:
        The path the router should match. Unregistered versions are kept
        so that routing fails with 404.
    """
    if not path.startswith(API_PREFIX + "/"):
        return path

    rest = path[len(API_PREFIX) + 1:]
    segment, sep, tail = rest.partition("/")

    version = parse_version(segment)
    if version is None:
        return f"{version_prefix(default)}/{rest}"

    if version not in set(versions):
        logger.debug(f"Request for unregistered API version {segment}: {path}")
        return path

    return f"{version_prefix(version)}{sep}{tail}"


class ApiVersionMiddleware(BaseHTTPMiddleware):
    """Resolve the API version segment before routing.

    Rewrites versionless ``/api`` paths to the default version and reports
    the supported versions on every ``/api`` response.
    """

    def __init__(
        self,
        app: ASGIApp,
        versions: Iterable[int],
        default: int,
        report_versions: bool = True,
    ) -> None:
        super().__init__(app)
        self.versions = tuple(sorted(versions))
        self.default = default
        self.report_versions = report_versions
        self._reported = format_reported_versions(self.versions)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.scope["path"]
        if not is_api_path(path):
            return await call_next(request)

        resolved = resolve_version_path(path, self.versions, self.default)
        if resolved != path:
            request.scope["path"] = resolved

        response = await call_next(request)
        if self.report_versions:
            response.headers[SUPPORTED_VERSIONS_HEADER] = self._reported
        return response
