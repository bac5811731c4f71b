"""Core components: versioning, routing, interceptors and OpenAPI documents."""

from app.core.interceptors import (
    Interceptor,
    InterceptorChain,
    RequestIntercepted,
    compose,
    record_api_version,
    run_interceptors,
)
from app.core.routing import RouteSpec, RouteTable, VersionedApi, VersionedGroup
from app.core.versioning import ApiVersionMiddleware, resolve_version_path

__all__ = [
    "ApiVersionMiddleware",
    "Interceptor",
    "InterceptorChain",
    "RequestIntercepted",
    "RouteSpec",
    "RouteTable",
    "VersionedApi",
    "VersionedGroup",
    "compose",
    "record_api_version",
    "resolve_version_path",
    "run_interceptors",
]
