"""Versioned route table.

Endpoint groups are declared per API version and bound to handlers, then
mounted on a FastAPI application with the interceptor chain attached to
every route.

Examples:
    >>> table = RouteTable(versions=[1, 2])
    >>> hello = table.versioned_api("Say Hello", tags=["Hello"])
    >>> hello.group("/hello", version=1).get("", say_hello, requires_auth=True)
    >>> table.mount(app, interceptors=[record_api_version])

Tests:
    - tests/unit/test_routing.py
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

from fastapi import Depends, FastAPI
from fastapi.responses import PlainTextResponse
from starlette.responses import Response

from app.core.interceptors import Interceptor, InterceptorChain
from app.core.versioning import format_version, version_prefix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteSpec:
    """Declarative description of one versioned route."""

    method: str
    path: str
    version: int
    group: str
    tags: tuple[str, ...]
    requires_auth: bool
    operation_id: str
    summary: str | None = None
    description: str | None = None


@dataclass
class RouteBinding:
    """A route spec bound to its handler and response declarations."""

    spec: RouteSpec
    endpoint: Callable[..., Any]
    response_class: type[Response] = PlainTextResponse
    responses: dict[int | str, dict[str, Any]] = field(default_factory=dict)


class RouteTable:
    """Registry of versioned routes."""

    def __init__(self, versions: Iterable[int]) -> None:
        self.versions = tuple(sorted(set(versions)))
        self._bindings: list[RouteBinding] = []

    def versioned_api(self, group: str, tags: Sequence[str] = ()) -> VersionedApi:
        """Declare a named endpoint group spanning one or more versions."""
        return VersionedApi(self, group, tuple(tags) or (group,))

    def register(self, binding: RouteBinding) -> RouteSpec:
        """Add a binding to the table.

        Raises:
            ValueError: If the version is not registered or the method and
                path are already bound.
        """
        spec = binding.spec
        if spec.version not in self.versions:
            raise ValueError(
                f"API version {format_version(spec.version)} is not registered "
                f"(registered: {', '.join(format_version(v) for v in self.versions)})"
            )
        for existing in self._bindings:
            if existing.spec.method == spec.method and existing.spec.path == spec.path:
                raise ValueError(f"Route {spec.method} {spec.path} is already registered")
            if existing.spec.operation_id == spec.operation_id:
                raise ValueError(f"Operation id {spec.operation_id} is already registered")

        self._bindings.append(binding)
        return spec

    @property
    def routes(self) -> tuple[RouteSpec, ...]:
        return tuple(binding.spec for binding in self._bindings)

    def for_version(self, version: int) -> tuple[RouteSpec, ...]:
        """Routes registered for a version."""
        return tuple(spec for spec in self.routes if spec.version == version)

    def protected_operation_ids(self, version: int) -> frozenset[str]:
        """Operation ids of the version's routes that require authorization."""
        return frozenset(
            spec.operation_id for spec in self.for_version(version) if spec.requires_auth
        )

    def mount(self, app: FastAPI, interceptors: Sequence[Interceptor]) -> None:
        """Add every bound route to the application."""
        for binding in self._bindings:
            spec = binding.spec
            app.add_api_route(
                spec.path,
                binding.endpoint,
                methods=[spec.method],
                name=spec.operation_id,
                operation_id=spec.operation_id,
                tags=list(spec.tags),
                summary=spec.summary,
                description=spec.description,
                response_class=binding.response_class,
                responses=binding.responses or None,
                dependencies=[Depends(InterceptorChain(spec, interceptors))],
            )
            logger.debug(
                f"Mounted {spec.method} {spec.path} "
                f"({'protected' if spec.requires_auth else 'public'})"
            )


class VersionedApi:
    """A named endpoint group, e.g. "Say Hello"."""

    def __init__(self, table: RouteTable, name: str, tags: tuple[str, ...]) -> None:
        self.table = table
        self.name = name
        self.tags = tags

    def group(self, base_path: str, version: int) -> VersionedGroup:
        """Bind the group's base path under a version prefix."""
        return VersionedGroup(self, base_path, version)


class VersionedGroup:
    """Handler binding point for one group at one version."""

    def __init__(self, api: VersionedApi, base_path: str, version: int) -> None:
        self.api = api
        self.version = version
        self.prefix = version_prefix(version) + base_path.rstrip("/")

    def get(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> RouteSpec:
        return self.map("GET", path, endpoint, **kwargs)

    def post(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> RouteSpec:
        return self.map("POST", path, endpoint, **kwargs)

    def map(
        self,
        method: str,
        path: str,
        endpoint: Callable[..., Any],
        *,
        requires_auth: bool = False,
        summary: str | None = None,
        description: str | None = None,
        responses: dict[int | str, dict[str, Any]] | None = None,
        response_class: type[Response] = PlainTextResponse,
        operation_id: str | None = None,
    ) -> RouteSpec:
        """Bind a handler to ``method`` at the group prefix plus ``path``."""
        spec = RouteSpec(
            method=method.upper(),
            path=self.prefix + path,
            version=self.version,
            group=self.api.name,
            tags=self.api.tags,
            requires_auth=requires_auth,
            operation_id=operation_id
            or f"{endpoint.__name__}_{format_version(self.version)}",
            summary=summary,
            description=description,
        )
        return self.api.table.register(
            RouteBinding(
                spec=spec,
                endpoint=endpoint,
                response_class=response_class,
                responses=dict(responses or {}),
            )
        )
