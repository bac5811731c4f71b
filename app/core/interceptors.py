"""Request interceptor chain.

An interceptor looks at a request and the route it matched and either lets
it continue (returns None) or ends it with a terminal response. Chains run
in order and stop at the first terminal response, before the route handler
is called.

Each mounted route gets one `InterceptorChain` dependency; a terminal
response is carried out of the dependency by `RequestIntercepted` and
returned by the application's exception handler.

Examples:
    >>> chain = compose(record_api_version, bearer_auth_gate(validator))
    >>> response = await chain(request, route)
    >>> response is None  # continue to the handler
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from fastapi import Request
from starlette.responses import Response

if TYPE_CHECKING:
    from app.core.routing import RouteSpec

Interceptor = Callable[[Request, "RouteSpec"], Awaitable[Response | None]]


class RequestIntercepted(Exception):
    """Raised when an interceptor ends the request early."""

    def __init__(self, response: Response) -> None:
        super().__init__(f"Request intercepted with status {response.status_code}")
        self.response = response


async def run_interceptors(
    interceptors: Sequence[Interceptor],
    request: Request,
    route: RouteSpec,
) -> Response | None:
    """Run interceptors in order.

    Returns:
        The first terminal response, or None if every interceptor continued.
    """
    for interceptor in interceptors:
        response = await interceptor(request, route)
        if response is not None:
            return response
    return None


def compose(*interceptors: Interceptor) -> Interceptor:
    """Compose interceptors into a single interceptor."""

    async def _composed(request: Request, route: RouteSpec) -> Response | None:
        return await run_interceptors(interceptors, request, route)

    return _composed


async def record_api_version(request: Request, route: RouteSpec) -> Response | None:
    """Expose the matched route's API version on ``request.state``."""
    request.state.api_version = route.version
    return None


class InterceptorChain:
    """FastAPI dependency running an interceptor chain for one route."""

    def __init__(self, route: RouteSpec, interceptors: Sequence[Interceptor]) -> None:
        self.route = route
        self.interceptors = tuple(interceptors)

    async def __call__(self, request: Request) -> None:
        response = await run_interceptors(self.interceptors, request, self.route)
        if response is not None:
            raise RequestIntercepted(response)
