"""Authentication interceptors.

The bearer gate runs in each route's interceptor chain. Routes that do not
require authorization pass straight through; protected routes need a valid
``Authorization: Bearer <token>`` header or the request ends with 401 before
the handler runs.

When authentication is disabled (AUTH_ENABLED=false) there is no validator
and the gate lets every request through.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from app.auth.jwt_handler import BearerTokenValidator
from app.core.interceptors import Interceptor
from app.core.routing import RouteSpec

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer"


def _unauthorized(message: str, error: str | None = None) -> JSONResponse:
    """Build the 401 response with a WWW-Authenticate challenge."""
    challenge = "Bearer"
    if error:
        description = message.replace('"', "'")
        challenge = f'Bearer error="{error}", error_description="{description}"'
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": message, "detail": None},
        headers={"WWW-Authenticate": challenge},
    )


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an Authorization header value, if it is a bearer one."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != BEARER_PREFIX or not token.strip():
        return None
    return token.strip()


def bearer_auth_gate(validator: BearerTokenValidator | None) -> Interceptor:
    """Interceptor enforcing bearer authentication on protected routes.

    Usage::

        table.mount(app, interceptors=[bearer_auth_gate(validator)])
    """

    async def _gate(request: Request, route: RouteSpec) -> Response | None:
        if not route.requires_auth or validator is None:
            return None

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            return _unauthorized("Missing or invalid Authorization header")

        try:
            claims = await run_in_threadpool(validator.validate, token)
        except ValueError as e:
            logger.info(f"Rejected bearer token for {route.method} {route.path}: {e}")
            return _unauthorized(str(e), error="invalid_token")

        request.state.token_claims = claims
        return None

    return _gate
