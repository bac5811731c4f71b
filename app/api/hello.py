"""Say Hello endpoints.

Endpoints:
    GET /api/v1/hello        - Fixed greeting (requires a bearer token)
    GET /api/v2/hello/{name} - Greeting for ``name`` (public)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Path

from app.core.routing import RouteTable
from app.schemas import ErrorResponse


def say_hello() -> str:
    return "Hello !"


def say_hello_to(
    name: Annotated[str, Path(description="The name of the person to say hello to.")],
) -> str:
    return f"Hello {name} !"


def register_hello_routes(table: RouteTable) -> None:
    """Register the Say Hello group for v1 and v2."""
    hello = table.versioned_api("Say Hello", tags=["Hello"])

    hello.group("/hello", version=1).get(
        "",
        say_hello,
        requires_auth=True,
        summary="Say Hello",
        description="This endpoint allows you to say hello",
        responses={401: {"description": "Unauthorized", "model": ErrorResponse}},
    )

    # {name:path} also matches empty names and names containing "/"
    hello.group("/hello", version=2).get(
        "/{name:path}",
        say_hello_to,
        summary="Say Hello to someone",
        description=(
            "This endpoint allows you to say hello to someone by providing their name"
        ),
        responses={400: {"description": "Bad request", "model": ErrorResponse}},
    )
