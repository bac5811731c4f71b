"""API module.

Contains the versioned endpoint groups and the documentation routes.
"""

from app.api.docs import router as docs_router
from app.api.hello import register_hello_routes
from app.api.test_model import register_test_model_routes
from app.core.routing import RouteTable


def register_routes(table: RouteTable) -> None:
    """Register every versioned endpoint group on ``table``."""
    register_hello_routes(table)
    register_test_model_routes(table)


__all__ = ["docs_router", "register_routes"]
