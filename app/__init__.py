"""Versioned API demo service.

FastAPI service demonstrating generated OpenAPI documents, URL-segment
API versioning and JWT bearer authentication.
"""

__version__ = "1.0.0"
