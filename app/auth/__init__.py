"""Auth module - bearer JWT validation and the authentication gate."""

from app.auth.dependencies import bearer_auth_gate, extract_bearer_token
from app.auth.jwt_handler import (
    BearerTokenValidator,
    SigningKeyUnavailableError,
    TokenClaims,
)

__all__ = [
    "BearerTokenValidator",
    "SigningKeyUnavailableError",
    "TokenClaims",
    "bearer_auth_gate",
    "extract_bearer_token",
]
