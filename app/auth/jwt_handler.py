"""Bearer JWT validation.

Tokens are issued by an external authority. A token is accepted when its
signature verifies against the authority's signing key, its issuer and
audience match the configured values, and it has not expired.

The signing key is either configured statically (JWT_SIGNING_KEY) or taken
from the authority's published key set, located through OIDC discovery
(``<authority>/.well-known/openid-configuration`` -> ``jwks_uri``).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx
import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError

from app.config import Settings

logger = logging.getLogger(__name__)

_DISCOVERY_TIMEOUT = 10.0


class SigningKeyUnavailableError(RuntimeError):
    """The authority's signing keys could not be retrieved."""


@dataclass
class TokenClaims:
    """Claims from a validated bearer token."""

    sub: str | None
    issuer: str
    audience: str | list[str]
    scopes: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)


def _parse_scopes(payload: dict[str, Any]) -> list[str]:
    scope = payload.get("scope", payload.get("scp", []))
    if isinstance(scope, str):
        return scope.split()
    return list(scope)


class BearerTokenValidator:
    """Validate bearer tokens for a single issuer and audience.

    Args:
        issuer: The accepted ``iss`` claim.
        audience: The accepted ``aud`` claim.
        algorithms: Accepted signing algorithms.
        signing_key: Static verification key. When None, keys are resolved
            from the authority's JWKS.
        metadata_url: OIDC discovery document URL.
        leeway: Clock skew tolerance in seconds.
        jwks_cache_ttl: Seconds before the JWKS client is recreated.
    """

    def __init__(
        self,
        issuer: str,
        audience: str,
        algorithms: Sequence[str] = ("RS256",),
        signing_key: str | None = None,
        metadata_url: str | None = None,
        leeway: int = 0,
        jwks_cache_ttl: int = 86400,
    ) -> None:
        if signing_key is None and metadata_url is None:
            raise ValueError("Either signing_key or metadata_url is required")
        self.issuer = issuer
        self.audience = audience
        self.algorithms = list(algorithms)
        self.signing_key = signing_key
        self.metadata_url = metadata_url
        self.leeway = leeway
        self.jwks_cache_ttl = jwks_cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._jwks_client_created_at: float = 0.0
        self._jwks_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> BearerTokenValidator:
        return cls(
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            algorithms=settings.JWT_ALGORITHMS,
            signing_key=settings.JWT_SIGNING_KEY,
            metadata_url=settings.metadata_url,
            leeway=settings.JWT_CLOCK_SKEW_SECONDS,
            jwks_cache_ttl=settings.JWKS_CACHE_TTL_SECONDS,
        )

    def _discover_jwks_uri(self) -> str:
        """Read ``jwks_uri`` from the authority's discovery document."""
        try:
            response = httpx.get(self.metadata_url, timeout=_DISCOVERY_TIMEOUT)
            response.raise_for_status()
            jwks_uri = response.json()["jwks_uri"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error(f"OIDC discovery failed for {self.metadata_url}: {e}")
            raise SigningKeyUnavailableError(
                f"Unable to obtain configuration from {self.metadata_url}"
            ) from e

        logger.info(f"Discovered signing keys at {jwks_uri}")
        return jwks_uri

    def _get_jwks_client(self) -> PyJWKClient:
        """Get or create the cached JWKS client."""
        with self._jwks_lock:
            now = time.time()
            if (
                self._jwks_client is None
                or (now - self._jwks_client_created_at) > self.jwks_cache_ttl
            ):
                self._jwks_client = PyJWKClient(self._discover_jwks_uri(), cache_keys=True)
                self._jwks_client_created_at = now

            return self._jwks_client

    def _resolve_key(self, header: dict[str, Any]) -> Any:
        if self.signing_key is not None:
            return self.signing_key

        kid = header.get("kid")
        if not kid:
            raise jwt.InvalidTokenError("Token header has no key id")

        try:
            return self._get_jwks_client().get_signing_key(kid).key
        except PyJWKClientConnectionError as e:
            logger.error(f"Fetching signing keys failed: {e}")
            raise SigningKeyUnavailableError(str(e)) from e

    def validate(self, token: str) -> TokenClaims:
        """Validate a bearer token and extract its claims.

        Args:
            token: The encoded JWT, without the ``Bearer`` prefix.

        Returns:
            TokenClaims of the validated token.

        Raises:
            ValueError: If the token is malformed, expired, or fails the
                signature, issuer or audience checks.
            SigningKeyUnavailableError: If the authority's keys cannot be
                fetched.
        """
        try:
            header = jwt.get_unverified_header(token)
            key = self._resolve_key(header)
            payload: dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Bearer token has expired")
        except jwt.InvalidAudienceError:
            raise ValueError("Bearer token audience is invalid")
        except jwt.InvalidIssuerError:
            raise ValueError("Bearer token issuer is invalid")
        except jwt.InvalidSignatureError:
            raise ValueError("Bearer token signature is invalid")
        except jwt.PyJWTError as e:
            raise ValueError(f"Invalid bearer token: {e}")

        return TokenClaims(
            sub=payload.get("sub"),
            issuer=payload["iss"],
            audience=payload["aud"],
            scopes=_parse_scopes(payload),
            raw=payload,
        )
