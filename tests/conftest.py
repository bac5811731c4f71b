"""
Pytest configuration and fixtures for the versioned API demo tests.

Tokens are signed with an RSA key pair generated once per session; the
application under test is configured with the matching public key so no
OIDC discovery happens.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generator

import jwt as pyjwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.main import create_app


TEST_SERVICE_NAME = "Test Service"
TEST_ISSUER = "https://localhost:443"
TEST_AUDIENCE = "api_scope"
TEST_KEY_ID = "test-key"


# ============================================
# Keys & Tokens
# ============================================

@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """RSA key the test authority signs tokens with."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key() -> rsa.RSAPrivateKey:
    """An unrelated RSA key, for signature failures."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture(scope="session")
def make_token(rsa_private_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    """Factory for signed test tokens.

    Keyword arguments override claims; a claim set to None is removed.
    ``key`` and ``headers`` replace the signing key and JOSE header.
    """

    def _make(key: Any = None, headers: dict[str, Any] | None = None, **claims: Any) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": "user-123",
            "iss": TEST_ISSUER,
            "aud": TEST_AUDIENCE,
            "iat": now,
            "exp": now + timedelta(minutes=15),
            "scope": "api.read",
        }
        payload.update(claims)
        payload = {name: value for name, value in payload.items() if value is not None}

        return pyjwt.encode(
            payload,
            key if key is not None else rsa_private_key,
            algorithm="RS256",
            headers=headers if headers is not None else {"kid": TEST_KEY_ID},
        )

    return _make


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


# ============================================
# Application
# ============================================

@pytest.fixture(scope="session")
def test_settings(public_key_pem: str) -> Settings:
    """Settings validating tokens against the session's public key."""
    return Settings(
        _env_file=None,
        SERVICE_NAME=TEST_SERVICE_NAME,
        JWT_ISSUER=TEST_ISSUER,
        JWT_AUDIENCE=TEST_AUDIENCE,
        JWT_SIGNING_KEY=public_key_pem,
        DEBUG=False,
    )


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def async_client(app: FastAPI):
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


# ============================================
# Pytest Configuration
# ============================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "fast: Fast unit tests (no network)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests exercising the full application"
    )
