"""Application configuration with Pydantic Settings.

This module provides centralized configuration management using pydantic-settings.
Settings are loaded from environment variables and .env files, validated once
at startup and passed explicitly to the components that need them.

Examples:
    >>> from app.config import get_settings
    >>> settings = get_settings()
    >>> settings.JWT_AUDIENCE
    'api_scope'

    >>> settings.get_docs_config()["theme"]
    'kepler'

Tests:
    - tests/unit/test_config.py::TestSettings::test_service_name_required
    - tests/unit/test_config.py::TestSettings::test_default_version_must_be_registered
"""

from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class DocsTheme(str, Enum):
    """Themes bundled with the Scalar API reference."""

    DEFAULT = "default"
    ALTERNATE = "alternate"
    MOON = "moon"
    PURPLE = "purple"
    SOLARIZED = "solarized"
    BLUE_PLANET = "bluePlanet"
    SATURN = "saturn"
    KEPLER = "kepler"
    MARS = "mars"
    DEEP_SPACE = "deepSpace"
    NONE = "none"


DEFAULT_JWT_AUTHORITY = "https://localhost:443"
DEFAULT_JWT_AUDIENCE = "api_scope"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables and .env file.
    SERVICE_NAME (or ServiceName) is required; the application refuses to
    start without it.

    Attributes:
        SERVICE_NAME: Display name used in document titles and the docs UI
        JWT_AUTHORITY: Token authority, also used for OIDC discovery
        JWT_ISSUER: The single accepted `iss` claim
        JWT_AUDIENCE: The single accepted `aud` claim
        JWT_SIGNING_KEY: Static verification key; skips discovery when set
        API_VERSIONS: Registered API versions
        DEFAULT_API_VERSION: Version used when a request path has none
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # Service
    SERVICE_NAME: str = Field(
        validation_alias=AliasChoices("SERVICE_NAME", "ServiceName"),
        description="Service display name",
    )
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment; production forbids AUTH_ENABLED=false and DEBUG",
    )
    DEBUG: bool = Field(
        default=False,
        description="Expose exception details in error responses",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root logging level",
    )

    # Authentication
    AUTH_ENABLED: bool = Field(
        default=True,
        description="Require bearer tokens on protected routes",
    )
    JWT_AUTHORITY: str = Field(
        default=DEFAULT_JWT_AUTHORITY,
        description="Token authority (OIDC discovery base URL)",
    )
    JWT_ISSUER: str = Field(
        default=DEFAULT_JWT_AUTHORITY,
        description="Accepted token issuer",
    )
    JWT_AUDIENCE: str = Field(
        default=DEFAULT_JWT_AUDIENCE,
        description="Accepted token audience",
    )
    JWT_ALGORITHMS: list[str] = Field(
        default=["RS256"],
        description="Accepted signing algorithms",
    )
    JWT_SIGNING_KEY: str | None = Field(
        default=None,
        description="Static verification key (PEM public key or shared secret)",
    )
    JWT_METADATA_URL: str | None = Field(
        default=None,
        description="OIDC discovery document URL (defaults to the authority's)",
    )
    JWT_CLOCK_SKEW_SECONDS: int = Field(
        default=300,
        description="Leeway applied to exp/nbf/iat checks",
        ge=0,
    )
    JWKS_CACHE_TTL_SECONDS: int = Field(
        default=86400,
        description="How long the issuer's key set client is reused",
        ge=60,
    )

    # Versioning
    API_VERSIONS: list[int] = Field(
        default=[1, 2],
        description="Registered API versions",
    )
    DEFAULT_API_VERSION: int = Field(
        default=1,
        description="Version assumed when the request path has none",
    )
    REPORT_API_VERSIONS: bool = Field(
        default=True,
        description="Send the api-supported-versions response header",
    )

    # Transport
    HTTPS_REDIRECT: bool = Field(
        default=False,
        description="Redirect plain HTTP requests to HTTPS",
    )
    CORS_ORIGINS: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    # Documentation UI
    DOCS_ENABLED: bool = Field(
        default=True,
        description="Serve OpenAPI documents and the Scalar UI",
    )
    DOCS_THEME: DocsTheme = Field(default=DocsTheme.KEPLER)
    DOCS_DARK_MODE: bool = Field(default=True)
    DOCS_DARK_MODE_TOGGLE: bool = Field(default=True)
    DOCS_FORCE_DARK_MODE: bool = Field(default=True)
    DOCS_SHOW_SIDEBAR: bool = Field(default=True)
    DOCS_PREFERRED_SCHEME: str = Field(default="Bearer")
    DOCS_HTTP_CLIENT_TARGET: str = Field(default="python")
    DOCS_HTTP_CLIENT: str = Field(default="requests")
    DOCS_CDN_URL: str = Field(
        default="https://cdn.jsdelivr.net/npm/@scalar/api-reference",
        description="Scalar API reference bundle",
    )

    @field_validator("SERVICE_NAME")
    @classmethod
    def validate_service_name(cls, v: str) -> str:
        """Reject blank service names."""
        if not v.strip():
            raise ValueError("SERVICE_NAME is missing in the configuration")
        return v.strip()

    @field_validator("API_VERSIONS")
    @classmethod
    def validate_api_versions(cls, v: list[int]) -> list[int]:
        """Ensure versions are positive and unique, sorted ascending."""
        if not v:
            raise ValueError("API_VERSIONS must contain at least one version")
        if any(version < 1 for version in v):
            raise ValueError("API_VERSIONS must be positive integers")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_default_version(self) -> "Settings":
        """Ensure the default version is one of the registered versions."""
        if self.DEFAULT_API_VERSION not in self.API_VERSIONS:
            raise ValueError(
                f"DEFAULT_API_VERSION {self.DEFAULT_API_VERSION} is not one of "
                f"API_VERSIONS {self.API_VERSIONS}"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Refuse development-only settings in production."""
        if not self.is_production:
            return self
        if not self.AUTH_ENABLED:
            raise ValueError("AUTH_ENABLED cannot be false in production")
        if self.DEBUG:
            raise ValueError("DEBUG cannot be enabled in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def metadata_url(self) -> str:
        """OIDC discovery document URL for the token authority."""
        if self.JWT_METADATA_URL:
            return self.JWT_METADATA_URL
        return f"{self.JWT_AUTHORITY.rstrip('/')}/.well-known/openid-configuration"

    def get_docs_config(self) -> dict[str, Any]:
        """Get the Scalar API reference configuration.

        Returns:
            dict: Cosmetic options understood by the Scalar bundle.
        """
        return {
            "theme": self.DOCS_THEME.value,
            "darkMode": self.DOCS_DARK_MODE,
            "hideDarkModeToggle": not self.DOCS_DARK_MODE_TOGGLE,
            "forceDarkModeState": "dark" if self.DOCS_FORCE_DARK_MODE else None,
            "showSidebar": self.DOCS_SHOW_SIDEBAR,
            "defaultHttpClient": {
                "targetKey": self.DOCS_HTTP_CLIENT_TARGET,
                "clientKey": self.DOCS_HTTP_CLIENT,
            },
            "authentication": {
                "preferredSecurityScheme": self.DOCS_PREFERRED_SCHEME,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: The application settings.

    Raises:
        pydantic.ValidationError: If required settings are missing or invalid.

    Examples:
        >>> settings = get_settings()
        >>> settings.API_VERSIONS
        [1, 2]
    """
    return Settings()
