"""Unit tests for FastAPI application.

Tests for app/main.py - application factory, endpoints and error handling.

Run with:
    pytest tests/unit/test_main.py -v
    pytest tests/unit/test_main.py -v -m fast
"""

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app import __version__
from app.config import Settings, get_settings
from app.main import create_app


@pytest.mark.fast
class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_root_returns_info(self, async_client, test_settings):
        """Test root endpoint returns application info."""
        response = await async_client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == test_settings.SERVICE_NAME
        assert data["version"] == __version__
        assert data["docs"] == "/scalar"
        assert data["health"] == "/health"


@pytest.mark.fast
class TestHealthEndpoint:
    """Tests for health endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_status(self, async_client, test_settings):
        """Test health endpoint returns status."""
        response = await async_client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == test_settings.SERVICE_NAME
        assert data["api_versions"] == ["v1", "v2"]
        assert data["auth_enabled"] is True

    def test_health_not_versioned(self, client):
        """Test non-API paths carry no version header."""
        response = client.get("/health")
        assert "api-supported-versions" not in response.headers


@pytest.mark.fast
class TestErrorHandling:
    """Tests for the error response format."""

    def test_not_found_format(self, client):
        """Test 404 uses the error envelope."""
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found", "detail": None}

    def test_method_not_allowed(self, client):
        """Test 405 uses the error envelope."""
        response = client.delete("/health")
        assert response.status_code == 405
        assert response.json()["error"] == "Method Not Allowed"

    def test_unexpected_error_returns_500(self, test_settings):
        """Test unhandled exceptions become a generic 500."""
        app = create_app(test_settings)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        response = TestClient(app, raise_server_exceptions=False).get("/boom")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "detail": None}

    def test_api_error_reports_versions(self, test_settings):
        """Test a 500 on an API path still lists the supported versions."""
        app = create_app(test_settings)

        @app.get("/api/v1/boom")
        async def boom():
            raise RuntimeError("secret internals")

        @app.get("/boom")
        async def boom_outside_api():
            raise RuntimeError("secret internals")

        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/v1/boom")
        assert response.status_code == 500
        assert response.headers["api-supported-versions"] == "1.0, 2.0"

        response = client.get("/boom")
        assert response.status_code == 500
        assert "api-supported-versions" not in response.headers

    def test_debug_exposes_detail(self, test_settings):
        """Test DEBUG includes the exception message."""
        app = create_app(test_settings.model_copy(update={"DEBUG": True}))

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        response = TestClient(app, raise_server_exceptions=False).get("/boom")
        assert response.status_code == 500
        assert response.json()["detail"] == "secret internals"


@pytest.mark.fast
class TestCreateApp:
    """Tests for the application factory."""

    def test_missing_service_name_is_fatal(self, monkeypatch, tmp_path):
        """Test the application refuses to start without a service name."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("SERVICE_NAME", raising=False)
        monkeypatch.delenv("ServiceName", raising=False)
        get_settings.cache_clear()
        try:
            with pytest.raises(ValidationError, match="SERVICE_NAME"):
                create_app()
        finally:
            get_settings.cache_clear()

    def test_settings_from_environment(self, monkeypatch, tmp_path):
        """Test create_app loads settings when none are passed."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ServiceName", "Env Service")
        monkeypatch.setenv("AUTH_ENABLED", "false")
        get_settings.cache_clear()
        try:
            app = create_app()
            assert app.state.settings.SERVICE_NAME == "Env Service"
        finally:
            get_settings.cache_clear()

    def test_state_wiring(self, app, test_settings):
        """Test the factory exposes settings, routes and documents."""
        assert app.state.settings is test_settings
        assert [spec.path for spec in app.state.route_table.routes] == [
            "/api/v1/hello",
            "/api/v2/hello/{name:path}",
            "/api/v1/test-model",
        ]
        assert app.state.documents.versions == (1, 2)

    def test_default_openapi_routes_disabled(self, client):
        """Test FastAPI's single combined document is not served."""
        assert client.get("/openapi.json").status_code == 404
        assert client.get("/docs").status_code == 404
        assert client.get("/redoc").status_code == 404

    def test_https_redirect(self):
        """Test HTTPS_REDIRECT redirects plain HTTP requests."""
        settings = Settings(
            _env_file=None,
            SERVICE_NAME="Demo",
            AUTH_ENABLED=False,
            HTTPS_REDIRECT=True,
        )
        client = TestClient(create_app(settings), follow_redirects=False)
        response = client.get("/api/v2/hello/Ada")
        assert response.status_code in (301, 307, 308)
        assert response.headers["location"].startswith("https://")
