"""Integration tests for the OpenAPI documents and the Scalar API reference.

Tests:
    - GET /openapi/{document}.json per version
    - GET /scalar and /scalar/{document}
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app


def _operations(document):
    for path_item in document["paths"].values():
        for operation in path_item.values():
            yield operation


@pytest.mark.integration
class TestOpenApiDocuments:
    """Tests for GET /openapi/{document}.json."""

    def test_v1_document(self, client, test_settings):
        """Test the v1 document lists exactly the v1 routes."""
        response = client.get("/openapi/v1.json")
        assert response.status_code == 200

        document = response.json()
        assert document["info"]["title"] == f"{test_settings.SERVICE_NAME} | v1"
        assert document["info"]["version"] == "v1"
        assert set(document["paths"]) == {"/api/v1/hello", "/api/v1/test-model"}

    def test_v2_document(self, client, test_settings):
        """Test the v2 document lists exactly the v2 routes."""
        document = client.get("/openapi/v2.json").json()

        assert document["info"]["title"] == f"{test_settings.SERVICE_NAME} | v2"
        assert set(document["paths"]) == {"/api/v2/hello/{name}"}

    @pytest.mark.parametrize("name", ["v1", "v2"])
    def test_bearer_scheme_declared(self, client, name):
        """Test every document declares the Bearer scheme."""
        document = client.get(f"/openapi/{name}.json").json()

        scheme = document["components"]["securitySchemes"]["Bearer"]
        assert scheme["type"] == "http"
        assert scheme["scheme"] == "bearer"
        assert scheme["bearerFormat"] == "JWT"
        assert scheme["in"] == "header"
        assert document["security"] == [{"Bearer": []}]

    @pytest.mark.parametrize("name", ["v1", "v2"])
    def test_internal_error_on_every_operation(self, client, name):
        """Test every operation documents a 500 response."""
        document = client.get(f"/openapi/{name}.json").json()

        for operation in _operations(document):
            assert operation["responses"]["500"] == {"description": "Internal server error"}

    @pytest.mark.parametrize("name", ["v1", "v2"])
    def test_validation_documented_as_bad_request(self, client, name):
        """Test no operation documents FastAPI's 422."""
        document = client.get(f"/openapi/{name}.json").json()

        for operation in _operations(document):
            assert "422" not in operation["responses"]

    def test_operation_security(self, client):
        """Test only the protected operation requires the Bearer scheme."""
        v1 = client.get("/openapi/v1.json").json()
        v2 = client.get("/openapi/v2.json").json()

        assert v1["paths"]["/api/v1/hello"]["get"]["security"] == [{"Bearer": []}]
        assert v1["paths"]["/api/v1/test-model"]["post"]["security"] == []
        assert v2["paths"]["/api/v2/hello/{name}"]["get"]["security"] == []

    def test_operation_details(self, client):
        """Test summaries, tags and declared responses."""
        v1 = client.get("/openapi/v1.json").json()
        v2 = client.get("/openapi/v2.json").json()

        hello = v1["paths"]["/api/v1/hello"]["get"]
        assert hello["summary"] == "Say Hello"
        assert hello["tags"] == ["Hello"]
        assert "401" in hello["responses"]

        hello_to = v2["paths"]["/api/v2/hello/{name}"]["get"]
        assert hello_to["summary"] == "Say Hello to someone"
        assert hello_to["parameters"][0]["name"] == "name"
        assert hello_to["parameters"][0]["in"] == "path"

        test_model = v1["paths"]["/api/v1/test-model"]["post"]
        assert test_model["tags"] == ["TestModel"]
        assert "400" in test_model["responses"]
        assert "requestBody" in test_model

    def test_error_media_type_matches_responses(self, client):
        """Test documented error bodies use the media type actually sent."""
        v1 = client.get("/openapi/v1.json").json()
        v2 = client.get("/openapi/v2.json").json()

        unauthorized = v1["paths"]["/api/v1/hello"]["get"]["responses"]["401"]
        bad_request = v1["paths"]["/api/v1/test-model"]["post"]["responses"]["400"]
        bad_name = v2["paths"]["/api/v2/hello/{name}"]["get"]["responses"]["400"]
        for declared in (unauthorized, bad_request, bad_name):
            assert list(declared["content"]) == ["application/json"]
            assert declared["content"]["application/json"]["schema"] == {
                "$ref": "#/components/schemas/ErrorResponse"
            }

        hello = v1["paths"]["/api/v1/hello"]["get"]["responses"]["200"]
        assert list(hello["content"]) == ["text/plain"]

        assert client.get("/api/v1/hello").headers["content-type"] == "application/json"
        malformed = client.post(
            "/api/v1/test-model",
            content=b"{",
            headers={"Content-Type": "application/json"},
        )
        assert malformed.headers["content-type"] == "application/json"

    def test_documents_are_stable(self, client):
        """Test the same document is served on every request."""
        assert client.get("/openapi/v1.json").json() == client.get("/openapi/v1.json").json()

    @pytest.mark.parametrize("name", ["v3", "foo", "v0"])
    def test_unknown_document(self, client, name):
        """Test unknown documents are not found."""
        response = client.get(f"/openapi/{name}.json")
        assert response.status_code == 404
        assert response.json()["error"] == f"OpenAPI document '{name}' not found"

    def test_auth_disabled_has_no_scheme(self):
        """Test AUTH_ENABLED=false documents no security."""
        settings = Settings(_env_file=None, SERVICE_NAME="Demo", AUTH_ENABLED=False)
        document = TestClient(create_app(settings)).get("/openapi/v1.json").json()

        assert "securitySchemes" not in document.get("components", {})
        assert "security" not in document


@pytest.mark.integration
class TestScalarReference:
    """Tests for the Scalar API reference pages."""

    def test_default_page(self, client, test_settings):
        """Test /scalar renders the default version."""
        response = client.get("/scalar")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert f"<title>{test_settings.SERVICE_NAME}</title>" in response.text
        assert 'data-url="/openapi/v1.json"' in response.text

    def test_version_page(self, client):
        """Test /scalar/v2 renders the v2 document."""
        response = client.get("/scalar/v2")

        assert response.status_code == 200
        assert 'data-url="/openapi/v2.json"' in response.text

    def test_page_configuration(self, client):
        """Test the configured theme and preferred scheme reach the page."""
        html = client.get("/scalar").text
        assert '"theme": "kepler"' in html
        assert '"preferredSecurityScheme": "Bearer"' in html
        assert '"forceDarkModeState": "dark"' in html

    def test_unknown_version_page(self, client):
        """Test unknown versions are not found."""
        assert client.get("/scalar/v9").status_code == 404

    def test_docs_disabled(self):
        """Test DOCS_ENABLED=false removes documents and UI."""
        settings = Settings(_env_file=None, SERVICE_NAME="Demo", AUTH_ENABLED=False, DOCS_ENABLED=False)
        client = TestClient(create_app(settings))

        assert client.get("/openapi/v1.json").status_code == 404
        assert client.get("/scalar").status_code == 404
        assert "docs" not in client.get("/").json()
