"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


@pytest.fixture
def schema(client: TestClient) -> dict:
    response = client.get("/openapi.json")
    assert response.status_code == 200
    return response.json()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_openapi_schema_structure(self, schema: dict) -> None:
        assert "openapi" in schema
        assert "info" in schema
        assert "paths" in schema

    def test_openapi_title_and_description(self, schema: dict) -> None:
        assert schema["info"]["title"] == "verigate"
        assert "Two-channel proof of email control" in schema["info"]["description"]
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        "path,method",
        [
            ("/v1/request-code", "post"),
            ("/v1/verify-code", "post"),
            ("/v1/confirm-email", "get"),
            ("/v1/confirm-email", "post"),
            ("/v1/create-credentials", "post"),
            ("/v1/login", "post"),
            ("/v1/guest-login", "post"),
            ("/v1/check-status", "get"),
            ("/v1/check-status", "post"),
            ("/v1/sync-email-status", "post"),
            ("/v1/session", "get"),
            ("/v1/admin/emails", "get"),
            ("/v1/admin/emails/delete", "post"),
        ],
    )
    def test_endpoint_documented_and_tagged(self, schema: dict, path: str, method: str) -> None:
        assert path in schema["paths"]
        operation = schema["paths"][path][method]
        assert "v1" in operation.get("tags", [])

    def test_create_credentials_responses(self, schema: dict) -> None:
        """201, 403 and 409 are documented."""
        responses = schema["paths"]["/v1/create-credentials"]["post"]["responses"]
        assert {"201", "403", "409"} <= set(responses)

    def test_request_schemas(self, schema: dict) -> None:
        components = schema["components"]["schemas"]
        assert set(components["VerifyCodeRequest"]["properties"]) == {"email", "code"}
        assert set(components["CreateCredentialsRequest"]["properties"]) == {"email", "password"}

    def test_session_response_uses_camel_case(self, schema: dict) -> None:
        """Response schemas show the wire names."""
        components = schema["components"]["schemas"]
        session = next(value for key, value in components.items() if key.startswith("SessionResponse"))
        assert "sessionToken" in session["properties"]
        assert "expiresAt" in session["properties"]

    def test_bearer_scheme_declared(self, schema: dict) -> None:
        schemes = schema["components"]["securitySchemes"]
        assert any(scheme.get("scheme") == "bearer" for scheme in schemes.values())

    def test_v1_tag_in_schema(self, schema: dict) -> None:
        assert "v1" in [t["name"] for t in schema.get("tags", [])]


class TestSwaggerUI:
    """Tests for Swagger UI availability."""

    def test_docs_endpoint_accessible(self, client: TestClient) -> None:
        """Swagger UI is accessible at /docs."""
        response = client.get("/docs")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "swagger" in response.text.lower()

    def test_redoc_endpoint_accessible(self, client: TestClient) -> None:
        """ReDoc is accessible at /redoc."""
        response = client.get("/redoc")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "redoc" in response.text.lower()
