"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
def schema(client: TestClient) -> dict:
    response = client.get("/openapi.json")
    assert response.status_code == 200
    return response.json()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_title_and_version(self, schema: dict) -> None:
        assert schema["info"]["title"] == "identity"
        assert schema["info"]["version"] == "0.1.0"

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/api/v1/users", "post"),
            ("/api/v1/users/{user_id}", "get"),
            ("/api/v1/users/{user_id}/email/confirmation", "post"),
            ("/api/v1/users/{user_id}/email/confirmation", "get"),
            ("/api/v1/users/{user_id}/email/change", "post"),
            ("/health", "get"),
        ],
    )
    def test_endpoint_documented(self, schema: dict, path: str, method: str) -> None:
        assert method in schema["paths"][path]

    def test_create_user_documents_conflict(self, schema: dict) -> None:
        responses = schema["paths"]["/api/v1/users"]["post"]["responses"]
        assert "201" in responses
        assert "409" in responses

    def test_create_user_request_schema(self, schema: dict) -> None:
        properties = schema["components"]["schemas"]["CreateUserRequest"]["properties"]
        assert set(properties) == {"email", "password"}
        assert properties["email"]["format"] == "email"

    def test_user_response_schema_has_no_secrets(self, schema: dict) -> None:
        properties = schema["components"]["schemas"]["UserResponse"]["properties"]
        assert "password_hash" not in properties
        assert "email_confirmation_token" not in properties

    def test_confirm_takes_token_query_parameter(self, schema: dict) -> None:
        operation = schema["paths"]["/api/v1/users/{user_id}/email/confirmation"]["get"]
        token = next(p for p in operation["parameters"] if p["name"] == "token")
        assert token["in"] == "query"
        assert token["required"] is True
