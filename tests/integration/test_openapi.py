"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from onboarding import __version__

pytestmark = pytest.mark.integration


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_openapi_schema_accessible(self, client: TestClient) -> None:
        response = client.get("/openapi.json")
        assert response.status_code == 200
        schema = response.json()
        assert schema["info"]["title"] == "srcc-onboarding"
        assert schema["info"]["version"] == __version__

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/auth/register", "post"),
            ("/auth/login", "post"),
            ("/auth/profile", "get"),
            ("/auth/request-password-reset", "post"),
            ("/auth/confirm-password-reset", "post"),
            ("/auth/suspend", "post"),
            ("/auth/activate", "post"),
            ("/auth/access", "patch"),
            ("/consultants/quick-register", "post"),
            ("/consultants/organization/quick-register", "post"),
            ("/consultants/verify-otp", "post"),
            ("/consultants/resend-otp", "post"),
            ("/consultants/register", "post"),
            ("/consultants/organization/register", "post"),
            ("/consultants/pending", "get"),
            ("/consultants/organization/pending", "get"),
            ("/consultants/{principal_id}/approve", "patch"),
            ("/consultants/{principal_id}/reject", "patch"),
            ("/consultants/organization/{principal_id}/approve", "patch"),
            ("/consultants/organization/{principal_id}/reject", "patch"),
            ("/users", "get"),
            ("/user/{principal_id}", "get"),
            ("/user/{principal_id}", "patch"),
            ("/user/national-id/{national_id}", "get"),
            ("/health", "get"),
        ],
    )
    def test_endpoint_documented(self, client: TestClient, path: str, method: str) -> None:
        schema = client.get("/openapi.json").json()

        assert method in schema["paths"][path]

    def test_login_documents_verification_required(self, client: TestClient) -> None:
        schema = client.get("/openapi.json").json()

        responses = schema["paths"]["/auth/login"]["post"]["responses"]
        assert {"200", "401", "428"} <= set(responses)

    def test_bearer_scheme_declared(self, client: TestClient) -> None:
        schema = client.get("/openapi.json").json()

        assert "HTTPBearer" in schema["components"]["securitySchemes"]

    def test_quick_register_schema_uses_camel_case(self, client: TestClient) -> None:
        schema = client.get("/openapi.json").json()

        properties = schema["components"]["schemas"]["QuickRegisterRequest"]["properties"]
        assert {"email", "phoneNumber", "nationalId", "password"} <= set(properties)
