"""Authentication middleware and public route tests."""

from unittest.mock import AsyncMock, patch

from app.api.v1.middleware.auth import is_public_path


class TestPublicPaths:
    def test_docs_health_and_tracking_are_public(self):
        assert is_public_path("/")
        assert is_public_path("/openapi.json")
        assert is_public_path("/health")
        assert is_public_path("/api/v1/tracking/ABCD2345")

    def test_api_routes_are_protected(self):
        assert not is_public_path("/api/v1/loads")
        assert not is_public_path("/api/v1/admin/maintenance/run")


def test_root_is_public(test_client):
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "Server is running"
    assert "X-Correlation-ID" in response.headers


def test_health_reports_database_status(test_client):
    with patch(
        "app.api.v1.endpoints.health.db_client.health_check",
        new=AsyncMock(return_value={"status": "healthy"}),
    ):
        response = test_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "healthy"


def test_health_degraded_when_database_down(test_client):
    with patch(
        "app.api.v1.endpoints.health.db_client.health_check",
        new=AsyncMock(return_value={"status": "unhealthy", "error": "refused"}),
    ):
        response = test_client.get("/health")

    assert response.json()["status"] == "degraded"


def test_missing_token_is_rejected(test_client):
    response = test_client.get("/api/v1/loads")

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_non_bearer_scheme_is_rejected(test_client):
    response = test_client.get("/api/v1/loads", headers={"Authorization": "Basic dXNlcjpwYXNz"})

    assert response.status_code == 401


def test_expired_token_is_rejected(test_client, make_token):
    token = make_token(expires_in=-60)

    response = test_client.get("/api/v1/users/whoami", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid authentication token"


def test_token_signed_with_other_secret_is_rejected(test_client):
    import jwt

    token = jwt.encode({"sub": "user-1"}, "some-other-secret-value-for-testing", algorithm="HS256")

    response = test_client.get("/api/v1/users/whoami", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_whoami_returns_principal(test_client, auth_headers, tenant_id):
    response = test_client.get("/api/v1/users/whoami", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == "user-1"
    assert data["tenant_id"] == str(tenant_id)
    assert data["role"] == "DISPATCHER"


def test_access_cookie_authenticates(test_client, make_token):
    test_client.cookies.set("access_token", make_token())

    response = test_client.get("/api/v1/users/whoami")

    assert response.status_code == 200


def test_admin_routes_require_admin_role(test_client, auth_headers):
    response = test_client.post("/api/v1/admin/maintenance/run", headers=auth_headers)

    assert response.status_code == 403


def test_lifecycle_table(test_client, auth_headers):
    response = test_client.get("/api/v1/lifecycle/load", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["transitions"]["UNASSIGNED"] == ["CANCELLED", "TENDERED"]
    assert set(data["terminal"]) == {"COMPLETED", "CANCELLED"}


def test_unknown_lifecycle_is_not_found(test_client, auth_headers):
    response = test_client.get("/api/v1/lifecycle/shipment", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"]["status"] == 404
