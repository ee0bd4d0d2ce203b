from datetime import timedelta

from auth import create_access_token
from settings import Settings


def test_missing_token_is_unauthorized(client):
    response = client.get("/auth/me")

    assert response.status_code == 401
    body = response.json()
    assert body["error"] is True
    assert body["error_code"] == "UNAUTHORIZED"


def test_garbage_token_is_unauthorized(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_expired_token_is_unauthorized(client, make_user, settings):
    user = make_user()
    token = create_access_token(user, settings, expires_delta=timedelta(minutes=-1))

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_signed_with_other_key_is_rejected(client, make_user, settings):
    user = make_user()
    other = Settings(jwt_secret_key="another-key", database_url="sqlite://")
    token = create_access_token(user, other)

    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_schema_errors_use_standard_shape(client):
    response = client.post("/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] is True
    assert body["details"]["error_count"] >= 1


def test_not_found_shape(client, make_user, auth_headers):
    user = make_user()

    response = client.get("/leases/12345", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"


def test_security_headers_are_set(client):
    response = client.post("/auth/check-email", json={"email": "x@example.com"})

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
