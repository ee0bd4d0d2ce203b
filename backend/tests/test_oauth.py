from urllib.parse import urlparse, parse_qs

import pytest
from jose import jwt

from error_handlers import ValidationFailedError
from models import ActivityLog, User
from oauth_service import OAuthProvider, OAuthProviderFactory


class FakeGoogleProvider(OAuthProvider):
    """Fournisseur factice : pas d'appel réseau, profil fixe"""

    name = "google"
    profile = {
        "email": "oauth.user@example.com",
        "first_name": "Olivia",
        "last_name": "Auth",
        "provider_id": "google-123",
        "avatar_url": "https://example.com/avatar.png",
    }

    def get_authorization_url(self, redirect_uri):
        return f"https://accounts.example.com/auth?redirect_uri={redirect_uri}", "fixed-state"

    def get_user_info(self, code, redirect_uri):
        if code != "good-code":
            raise ValidationFailedError("code refusé")
        return dict(self.profile)


@pytest.fixture(autouse=True)
def fake_google():
    previous = OAuthProviderFactory._providers["google"]
    OAuthProviderFactory.register("google", FakeGoogleProvider)
    yield
    OAuthProviderFactory.register("google", previous)


def _start_flow(client):
    response = client.get("/auth/oauth/google/login")
    assert response.status_code == 200
    return response.json()["state"]


def test_login_returns_authorization_url_and_sets_state_cookie(client):
    response = client.get("/auth/oauth/google/login")

    assert response.status_code == 200
    assert response.json()["state"] == "fixed-state"
    assert "http://api.test/auth/oauth/google/callback" in response.json()["authorization_url"]
    assert response.cookies.get("oauth_state") == "fixed-state"


def test_unknown_provider_is_rejected(client):
    response = client.get("/auth/oauth/myspace/login")

    assert response.status_code == 400


def test_callback_creates_user_and_redirects_with_token(client, db, settings):
    state = _start_flow(client)

    response = client.get(
        "/auth/oauth/google/callback",
        params={"code": "good-code", "state": state},
        follow_redirects=False
    )

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == "http://front.test/auth/callback"
    query = parse_qs(location.query)
    assert query["provider"] == ["google"]

    claims = jwt.decode(query["token"][0], settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    user = db.query(User).filter(User.email == "oauth.user@example.com").one()
    assert claims["user_id"] == user.id
    assert user.google_id == "google-123"
    assert user.hashed_password is None
    assert user.role.value == "USER"
    assert db.query(ActivityLog).filter(
        ActivityLog.user_id == user.id, ActivityLog.action == "OAUTH_LOGIN"
    ).count() == 1


def test_callback_links_existing_account_by_email(client, db, make_user):
    existing = make_user(email="oauth.user@example.com")
    state = _start_flow(client)

    client.get(
        "/auth/oauth/google/callback",
        params={"code": "good-code", "state": state},
        follow_redirects=False
    )

    db.expire_all()
    assert db.query(User).filter(User.email == "oauth.user@example.com").count() == 1
    assert db.get(User, existing.id).google_id == "google-123"


def test_callback_with_mismatched_state_redirects_to_login(client, db):
    _start_flow(client)

    response = client.get(
        "/auth/oauth/google/callback",
        params={"code": "good-code", "state": "forged"},
        follow_redirects=False
    )

    assert response.status_code == 302
    assert response.headers["location"] == "http://front.test/login?error=oauth_failed"
    assert db.query(User).count() == 0


def test_callback_without_state_cookie_fails(client):
    response = client.get(
        "/auth/oauth/google/callback",
        params={"code": "good-code", "state": "fixed-state"},
        follow_redirects=False
    )

    assert response.headers["location"].endswith("/login?error=oauth_failed")


def test_link_and_unlink_provider(client, db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    linked = client.post("/auth/oauth/link", json={"provider": "twitter", "provider_id": "tw-42"}, headers=headers)
    assert linked.status_code == 200
    assert linked.json()["user"]["twitter_id"] == "tw-42"

    unlinked = client.post("/auth/oauth/unlink", json={"provider": "twitter"}, headers=headers)
    assert unlinked.status_code == 200
    assert unlinked.json()["user"]["twitter_id"] is None


def test_link_id_owned_by_another_user_conflicts(client, make_user, auth_headers):
    make_user(github_id="gh-7")
    user = make_user()

    response = client.post(
        "/auth/oauth/link", json={"provider": "github", "provider_id": "gh-7"}, headers=auth_headers(user)
    )

    assert response.status_code == 409


def test_link_unsupported_provider(client, make_user, auth_headers):
    user = make_user()

    response = client.post(
        "/auth/oauth/link", json={"provider": "myspace", "provider_id": "x"}, headers=auth_headers(user)
    )

    assert response.status_code == 400


def test_callback_with_rejected_code_redirects_to_login(client, db):
    state = _start_flow(client)

    response = client.get(
        "/auth/oauth/google/callback",
        params={"code": "bad-code", "state": state},
        follow_redirects=False
    )

    assert response.headers["location"] == "http://front.test/login?error=oauth_failed"
    assert db.query(User).count() == 0


def test_callback_for_mfa_account_defers_token_to_second_step(client, make_user):
    user = make_user(email="oauth.user@example.com", mfa_enabled=True, mfa_secret="JBSWY3DPEHPK3PXP")
    state = _start_flow(client)

    response = client.get(
        "/auth/oauth/google/callback",
        params={"code": "good-code", "state": state},
        follow_redirects=False
    )

    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    assert "token" not in query
    assert query["mfa_required"] == ["true"]
    assert query["user_id"] == [str(user.id)]
