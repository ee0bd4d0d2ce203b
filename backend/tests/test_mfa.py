import time

import pyotp
import pytest

from enums import ActivityStatus
from models import ActivityLog
from services.mfa_service import MFAService
from settings import Settings

DEFAULT_PASSWORD = "Secret123"


def _wrong_code(secret: str, window: int = 2) -> str:
    totp = pyotp.TOTP(secret)
    for candidate in ("000000", "111111", "222222", "333333", "444444", "555555"):
        if not totp.verify(candidate, valid_window=window):
            return candidate
    raise AssertionError("aucun code invalide trouvé")


def _enable_mfa(client, headers) -> str:
    setup = client.get("/auth/mfa/setup", headers=headers)
    assert setup.status_code == 200
    secret = setup.json()["secret"]
    response = client.post("/auth/mfa/verify", json={"token": pyotp.TOTP(secret).now()}, headers=headers)
    assert response.status_code == 200
    return secret


def test_setup_returns_secret_uri_and_qr_without_enabling(client, db, make_user, auth_headers):
    user = make_user(email="mfa@example.com")

    response = client.get("/auth/mfa/setup", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["otpauth_url"].startswith("otpauth://totp/")
    assert "mfa%40example.com" in body["otpauth_url"] or "mfa@example.com" in body["otpauth_url"]
    assert body["qr_code"].startswith("data:image/png;base64,")

    db.refresh(user)
    assert user.mfa_secret == body["secret"]
    assert user.mfa_enabled is False


def test_verify_with_valid_code_enables_mfa(client, db, make_user, auth_headers):
    user = make_user()
    _enable_mfa(client, auth_headers(user))

    db.refresh(user)
    assert user.mfa_enabled is True


@pytest.mark.parametrize("code", ["123", "abcdef", "1234567"])
def test_verify_rejects_malformed_codes(client, db, make_user, auth_headers, code):
    user = make_user()
    headers = auth_headers(user)
    client.get("/auth/mfa/setup", headers=headers)

    response = client.post("/auth/mfa/verify", json={"token": code}, headers=headers)

    assert response.status_code == 400
    db.refresh(user)
    assert user.mfa_enabled is False


def test_verify_without_setup_fails(client, make_user, auth_headers):
    user = make_user()

    response = client.post("/auth/mfa/verify", json={"token": "123456"}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_FAILED"


def test_verify_with_wrong_code_keeps_mfa_disabled(client, db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    secret = client.get("/auth/mfa/setup", headers=headers).json()["secret"]

    response = client.post("/auth/mfa/verify", json={"token": _wrong_code(secret)}, headers=headers)

    assert response.status_code == 400
    db.refresh(user)
    assert user.mfa_enabled is False


def test_login_with_mfa_requires_second_step(client, make_user, auth_headers):
    user = make_user(email="two@example.com")
    secret = _enable_mfa(client, auth_headers(user))

    login = client.post("/auth/login", json={"email": "two@example.com", "password": DEFAULT_PASSWORD})
    assert login.status_code == 200
    assert login.json()["mfa_required"] is True
    assert login.json()["user_id"] == user.id
    assert "access_token" not in login.json()

    wrong = client.post("/auth/mfa/login", json={"user_id": user.id, "token": _wrong_code(secret)})
    assert wrong.status_code == 401

    ok = client.post("/auth/mfa/login", json={"user_id": user.id, "token": pyotp.TOTP(secret).now()})
    assert ok.status_code == 200
    assert ok.json()["access_token"]


def test_mfa_login_for_user_without_mfa_is_rejected(client, make_user):
    user = make_user()

    response = client.post("/auth/mfa/login", json={"user_id": user.id, "token": "123456"})

    assert response.status_code == 400


def test_disable_clears_secret_and_flag(client, db, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    _enable_mfa(client, headers)

    assert client.post("/auth/mfa/disable", headers=headers).status_code == 200

    db.refresh(user)
    assert user.mfa_enabled is False
    assert user.mfa_secret is None


def test_verify_code_tolerates_configured_drift():
    secret = pyotp.random_base32()
    totp = pyotp.TOTP(secret)
    previous = totp.at(time.time() - 2 * totp.interval)

    assert MFAService.verify_code(secret, previous, valid_window=2) is True
    assert MFAService.verify_code(secret, "12 34", valid_window=2) is False
    assert MFAService.verify_code("", totp.now(), valid_window=2) is False


def test_code_outside_drift_window_is_rejected():
    secret = pyotp.random_base32()
    totp = pyotp.TOTP(secret)
    too_old = totp.at(time.time() - 4 * totp.interval)

    assert MFAService.verify_code(secret, too_old, valid_window=2) is False


def test_zero_window_accepts_only_current_step():
    secret = pyotp.random_base32()
    totp = pyotp.TOTP(secret)
    previous = totp.at(time.time() - 2 * totp.interval)

    assert MFAService.verify_code(secret, totp.now(), valid_window=0) is True
    assert MFAService.verify_code(secret, previous, valid_window=0) is False


def test_window_is_read_from_environment(monkeypatch):
    monkeypatch.setenv("TOTP_VALID_WINDOW", "0")
    monkeypatch.setenv("JWT_SECRET_KEY", "env-secret")

    assert Settings.from_env().totp_valid_window == 0


def test_mfa_login_refused_while_password_lockout_is_active(client, make_user, auth_headers):
    user = make_user(email="locked.mfa@example.com")
    secret = _enable_mfa(client, auth_headers(user))
    for _ in range(5):
        client.post("/auth/login", json={"email": "locked.mfa@example.com", "password": "wrong-password"})
    locked = client.post("/auth/login", json={"email": "locked.mfa@example.com", "password": DEFAULT_PASSWORD})
    assert locked.status_code == 423

    response = client.post("/auth/mfa/login", json={"user_id": user.id, "token": pyotp.TOTP(secret).now()})

    assert response.status_code == 423
    assert "access_token" not in response.json()


def test_repeated_wrong_codes_lock_the_second_step(client, db, make_user, auth_headers):
    user = make_user(email="guess@example.com")
    secret = _enable_mfa(client, auth_headers(user))
    wrong = _wrong_code(secret)

    for _ in range(5):
        assert client.post("/auth/mfa/login", json={"user_id": user.id, "token": wrong}).status_code == 401

    response = client.post("/auth/mfa/login", json={"user_id": user.id, "token": pyotp.TOTP(secret).now()})

    assert response.status_code == 423
    db.expire_all()
    assert db.query(ActivityLog).filter(
        ActivityLog.user_id == user.id,
        ActivityLog.action == "MFA_LOGIN",
        ActivityLog.status == ActivityStatus.FAILURE
    ).count() == 5
