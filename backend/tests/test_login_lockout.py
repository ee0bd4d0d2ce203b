from datetime import datetime, timedelta

from enums import ActivityStatus
from models import ActivityLog, SecurityAlert, Notification

DEFAULT_PASSWORD = "Secret123"


def _login(client, email, password, headers=None):
    return client.post("/auth/login", json={"email": email, "password": password}, headers=headers or {})


def test_login_returns_token_with_identity_claims(client, make_user):
    user = make_user(email="alice@example.com")

    response = _login(client, "Alice@Example.com", DEFAULT_PASSWORD)

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["id"] == user.id

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"


def test_unknown_email_and_wrong_password_look_the_same(client, make_user):
    make_user(email="bob@example.com")

    unknown = _login(client, "nobody@example.com", DEFAULT_PASSWORD)
    wrong = _login(client, "bob@example.com", "not-the-password")

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["message"] == wrong.json()["message"]
    assert unknown.json()["error"] is True


def test_inactive_user_cannot_login(client, make_user):
    make_user(email="off@example.com", is_active=False)

    assert _login(client, "off@example.com", DEFAULT_PASSWORD).status_code == 401


def test_sixth_attempt_is_locked_even_with_correct_password(client, db, make_user):
    user = make_user(email="carol@example.com")

    for _ in range(5):
        assert _login(client, "carol@example.com", "wrong-password").status_code == 401

    response = _login(client, "carol@example.com", DEFAULT_PASSWORD)

    assert response.status_code == 423
    assert response.json()["error_code"] == "ACCOUNT_LOCKED"

    db.expire_all()
    failures = db.query(ActivityLog).filter(
        ActivityLog.user_id == user.id,
        ActivityLog.action == "LOGIN",
        ActivityLog.status == ActivityStatus.FAILURE
    ).count()
    blocked = db.query(ActivityLog).filter(
        ActivityLog.user_id == user.id,
        ActivityLog.action == "LOGIN_BLOCKED"
    ).one()
    assert failures == 5
    assert blocked.status == ActivityStatus.INFO
    assert blocked.details == {"reason": "account_locked"}


def test_blocked_attempts_do_not_extend_the_failure_count(client, db, make_user):
    user = make_user(email="dave@example.com")
    for _ in range(5):
        _login(client, "dave@example.com", "wrong-password")

    for _ in range(3):
        assert _login(client, "dave@example.com", "wrong-password").status_code == 423

    db.expire_all()
    assert db.query(ActivityLog).filter(
        ActivityLog.user_id == user.id,
        ActivityLog.status == ActivityStatus.FAILURE
    ).count() == 5


def test_failures_outside_the_window_are_ignored(client, db, make_user):
    user = make_user(email="erin@example.com")
    old = datetime.utcnow() - timedelta(minutes=20)
    for _ in range(6):
        db.add(ActivityLog(
            user_id=user.id, action="LOGIN", status=ActivityStatus.FAILURE,
            ip_address="10.0.0.1", user_agent="old-agent", created_at=old
        ))
    db.commit()

    assert _login(client, "erin@example.com", DEFAULT_PASSWORD).status_code == 200


def test_repeated_failures_from_one_ip_raise_a_brute_force_alert(client, db, make_user, email_service):
    make_user(email="frank@example.com")
    make_user(email="grace@example.com")
    headers = {"X-Forwarded-For": "203.0.113.7"}

    for email in ("frank@example.com", "grace@example.com", "frank@example.com",
                  "grace@example.com", "frank@example.com"):
        _login(client, email, "wrong-password", headers)

    db.expire_all()
    alerts = db.query(SecurityAlert).all()
    assert len(alerts) == 1
    assert alerts[0].type.value == "BRUTE_FORCE_ATTACK"
    assert alerts[0].severity.value == "HIGH"
    assert "203.0.113.7" in alerts[0].message
    assert len(email_service.alerts) == 1


def test_first_login_from_new_device_creates_one_notification(client, db, make_user):
    user = make_user(email="heidi@example.com")
    headers = {"User-Agent": "Firefox/120", "X-Forwarded-For": "198.51.100.1"}

    assert _login(client, "heidi@example.com", DEFAULT_PASSWORD, headers).status_code == 200
    assert _login(client, "heidi@example.com", DEFAULT_PASSWORD, headers).status_code == 200

    db.expire_all()
    notifications = db.query(Notification).filter(Notification.user_id == user.id).all()
    assert len(notifications) == 1
    assert notifications[0].type.value == "security"


def test_new_ip_and_new_agent_together_trigger_notification(client, db, make_user):
    user = make_user(email="ivan@example.com")
    _login(client, "ivan@example.com", DEFAULT_PASSWORD,
           {"User-Agent": "Firefox/120", "X-Forwarded-For": "198.51.100.1"})

    # Seul l'appareil change : pas d'alerte
    _login(client, "ivan@example.com", DEFAULT_PASSWORD,
           {"User-Agent": "Safari/17", "X-Forwarded-For": "198.51.100.1"})
    # Appareil et IP inconnus
    _login(client, "ivan@example.com", DEFAULT_PASSWORD,
           {"User-Agent": "Chrome/119", "X-Forwarded-For": "192.0.2.55"})

    db.expire_all()
    assert db.query(Notification).filter(Notification.user_id == user.id).count() == 2
