import pytest

from auth import resolve_client_ip
from models import ActivityLog, SecurityAlert
from settings import Settings


@pytest.fixture
def settings() -> Settings:
    # Aucun proxy de confiance : l'en-tête X-Forwarded-For est ignoré
    return Settings(
        database_url="sqlite://",
        jwt_secret_key="test-secret-key",
        frontend_url="http://front.test",
        backend_url="http://api.test",
        email_enabled=False,
        log_level="WARNING",
    )


def test_peer_address_wins_without_trusted_proxy():
    assert resolve_client_ip("203.0.113.9", "198.51.100.1", []) == "203.0.113.9"


def test_forwarded_header_read_from_trusted_proxy():
    assert resolve_client_ip("10.0.0.2", "198.51.100.1", ["10.0.0.2"]) == "198.51.100.1"


def test_forwarded_chain_skips_known_proxies_from_the_right():
    chain = "1.1.1.1, 198.51.100.1, 10.0.0.3"

    assert resolve_client_ip("10.0.0.2", chain, ["10.0.0.2", "10.0.0.3"]) == "198.51.100.1"


def test_missing_peer_falls_back_to_placeholder():
    assert resolve_client_ip(None, "198.51.100.1", []) == "0.0.0.0"


def test_rotating_forwarded_header_does_not_evade_brute_force_alert(client, db, make_user, email_service):
    make_user(email="mallory.target@example.com")

    for n in range(10):
        client.post(
            "/auth/login",
            json={"email": "mallory.target@example.com", "password": "wrong-password"},
            headers={"X-Forwarded-For": f"192.0.2.{n + 1}"}
        )

    db.expire_all()
    ips = {log.ip_address for log in db.query(ActivityLog).filter(ActivityLog.action == "LOGIN").all()}
    assert ips == {"testclient"}
    assert db.query(SecurityAlert).count() >= 1
    assert len(email_service.alerts) >= 1
