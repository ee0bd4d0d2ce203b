import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import auth
from app_config import AppConfigurator
from auth import create_access_token, get_password_hash
from enums import UserRole
from models import User, Lease
from settings import Settings

DEFAULT_PASSWORD = "Secret123"


class RecordingEmailService:
    """Remplace l'envoi SMTP : garde les alertes en mémoire"""

    def __init__(self):
        self.alerts = []

    def send_security_alert(self, subject: str, text: str) -> bool:
        self.alerts.append((subject, text))
        return True


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(auth, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret_key="test-secret-key",
        frontend_url="http://front.test",
        backend_url="http://api.test",
        # Le pair de TestClient joue le reverse proxy : X-Forwarded-For fixe l'IP simulée
        trusted_proxies=["testclient"],
        email_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    application = AppConfigurator.create_app(settings)
    application.state.email_service = RecordingEmailService()
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app) -> Session:
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def email_service(app) -> RecordingEmailService:
    return app.state.email_service


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        role: UserRole = UserRole.USER,
        **fields
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            hashed_password=get_password_hash(password) if password else None,
            first_name="Test",
            last_name=f"User{counter['n']}",
            name=f"Test User{counter['n']}",
            role=role,
            **{"is_active": True, **fields}
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers(settings):
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user, settings)}"}

    return _auth_headers


@pytest.fixture
def make_lease(db):
    def _make_lease(tenant: User, landlord: User, **fields) -> Lease:
        lease = Lease(
            tenant_id=tenant.id,
            landlord_id=landlord.id,
            property_title=fields.pop("property_title", "Studio Mont Kiara"),
            **fields
        )
        db.add(lease)
        db.commit()
        db.refresh(lease)
        return lease

    return _make_lease
