import os
import tempfile

# Settings are read at import time, so the environment must be ready first
_TEST_DB_DIR = tempfile.mkdtemp(prefix="pdi_desk_tests_")
os.environ["SECRET_KEY"] = "test-secret-key-for-pdi-desk-that-is-long-enough"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["LOG_FILE"] = ""
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.core.dependencies import get_auth_gate, get_notifier
from app.db.core import engine, init_db
from app.db.schema import User, Role, UserStatus
from app.main import app
from app.models.auth import Principal, SigningConfig
from app.services.auth import AuthGate
from app.services.password import get_password_hash


class RecordingNotifier:
    """Stands in for the e-mail channel and remembers every call."""

    def __init__(self, result=True, raises=False):
        self.result = result
        self.raises = raises
        self.admin_calls = []
        self.requester_calls = []

    def notify_admin_of_new_request(self, record, requester):
        self.admin_calls.append((record.id, requester.user_id))
        if self.raises:
            raise RuntimeError("smtp is down")
        return self.result

    def notify_requester_of_status_change(self, record, new_status, message):
        self.requester_calls.append((record.id, new_status, message))
        if self.raises:
            raise RuntimeError("smtp is down")
        return self.result


def make_user(session, email, role=Role.CLIENT, status=UserStatus.APPROVED,
              password="secret123", name=None, mobile=None):
    user = User(
        email=email,
        name=name or email.split("@")[0].title(),
        mobile=mobile,
        hashed_password=get_password_hash(password),
        role=role,
        status=status,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def principal_for(user):
    return Principal(user_id=user.id, email=user.email, name=user.name, role=user.role)


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def gate():
    return AuthGate(SigningConfig(secret_key="unit-test-signing-key", expire_minutes=5))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Builds Bearer headers signed with the application's own key."""
    app_gate = get_auth_gate()

    def _headers(user):
        token = app_gate.issue_token(principal_for(user))
        return {"Authorization": f"Bearer {token}"}

    return _headers
