import os

# Must be set before config / db.connection are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-workhub"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from db.connection import Base, engine, SessionLocal
from db.models import User, UserRole, CrmEntry
from main import app
from routes.auth.JWTSecurity import create_access_token
from services import mail
from utils.passwords import hash_password

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    # Lifespan is not entered, so the OTP scheduler stays off
    return TestClient(app)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Records outgoing mail instead of talking to SMTP."""
    sent = {"otp": [], "task": []}

    def fake_send_otp_email(to_email, otp):
        sent["otp"].append({"to": to_email, "otp": otp})
        return {"status": "success", "message": "Email sent successfully!", "recipient": to_email}

    def fake_send_task_assignment_email(to_email, task, assigned_by=None):
        sent["task"].append({"to": to_email, "task_id": task.id, "assigned_by": assigned_by})
        return {"status": "success", "message": "Email sent successfully!", "recipient": to_email}

    monkeypatch.setattr(mail, "send_otp_email", fake_send_otp_email)
    monkeypatch.setattr(mail, "send_task_assignment_email", fake_send_task_assignment_email)
    return sent


@pytest.fixture
def make_user(db):
    def _make(email, role=UserRole.EMPLOYEE, name=None, password=DEFAULT_PASSWORD, client_crm_id=None):
        user = User(
            name=name or email.split("@")[0].title(),
            email=email.lower(),
            password_hash=hash_password(password),
            role=role,
            tasks_completed=0,
            client_crm_id=client_crm_id,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_crm_entry(db):
    def _make(company="Acme Corp", **fields):
        entry = CrmEntry(company=company, **fields)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make


def bearer(user_or_email):
    email = user_or_email if isinstance(user_or_email, str) else user_or_email.email
    return {"Authorization": f"Bearer {create_access_token(email)}"}


@pytest.fixture
def auth_headers():
    return bearer


@pytest.fixture
def admin(make_user):
    return make_user("admin@incial.com", role=UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def employee(make_user):
    return make_user("emp@incial.com", role=UserRole.EMPLOYEE, name="Eve Employee")


@pytest.fixture
def super_admin(make_user):
    return make_user("root@incial.com", role=UserRole.SUPER_ADMIN, name="Sam Super")
