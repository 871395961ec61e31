import os
import tempfile

# Settings are read at import time; point them at a throwaway location first
_TMP_DIR = tempfile.mkdtemp(prefix="attendance-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test_attendance.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["RATE_LIMIT"] = "10000/minute"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["TZ_DEFAULT"] = "Asia/Jakarta"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from attendance_tracker.auth.security import get_password_hash
from attendance_tracker.db import Base, get_db
from attendance_tracker.main import app
from attendance_tracker.models.models import Role, User
from attendance_tracker.services.realtime import get_notifier

engine = create_engine(os.environ["DATABASE_URL"], connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "Rahasia123!"


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def publish(self, event, payload):
        self.events.append((event, payload))


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def seed_users(db):
    admin_role = Role(name="admin", description="Administrator")
    employee_role = Role(name="employee", description="Karyawan")
    password_hash = get_password_hash(PASSWORD)
    users = {
        "admin": User(
            username="admin",
            email="admin@example.com",
            full_name="Admin HR",
            password_hash=password_hash,
            roles=[admin_role, employee_role],
        ),
        "budi": User(
            username="budi",
            email="budi@example.com",
            full_name="Budi Santoso",
            nik="3174012301900001",
            password_hash=password_hash,
            roles=[employee_role],
        ),
        "siti": User(
            username="siti",
            email="siti@example.com",
            full_name="Siti Rahma",
            password_hash=password_hash,
            roles=[employee_role],
        ),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


@pytest.fixture
def auth_headers(client, seed_users):
    def _headers(username: str) -> dict:
        resp = client.post("/auth/login", json={"identifier": username, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _headers
