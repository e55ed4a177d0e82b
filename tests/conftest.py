"""
Shared fixtures: an in-memory SQLite database, a TestClient and one user per
role.

Environment variables are set before any application module is imported so
the engine, token secret and upload directory pick them up.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="defect-uploads-"))

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from main import app
from model import Role, User
from services import storage
from services.authorization import Identity
from util.security import create_access_token, hash_password

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Each test stores photos in its own directory."""
    directory = tmp_path / "uploads"
    directory.mkdir()
    monkeypatch.setattr(storage, "UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture
def db():
    """Create test database session."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


def make_user(db, email, role=Role.user, first_name="Test"):
    user = User(
        first_name=first_name,
        last_name="User",
        email=email,
        phone="555-0100",
        location="Springfield",
        hashed_password=hash_password(PASSWORD),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def citizen(db):
    return make_user(db, "citizen@example.com", first_name="Citizen")


@pytest.fixture
def other_citizen(db):
    return make_user(db, "neighbour@example.com", first_name="Neighbour")


@pytest.fixture
def moderator(db):
    return make_user(db, "moderator@example.com", role=Role.moderator, first_name="Moderator")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=Role.admin, first_name="Admin")


def identity_of(user):
    return Identity(user_id=user.id, role=user.role)


def auth_header(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}
