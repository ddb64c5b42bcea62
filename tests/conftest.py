# tests/conftest.py
"""Shared fixtures: an in-memory SQLite store and an API client bound to it."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = ""
os.environ["AUTO_START_INTERVAL_SECONDS"] = "0"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.dependencies import get_db
from app.db.base import Base
from app.main import app as fastapi_app
from tests.factories import make_customer, make_truck, make_user


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_factory():
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def fleet(db):
    """An admin, a dispatcher, a driver, one customer and one truck."""
    return {
        "admin": make_user(db, "admin@example.com", "admin", "Admin"),
        "dispatcher": make_user(db, "dispatch@example.com", "dispatcher", "Dana Dispatch"),
        "driver": make_user(db, "driver@example.com", "driver", "Juma Driver"),
        "customer": make_customer(db),
        "truck": make_truck(db),
    }
