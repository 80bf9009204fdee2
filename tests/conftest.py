# Pytest configuration for the Rentify test suite.
# Forces a local SQLite DB, disables Redis, and wires JWT secrets for deterministic runs.
import os
from decimal import Decimal
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

# Test-time environment: local SQLite DB, Redis disabled, predictable JWT secret, generous lock wait
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RENTIFY_JWT_SECRET", "test-secret")
os.environ.setdefault("BOOKING_LOCK_WAIT_MS", "10000")

import sys
# Ensure the repo root is on sys.path so 'rentify' resolves when running pytest without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from rentify.main import app  # noqa: E402
from rentify.db import Base, SessionLocal, engine  # noqa: E402
from rentify import models  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db() -> Iterator[None]:
    """
    Session-level database bootstrap using a local SQLite file.

    Drops and recreates schema once per test session to ensure a clean slate.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_db() -> Iterator[None]:
    """Function-level isolation: drop and recreate schema before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """FastAPI TestClient bound to the application for HTTP-level tests."""
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db() -> Iterator:
    """Raw session for calling the core directly."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db) -> Callable[..., models.User]:
    """Insert a user without going through password hashing (fast path for core tests)."""
    def _make(username: str, role: str = "renter") -> models.User:
        user = models.User(username=username, password_hash="x", role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_property(db, make_user) -> Callable[..., models.Property]:
    def _make(price_per_day: str = "100.00", availability: bool = True, owner: models.User = None) -> models.Property:
        owner = owner or make_user(f"owner{db.query(models.User).count() + 1}", "owner")
        prop = models.Property(
            owner_id=owner.id,
            title="Test Place",
            price_per_day=Decimal(price_per_day),
            availability=availability,
        )
        db.add(prop)
        db.commit()
        db.refresh(prop)
        return prop

    return _make
