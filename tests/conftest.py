"""
pkgvault Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pkgvault.api.app import create_app
from pkgvault.artifacts.archive import ArchiveBuilder
from pkgvault.artifacts.store import ArtifactStore
from pkgvault.db import models as orm
from pkgvault.db.session import Database
from pkgvault.engine.config import DatabaseConfig, LoggingConfig, PlatformConfig, UploadConfig


# ---------------------------------------------------------------------------
# Isolation: in-memory SQLite, log queue stopped after every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_logging():
    """Stop the process log queue if a test started it."""
    import pkgvault.engine.logging as log_mod

    yield
    log_mod.shutdown_logging()


@pytest.fixture
def database():
    """A fresh in-memory database with all tables."""
    db = Database(DatabaseConfig(url="sqlite://"))
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def file_database(tmp_path):
    """A file-backed SQLite database; each session gets its own connection."""
    db = Database(DatabaseConfig(url=f"sqlite:///{tmp_path / 'pkgvault.db'}"))
    db.create_all()
    yield db
    db.dispose()


def _add_user(db: Database, email: str = "owner@example.com") -> int:
    with db.session_scope() as session:
        user = orm.User(
            firstname="Ada",
            lastname="Lovelace",
            email=email,
            password_hash="not-a-real-hash",
            is_active=True,
        )
        session.add(user)
        session.flush()
        return user.id


@pytest.fixture
def add_user():
    """Insert a user directly through the ORM; returns its id."""
    return _add_user


@pytest.fixture
def user_id(database):
    return _add_user(database)


@pytest.fixture
def store(database):
    return ArtifactStore(database)


@pytest.fixture
def package(store, user_id):
    return store.create_package("release-1.0", user_id)


@pytest.fixture
def builder():
    return ArchiveBuilder()


@pytest.fixture
def platform_config(tmp_path):
    return PlatformConfig(
        logging=LoggingConfig(directory=str(tmp_path / "logs")),
        uploads=UploadConfig(max_upload_size_mb=1),
    )


@pytest.fixture
def app(platform_config, database):
    return create_app(platform_config, database=database, password_rounds=4)


@pytest.fixture
def client(app):
    """TestClient without lifespan — no log queue, no dispose."""
    return TestClient(app)


@pytest.fixture
def api_user(client):
    """Create a user through the API; returns the JSON record."""
    resp = client.post(
        "/users",
        json={
            "firstname": "Grace",
            "lastname": "Hopper",
            "email": "grace@example.com",
            "password": "cobol-rules",
        },
    )
    assert resp.status_code == 201
    return resp.json()
