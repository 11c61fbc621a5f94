"""Shared pytest fixtures: in-memory database, API client and a data seeder."""

import os

# Must be set before marketplace.core.config is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import marketplace.models  # noqa: F401
from marketplace.db.base import Base
from marketplace.db.session import get_db
from marketplace.main import app
from marketplace.models.principal import PrincipalType
from marketplace.services.module_cache import module_cache
from tests.support import Seeder


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _clear_module_cache():
    module_cache.clear()
    yield
    module_cache.clear()


@pytest.fixture()
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def super_admin(seed):
    role = seed.role("superadmin", level=100, is_super_admin=True)
    return seed.principal(PrincipalType.user, "root@example.com", role)


@pytest.fixture()
def admin_headers(super_admin):
    return Seeder.headers(super_admin, PrincipalType.user)
