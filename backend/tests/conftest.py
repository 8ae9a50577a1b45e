"""Test configuration and fixtures."""

import os

# Point the default engine at an in-memory database before the package is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from workflow_catalog.database import create_db_engine, create_session_factory, get_db, init_db

from tests.factories import FailingAnalyzer


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    """Provide a SQLAlchemy session for one test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def analyzer() -> FailingAnalyzer:
    return FailingAnalyzer()


@pytest.fixture
def client(session_factory, analyzer):
    """API client bound to the test database and the fake analyzer."""
    from workflow_catalog.api.imports import get_analyzer
    from workflow_catalog.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    yield TestClient(app)
    app.dependency_overrides.clear()
