"""
Results Portal - Test Configuration and Fixtures
"""
import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Set testing environment before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RESULT_CHUNK_SIZE"] = "100"
os.environ["GRADE_POINT_SCALE_MAX"] = "5.0"

from app.core.catalog import GradeCatalog
from app.core.database import Base, SessionLocal, engine, get_db
from app.core.dependencies import get_import_registry
from app.main import app
from app.services.import_run import ImportRunRegistry


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def registry() -> ImportRunRegistry:
    return ImportRunRegistry()


@pytest.fixture
def client(db_session: Session, registry: ImportRunRegistry) -> Generator[TestClient, None, None]:
    """Create test client with database and registry overrides"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_import_registry] = lambda: registry

    # No lifespan: shutdown disposes the engine and would close the shared in-memory connection
    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def catalog() -> GradeCatalog:
    return GradeCatalog()
