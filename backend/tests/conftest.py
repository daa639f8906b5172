"""
Shared pytest fixtures for backend tests.

Provides database engine and session fixtures backed by a throwaway
SQLite file per test.
"""
import pytest
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from gradekeys.database import Base
import gradekeys.models  # noqa: F401  (registers tables on Base.metadata)


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Provides a fresh SQLite database with all tables created.

    A file database (not :memory:) so that every session gets its own
    connection, as in production.
    """
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'gradekeys-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=db_engine)
    try:
        yield db_engine
    finally:
        db_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    """sessionmaker bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """
    Provides a database session for tests.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
