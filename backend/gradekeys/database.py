"""
SQLAlchemy engine, session factory and declarative base for gradekeys.

The URL comes from ``GRADEKEYS_DATABASE_URL``; SQLite is the default.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import settings

_is_sqlite = settings.database_url.startswith("sqlite")

engine = create_engine(
    settings.database_url,
    # Repositories and the audit log may open sessions from worker threads.
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    echo=False,
)

# Unit-of-work and audit-log sessions are both built from this factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Declarative base shared by gradekeys.models
Base = declarative_base()


def init_db():
    """
    Create the exams, correction_entries and grading_key_changes tables.
    Existing tables are left untouched.
    """
    from . import models  # noqa: F401  (registers the tables on Base)

    Base.metadata.create_all(bind=engine)
