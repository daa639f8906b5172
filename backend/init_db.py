#!/usr/bin/env python3
"""
Database initialization script.

Creates the exam, correction and audit tables in the configured database.
"""
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import logging

from gradekeys.database import Base, init_db
from gradekeys.wiring.bootstrap import configure_logging

logger = logging.getLogger(__name__)


def init_database():
    """Initialize database by creating all tables."""
    try:
        logger.info("Starting database initialization...")
        init_db()

        logger.info("Database initialized successfully")
        for table in Base.metadata.sorted_tables:
            logger.info(f"  - {table.name}")
        return True

    except Exception as e:
        logger.exception(f"Database initialization failed: {e}")
        return False


if __name__ == "__main__":
    configure_logging()
    success = init_database()
    sys.exit(0 if success else 1)
