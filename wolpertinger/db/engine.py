"""Database engine configuration."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from wolpertinger.core.config import settings


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create SQLAlchemy engine."""
    database_url = database_url or settings.DATABASE_URL
    if database_url.startswith("sqlite"):
        # SQLite picks its own pool; connections are shared with the refresh thread
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=2,
        max_overflow=2,
        echo=False,  # Set to True for SQL query logging
    )
