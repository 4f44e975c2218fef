"""Database session management."""

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_session_factory(bind: Engine) -> sessionmaker[Session]:
    """Session factory for the given engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        expire_on_commit=False,  # Prevent lazy loading issues
    )
