"""Pytest configuration and shared fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from tests.helpers.factories import (
    API_TOKEN,
    EXTRAINFO_DOC,
    FP_A,
    FP_B,
    MASTER_KEY,
    make_bridge,
    make_registry,
    make_transport,
)
from wolpertinger.bridges.models import DistributionGroup
from wolpertinger.bridges.store import RegistryStore
from wolpertinger.core.config import Settings
from wolpertinger.db.base import Base
from wolpertinger.db.engine import create_db_engine
from wolpertinger.db.session import create_session_factory
from wolpertinger.main import create_app

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def session_factory(tmp_path: Path) -> Generator[sessionmaker[Session], None, None]:
    """Session factory over an empty SQLite bridge database."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'bridges.sqlite'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield create_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """A session on the test database."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def extrainfo_file(tmp_path: Path) -> Path:
    """An extra-info document describing three bridges."""
    path = tmp_path / "cached-extrainfo"
    path.write_text(EXTRAINFO_DOC, encoding="utf-8")
    return path


@pytest.fixture
def test_settings(tmp_path: Path, extrainfo_file: Path) -> Settings:
    """Settings for an isolated test run."""
    return Settings(
        _env_file=None,
        ENV="test",
        MASTER_KEY=MASTER_KEY.decode(),
        API_TOKENS=[{"organisation": "ooni", "token": API_TOKEN}],
        DATABASE_URL=f"sqlite:///{tmp_path / 'bridges.sqlite'}",
        EXTRAINFO_FILE=str(extrainfo_file),
        REFRESH_INTERVAL_SECONDS=3600,
    )


@pytest.fixture
def populated_store() -> RegistryStore:
    """A store holding one unallocated vanilla bridge, one unallocated obfs4 bridge and one moat bridge."""
    return RegistryStore(
        make_registry(
            make_bridge(FP_A, address="10.0.0.1"),
            make_bridge(FP_B, address="10.0.0.2", transports=[make_transport(FP_B)]),
            make_bridge("C" * 40, address="10.0.0.3", group=DistributionGroup.MOAT),
        )
    )


@pytest.fixture
def client(test_settings: Settings, populated_store: RegistryStore) -> Generator[TestClient, None, None]:
    """TestClient over an app serving a pre-populated store, without the refresh task."""
    app = create_app(test_settings, store=populated_store, refresh=False)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {API_TOKEN}"}
