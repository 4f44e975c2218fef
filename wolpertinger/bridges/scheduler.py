"""Periodic rebuild of the bridge registry."""

import asyncio
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from sqlalchemy.orm import Session

from wolpertinger.bridges.exceptions import WolpertingerError
from wolpertinger.bridges.extrainfo import read_extrainfo_file
from wolpertinger.bridges.loader import load_bridges_from_db
from wolpertinger.bridges.models import Registry
from wolpertinger.bridges.reconcile import reconcile
from wolpertinger.bridges.store import RegistryStore
from wolpertinger.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_REFRESH_INTERVAL_SECONDS = 60 * 60


class SchedulerState(str, Enum):
    """Refresh scheduler state."""

    INITIALIZING = "initializing"  # No registry published yet
    STEADY = "steady"


class RefreshScheduler:
    """
    Rebuilds the registry from both sources and publishes it into the store.

    The first successful cycle fires a one-shot readiness event; after that
    the scheduler keeps refreshing on a fixed interval. A failed cycle
    leaves the previously published registry in place and is retried on
    the next tick.
    """

    def __init__(
        self,
        store: RegistryStore,
        session_factory: Callable[[], Session],
        extrainfo_file: str | Path,
        interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ):
        self.store = store
        self.session_factory = session_factory
        self.extrainfo_file = extrainfo_file
        self.interval = interval
        self.state = SchedulerState.INITIALIZING
        self.last_error: Exception | None = None
        self._ready = asyncio.Event()

    def load_from_db(self) -> Registry:
        with self.session_factory() as db:
            return load_bridges_from_db(db)

    def load_from_extrainfo(self) -> Registry:
        return read_extrainfo_file(self.extrainfo_file)

    def run_cycle(self) -> bool:
        """
        Load, parse, reconcile and publish once.

        Returns:
            True if a new registry was published, False if the cycle was abandoned
        """
        start = time.perf_counter()
        try:
            db_registry = self.load_from_db()
            parsed_registry = self.load_from_extrainfo()
        except WolpertingerError as e:
            self.last_error = e
            logger.error(
                "Bridge refresh failed, keeping previous registry",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            return False

        registry = reconcile(db_registry, parsed_registry)
        self.store.replace(registry)
        self.last_error = None

        logger.info(
            "Published bridge registry",
            extra={
                "bridges": len(registry),
                "transports": registry.transport_count(),
                "dropped_descriptors": len(set(parsed_registry) - set(db_registry)),
                "generation": self.store.generation,
                "elapsed_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return True

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    async def run_forever(self) -> None:
        """Refresh every ``interval`` seconds until cancelled."""
        while True:
            try:
                published = await asyncio.to_thread(self.run_cycle)
            except Exception as e:
                self.last_error = e
                logger.exception("Unexpected error during bridge refresh")
                published = False

            if published and not self._ready.is_set():
                self.state = SchedulerState.STEADY
                self._ready.set()
                logger.info("Bridge registry ready")

            await asyncio.sleep(self.interval)
