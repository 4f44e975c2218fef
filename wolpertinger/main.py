"""FastAPI application factory and main entry point."""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from wolpertinger.api.v1.router import api_router
from wolpertinger.bridges.distributor import Distributor
from wolpertinger.bridges.scheduler import RefreshScheduler
from wolpertinger.bridges.store import RegistryStore
from wolpertinger.core.config import Settings, settings as default_settings
from wolpertinger.core.errors import general_exception_handler, http_exception_handler
from wolpertinger.core.logging import get_logger, setup_logging
from wolpertinger.db.engine import create_db_engine
from wolpertinger.db.session import create_session_factory

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    store: RegistryStore | None = None,
    refresh: bool = True,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to run with; the environment-derived ones by default
        store: Registry store shared by the refresh task and request handlers
        refresh: Run the periodic refresh task. Startup then blocks until the
            first registry is published.
    """
    settings = settings or default_settings
    store = store if store is not None else RegistryStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        setup_logging(settings)
        app.state.scheduler = None
        engine = None
        task = None
        if refresh:
            engine = create_db_engine(settings.DATABASE_URL)
            scheduler = RefreshScheduler(
                store,
                create_session_factory(engine),
                settings.EXTRAINFO_FILE,
                interval=settings.REFRESH_INTERVAL_SECONDS,
            )
            app.state.scheduler = scheduler
            task = asyncio.create_task(scheduler.run_forever())
            # Do not accept traffic before a registry exists
            await scheduler.wait_until_ready()
        elif not store.is_populated:
            logger.warning("Refresh disabled and no registry published; /fetch answers will be empty")
        logger.info("Starting service", extra={"env": settings.ENV, "bridges": len(store.snapshot())})
        yield
        # Shutdown
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if engine is not None:
            engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Hands out unallocated Tor bridges to censorship measurement probes",
        openapi_url="/openapi.json" if settings.ENV != "prod" else None,
        docs_url="/docs" if settings.ENV != "prod" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.registry_store = store
    app.state.distributor = Distributor(
        store,
        settings.master_key_bytes,
        max_bridges=settings.MAX_BRIDGES_PER_RESPONSE,
        probing_resistant=settings.PROBING_RESISTANT_TRANSPORTS,
    )

    # Add exception handlers
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router)

    return app
