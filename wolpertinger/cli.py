"""Command line entry point."""

import sys

import click

from wolpertinger.bridges.exceptions import WolpertingerError
from wolpertinger.core.config import Settings, settings as env_settings
from wolpertinger.core.logging import get_logger, setup_logging
from wolpertinger.core.security import generate_api_token

logger = get_logger(__name__)

config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON configuration file. Environment variables are used when omitted.",
)


def _load_settings(config_file: str | None) -> Settings:
    if config_file is None:
        return env_settings
    try:
        return Settings.from_json_file(config_file)
    except ValueError as e:
        click.echo(f"Failed to load config file: {e}", err=True)
        sys.exit(1)


@click.group()
def cli():
    """Hand out unallocated bridges to censorship measurement probes."""


@cli.command("new-token")
def new_token():
    """Generate a new authentication token."""
    click.echo(f"Authentication token: {generate_api_token()}")


@cli.command()
@config_option
@click.option("--host", default=None, help="Address to listen on.")
@click.option("--port", type=int, default=None, help="Port to listen on.")
def serve(config_file: str | None, host: str | None, port: int | None):
    """
    Run the HTTP service.

    The listener only starts once the first bridge registry is published.

    Example:
        wolpertinger serve --config wolpertinger.json
    """
    import uvicorn

    from wolpertinger.main import create_app

    settings = _load_settings(config_file)
    try:
        app = create_app(settings)
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    uvicorn.run(
        app,
        host=host or settings.LISTEN_HOST,
        port=port or settings.LISTEN_PORT,
        ssl_certfile=settings.TLS_CERT_FILE,
        ssl_keyfile=settings.TLS_KEY_FILE,
        log_config=None,
    )


@cli.command("ingest-measurement")
@config_option
@click.argument("measurement_file", type=click.Path(exists=True, dir_okay=False))
def ingest_measurement(config_file: str | None, measurement_file: str):
    """
    Record bridges found blocked by an OONI tor test measurement.

    Example:
        wolpertinger ingest-measurement 2020-05-01-tor.json
    """
    from wolpertinger.bridges.extrainfo import read_extrainfo_file
    from wolpertinger.bridges.loader import load_bridges_from_db
    from wolpertinger.bridges.reconcile import reconcile
    from wolpertinger.db.engine import create_db_engine
    from wolpertinger.db.session import create_session_factory
    from wolpertinger.ooni.measurement import load_measurement, record_measurement

    settings = _load_settings(config_file)
    setup_logging(settings)

    engine = create_db_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)
    try:
        with session_factory() as db:
            db_registry = load_bridges_from_db(db)
        registry = reconcile(db_registry, read_extrainfo_file(settings.EXTRAINFO_FILE))

        measurement = load_measurement(measurement_file)
        with session_factory() as db:
            written = record_measurement(db, measurement, registry, settings.master_key_bytes)
    except (WolpertingerError, ValueError) as e:
        logger.error("Measurement ingestion failed", extra={"error_type": type(e).__name__})
        click.echo(f"Measurement ingestion failed: {e}", err=True)
        sys.exit(1)
    finally:
        engine.dispose()

    click.echo(f"Recorded {written} blocked bridge(s)")


if __name__ == "__main__":
    cli()
