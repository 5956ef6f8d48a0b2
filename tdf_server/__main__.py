"""Main entry point for the TDF server."""

import asyncio
import signal
import sys
from pathlib import Path

import click
import structlog
from dotenv import load_dotenv

from . import __version__
from .config import load_config
from .server import TDFServer
from .utils.logging import setup_logging


logger = structlog.get_logger()


async def run_server(server: TDFServer) -> None:
    """Serve until SIGINT or SIGTERM, then shut down cleanly."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(stop_event.set))

    await server.start()
    serve_task = asyncio.create_task(server.serve())
    try:
        await stop_event.wait()
        logger.info("shutdown_requested")
    finally:
        await server.stop()
        serve_task.cancel()
        try:
            await serve_task
        except asyncio.CancelledError:
            pass


@click.command()
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file",
)
@click.option(
    "-e",
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=".env",
    help="Path to environment file",
)
@click.option("--host", help="Override listen host from config")
@click.option("--port", type=int, help="Override listen port from config")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Override log level from config",
)
@click.option("--dry-run", is_flag=True, help="Validate configuration without starting the server")
@click.version_option(__version__)
def main(
    config: Path | None,
    env_file: Path,
    host: str | None,
    port: int | None,
    log_level: str | None,
    dry_run: bool,
) -> None:
    """TDF Server - packet server for the TDF game protocol."""
    if env_file.exists():
        load_dotenv(env_file)

    try:
        settings = load_config(config)
        if host is not None:
            settings.server.host = host
        if port is not None:
            settings.server.port = port
        if log_level:
            settings.logging.level = log_level
    except (OSError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(
        level=settings.logging.level,
        format_type=settings.logging.format,
        log_file=settings.logging.file if not dry_run else None,
    )

    logger.info(
        "starting_tdf_server",
        version=__version__,
        config_file=str(config) if config else None,
        host=settings.server.host,
        port=settings.server.port,
    )

    if dry_run:
        logger.info("configuration_valid")
        click.echo("Configuration is valid!")
        sys.exit(0)

    server = TDFServer(settings.server, settings.codec)
    try:
        asyncio.run(run_server(server))
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")
    except OSError as e:
        logger.exception("fatal_error", error=str(e))
        sys.exit(1)
    finally:
        logger.info("tdf_server_stopped")


if __name__ == "__main__":
    main()
