import logging
import sys

import click
import uvicorn

from gmaps_mcp.app import create_app
from gmaps_mcp.config import load_settings
from gmaps_mcp.exceptions import ConfigurationError
from gmaps_mcp.utilities.logging import configure_logging

logger = logging.getLogger("gmaps_mcp")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.command()
@click.option("--host", default=None, help="Interface to bind (overrides HOST)")
@click.option("--port", type=click.IntRange(min=1), default=None, help="Port to listen on (overrides PORT)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (overrides LOG_LEVEL)",
)
def main(host: str | None, port: int | None, log_level: str | None) -> int:
    overrides = {"host": host, "port": port, "log_level": log_level.upper() if log_level else None}
    try:
        settings = load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ConfigurationError as e:
        configure_logging()
        logger.error("%s", e)
        sys.exit(1)

    configure_logging(settings.log_level)
    logger.info("Starting Google Maps MCP server on %s:%d%s", settings.host, settings.port, settings.mcp_path)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    main()
