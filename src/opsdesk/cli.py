"""Command-line interface for opsdesk.

This module provides the CLI commands for running and managing
the opsdesk service.
"""

import asyncio
from typing import NoReturn

import click

from opsdesk import __version__
from opsdesk.core.config import get_settings
from opsdesk.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version=__version__, prog_name="opsdesk")
def cli() -> None:
    """opsdesk - tenant-scoped record access for the operations console.

    Settings are read from OPSDESK_* environment variables and the .env file.
    """


@cli.command()
@click.option(
    "--host",
    type=str,
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload/--no-reload",
    default=None,
    help="Auto-reload on code changes (default: on in development)",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool | None) -> None:
    """Start the opsdesk API server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    if reload is None:
        reload = settings.is_development

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting opsdesk server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "opsdesk.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
@click.option(
    "--drop",
    is_flag=True,
    help="Drop existing collection tables and their records first",
)
def init_db(force: bool, drop: bool) -> None:
    """Create the collection tables.

    In production the schema is owned by migrations; ``--force`` overrides
    the guard.
    """
    from opsdesk.infrastructure.persistence.database import (
        get_db_manager,
        init_database,
    )

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations or pass --force.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        prompt = (
            "This will DROP and recreate all collection tables. Continue?"
            if drop
            else "This will create all collection tables. Continue?"
        )
        click.confirm(
            prompt,
            abort=True,
            default=False,
        )

    async def initialize():
        try:
            await init_database(create_tables=True, drop_existing=drop)
            click.echo("Database initialized successfully.")
        finally:
            await get_db_manager().disconnect()

    asyncio.run(initialize())


@cli.command()
def info() -> None:
    """Display opsdesk configuration."""
    settings = get_settings()

    click.echo(f"""
opsdesk v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}
  Workers:      {settings.workers}

Database:
  URL:          {settings.database_url}
  Pool Size:    {settings.db_pool_size}

Scoping:
  Internal:     {settings.internal_segment}
  Org Field:    {settings.org_field}
  Strict:       {settings.strict_tenant_scope}
  Search Mode:  {settings.search_mode}
  Exact Counts: {settings.exact_counts}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    Called by the ``opsdesk`` console script and ``python -m opsdesk``.
    """
    cli()


if __name__ == "__main__":
    main()
