"""Command-line interface for Gatehouse.

This module provides the CLI commands for running and managing
the Gatehouse service.
"""

import sys
from typing import NoReturn

import click

from gatehouse.core.config import get_settings
from gatehouse.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version="0.1.0", prog_name="Gatehouse")
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug mode",
)
def cli(debug: bool) -> None:
    """Gatehouse - roles, permissions and sessions for admin applications."""


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the Gatehouse API server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting Gatehouse server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "gatehouse.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
@click.option(
    "--seed/--no-seed",
    default=True,
    help="Seed the default roles and permissions",
)
def init_db(force: bool, seed: bool) -> None:
    """Create all tables and, optionally, the default roles and permissions."""
    import asyncio

    from gatehouse.infrastructure.persistence.database import get_db_manager, init_database

    settings = get_settings()
    configure_logging(settings)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize():
        try:
            await init_database(seed=seed)
            click.echo("Database initialized successfully.")
        finally:
            await get_db_manager().disconnect()

    asyncio.run(initialize())


@cli.command()
@click.option("--email", type=str, default=None, help="Owner email (prompts if not provided)")
@click.option(
    "--password",
    type=str,
    default=None,
    help="Owner password (prompts if not provided)",
)
@click.option("--name", type=str, default="Owner", show_default=True, help="Display name")
def create_owner(email: str | None, password: str | None, name: str) -> None:
    """Create a user holding the owner role.

    The owner bypasses every permission check.
    """
    import asyncio

    from gatehouse.infrastructure.persistence.database import get_db_manager
    from gatehouse.infrastructure.persistence.seed import create_owner as create_owner_account

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    if email is None:
        email = click.prompt("Owner email", type=str)
    if "@" not in email or "." not in email.split("@")[-1]:
        click.echo("Error: Invalid email format", err=True)
        raise SystemExit(1)

    if password is None:
        password = click.prompt("Owner password", hide_input=True, confirmation_prompt=True)

    async def create() -> None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                user = await create_owner_account(session, email, password, name=name)
            click.echo(f"\nOwner created successfully!\n  User ID: {user.id}\n  Email:   {email}\n")
            logger.info("Owner created via CLI", user_id=user.id, email=email)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            logger.error("Owner creation failed", error=str(e))
            raise SystemExit(1)
        finally:
            await db.disconnect()

    asyncio.run(create())


@cli.command()
def prune_tokens() -> None:
    """Delete expired access tokens."""
    import asyncio

    from gatehouse.infrastructure.persistence.database import get_db_manager
    from gatehouse.infrastructure.persistence.repositories import AccessTokenRepository

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    async def prune() -> int:
        db = get_db_manager()
        try:
            async with db.session() as session:
                count = await AccessTokenRepository(session).delete_expired()
                await session.commit()
            return count
        finally:
            await db.disconnect()

    count = asyncio.run(prune())
    logger.info("Expired access tokens pruned", count=count)
    click.echo(f"Pruned {count} expired token(s).")


@cli.command()
def info() -> None:
    """Display Gatehouse configuration."""
    settings = get_settings()

    click.echo(f"""
Gatehouse v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}

Database:
  URL:          {settings.database_url}

Security:
  Token Expire: {settings.access_token_expire_minutes} minutes
  Remember Me:  {settings.remember_me_expire_days} days

Session:
  Idle Timeout: {settings.session_idle_timeout_seconds} seconds
  Refresh:      {settings.session_refresh_interval_seconds} seconds
""")


def main() -> NoReturn:
    """Entry point for the ``gatehouse`` command and ``python -m gatehouse``."""
    cli()


if __name__ == "__main__":
    sys.exit(main())
