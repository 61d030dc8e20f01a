"""Async SQLAlchemy engine and sessions.

One ``DatabaseManager`` per process owns the engine. Request handlers get a
session from ``get_db_session``; repositories flush into it and the handler
or service commits.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from gatehouse.core.config import Settings, get_settings
from gatehouse.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from SQLite as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DatabaseManager:
    """Lazily creates the engine and session factory for one database URL."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.settings.database_url).get_backend_name() == "sqlite"

    def _engine_options(self) -> dict:
        if self.is_sqlite:
            return {"connect_args": {"check_same_thread": False}}
        return {
            "pool_size": self.settings.db_pool_size,
            "max_overflow": self.settings.db_max_overflow,
            "pool_timeout": self.settings.db_pool_timeout,
            "pool_recycle": self.settings.db_pool_recycle,
            "pool_pre_ping": True,
        }

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(
                self.settings.database_url, echo=self.settings.db_echo, **self._engine_options()
            )
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine, expire_on_commit=False, autoflush=False
            )
        return self._session_factory

    def ensure_sqlite_directory(self) -> None:
        """Create the parent directory of a file-backed SQLite database."""
        if not self.is_sqlite:
            return
        database = make_url(self.settings.database_url).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    async def create_tables(self) -> None:
        """Create every table known to the models. Existing tables are kept."""
        import gatehouse.infrastructure.persistence.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", tables=sorted(Base.metadata.tables))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that is rolled back if the block raises.

        Example:
            async with db.session() as session:
                await seed_defaults(session)
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database unreachable", error=str(e))
            return False
        return True

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Return the process-wide database manager."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    async with get_db_manager().session() as session:
        yield session


async def init_database(seed: bool | None = None) -> None:
    """Prepare the database for serving.

    Creates missing tables, seeds the default roles and permissions and
    creates the owner account configured in settings.

    Args:
        seed: Force seeding on or off. Defaults to seeding in development.

    Raises:
        RuntimeError: If the database cannot be reached.
    """
    from gatehouse.infrastructure.persistence.seed import create_owner_from_settings, seed_defaults

    db = get_db_manager()
    settings = db.settings

    db.ensure_sqlite_directory()
    if not await db.check_connection():
        raise RuntimeError("Failed to connect to database")

    await db.create_tables()

    if settings.is_development if seed is None else seed:
        async with db.session() as session:
            await seed_defaults(session)

    async with db.session() as session:
        await create_owner_from_settings(session, settings)


async def close_database() -> None:
    await get_db_manager().disconnect()
