"""Pytest configuration for all tests."""

from collections.abc import Awaitable, Callable
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gatehouse.infrastructure.auth import hash_password
from gatehouse.infrastructure.persistence.database import Base
from gatehouse.infrastructure.persistence.models import UserModel
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import RoleRepository
from gatehouse.infrastructure.persistence.seed import seed_defaults

PASSWORD = "Password123!"

MakeUser = Callable[..., Awaitable[UserModel]]


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> AsyncSession:
    """Database session with the default roles and permissions."""
    await seed_defaults(db_session)
    return db_session


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> MakeUser:
    """Factory creating a user holding the named roles."""

    async def factory(
        email: str,
        roles: list[str] | None = None,
        password: str = PASSWORD,
        active: bool = True,
        name: str = "Test User",
        username: str | None = None,
    ) -> UserModel:
        user = UserModel(
            name=name,
            email=email,
            username=username,
            password_hash=hash_password(password),
            active=active,
        )
        db_session.add(user)
        await db_session.flush()

        role_repo = RoleRepository(db_session)
        role_ids = []
        for role_name in roles or []:
            role = await role_repo.get_by_name(role_name)
            role_ids.append(role.id)
        if role_ids:
            await SqlPermissionGraph(db_session).assign_roles(user.id, role_ids)
        await db_session.commit()
        return user

    return factory


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden database dependency."""
    from gatehouse.infrastructure.api.app import app
    from gatehouse.infrastructure.persistence.database import get_db_session

    app.dependency_overrides[get_db_session] = lambda: db_session
    app.state.permission_cache.invalidate_all()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
    app.state.permission_cache.invalidate_all()


@pytest_asyncio.fixture
async def login_as(client: AsyncClient) -> Callable[..., Awaitable[dict[str, str]]]:
    """Factory logging in through the API and returning bearer headers."""

    async def factory(email: str, password: str = PASSWORD) -> dict[str, str]:
        response = await client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        token = response.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return factory
