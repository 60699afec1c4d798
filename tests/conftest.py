"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite) whose tables are
created from the ORM metadata. Redis is not started; the rate limiter and
the readiness probe treat it as absent.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal

os.environ["VX_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["VX_JWT_SECRET_KEY"] = "test-only-validatex-signing-key-0123456789abcdef"
os.environ["VX_LOG_FORMAT"] = "console"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from validatex.config import get_settings  # noqa: E402

get_settings.cache_clear()

from validatex.auth.jwt import create_access_token  # noqa: E402
from validatex.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from validatex.db.base import Base  # noqa: E402
from validatex.db.models import Category, Post, User, UserRole  # noqa: E402
from validatex.ledger.balances import grant_bonus  # noqa: E402
from validatex.main import create_app  # noqa: E402
from validatex.posts.service import PostDraft, create_post  # noqa: E402


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema per test and a session bound to it."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_factory()() as session:
        yield session

    await close_db()


@pytest_asyncio.fixture
async def seed_session(db_session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Separate session for fixture data.

    A rollback in ``db_session`` expires everything it holds; factory-built
    rows live here so tests can keep reading their ids afterwards.
    """
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app, sharing the test database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(seed_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory: persist a user. ``balance`` is credited as a ledger-backed bonus."""
    counter = itertools.count(1)

    async def _make(
        role: UserRole = UserRole.USER,
        balance: Decimal | str | int = 0,
        reputation: int = 0,
        **fields: object,
    ) -> User:
        n = next(counter)
        user = User(
            email=f"user{n}@example.com",
            name=f"User {n}",
            role=role,
            reputation_score=reputation,
            **fields,
        )
        seed_session.add(user)
        await seed_session.commit()
        if Decimal(str(balance)) > 0:
            await grant_bonus(seed_session, user.id, Decimal(str(balance)), "Opening balance")
        return user

    return _make


@pytest_asyncio.fixture
async def category(seed_session: AsyncSession) -> Category:
    cat = Category(name="Technology", icon="💻")
    seed_session.add(cat)
    await seed_session.commit()
    return cat


@pytest_asyncio.fixture
async def make_post(seed_session: AsyncSession, category: Category) -> Callable[..., Awaitable[Post]]:
    """Factory: create a paid post through the post service."""

    async def _make(
        author: User,
        total_budget: Decimal | str = "1000",
        normal: int = 10,
        detailed: int = 5,
        **fields: object,
    ) -> Post:
        draft = PostDraft(
            title=fields.pop("title", "Idea under review"),  # type: ignore[arg-type]
            category_id=category.id,
            total_budget=Decimal(str(total_budget)),
            normal_validator_count=normal,
            detailed_validator_count=detailed,
            **fields,  # type: ignore[arg-type]
        )
        return await create_post(seed_session, author.id, draft)

    return _make


@pytest_asyncio.fixture
async def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}

    return _headers
