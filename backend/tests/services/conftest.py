"""Service test fixtures — async DB, seeded forum data and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched for code paths that bypass get_db (readiness probe)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - StaticPool: every session shares the single in-memory connection
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from entitymvc.db.base import Base
from entitymvc.infrastructure.database import get_db, DatabaseSessionManager
from entitymvc.models import Forum, Member, Post, Thread, ThreadStatus
import entitymvc.infrastructure.database as db_module
from entitymvc.main import app

ADMIN = {"X-User": "root", "X-Roles": "admin"}
USER = {"X-User": "alice"}


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def seed_forum(test_db):
    """One member, one forum and three threads (one locked) with a reply."""
    member = Member(username="alice", email="alice@example.com", password="secret")
    forum = Forum(name="General", description="Anything goes", position=1)
    test_db.add_all([member, forum])
    await test_db.flush()

    threads = [
        Thread(title="Welcome aboard", member=member, forum=forum),
        Thread(title="Rules", member=member, forum=forum, status=ThreadStatus.LOCKED),
        Thread(title="Off topic", member=member, forum=forum),
    ]
    test_db.add_all(threads)
    await test_db.flush()
    test_db.add(Post(content="<p>Hi</p>", member=member, thread=threads[0]))
    await test_db.commit()
    # later loads must go through the code under test, not the identity map
    test_db.expunge_all()
    return {"member": member, "forum": forum, "threads": threads}
