import os

# Settings are read at import time; pin them before the app is imported.
os.environ["VACATION_DB"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("RABBIT_URL", None)
os.environ.pop("COMPLETION_REQUIRES_ELAPSED", None)
os.environ.pop("REJECT_OVERLAPPING_CONFIRMATIONS", None)

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vacation_service.db import Base
from vacation_service import models  # noqa: F401
from vacation_service.store import Store


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def store(session_factory):
    async with session_factory() as session:
        yield Store(session)
