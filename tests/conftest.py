"""
Test infrastructure for the post feed API.

Strategy
--------
- Each test that asks for ``database`` (directly or through
  ``async_client``) gets its own ``Database`` handle on SQLite in-memory via
  aiosqlite.  StaticPool keeps every session on the one connection that owns
  the in-memory database.
- The handle is installed on ``app.state.database``, which is exactly where
  the production lifespan puts it, so routers and dependencies run
  unchanged.  ASGITransport does not run the lifespan, so no Postgres or
  Redis is touched.
- The Redis cache is disabled by setting ``cache._redis = None``; the
  CacheManager treats that as a permanent miss.
- Service-level tests build ``PostService`` without a cache, except the
  cache tests, which use ``MemoryCache``: a ``CacheManager`` keeping its
  entries and generation counters in dicts.
"""
import json

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

from postfeed.cache import CacheManager, cache
from postfeed.database import Database
from postfeed.main import app
from postfeed.models import User
from postfeed.services.post_service import PostService
from postfeed.store import PostStore, ProfileLookup

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def database():
    """A fresh in-memory store per test, installed on the app."""
    db = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db.connect()
    await db.create_all()
    app.state.database = db
    yield db
    await db.drop_all()
    await db.disconnect()


@pytest_asyncio.fixture
async def async_client(database) -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def post_store(database) -> PostStore:
    return PostStore(database)


@pytest.fixture
def post_service(database, post_store) -> PostService:
    return PostService(post_store, ProfileLookup(database))


@pytest.fixture
def create_user(database):
    """Factory inserting a User row directly and returning its id."""

    async def _create(username: str, display_name: str | None = None, avatar: str | None = None) -> int:
        async with database.session() as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                display_name=display_name,
                avatar=avatar,
            )
            session.add(user)
            await session.commit()
            return user.id

    return _create



# ---------------------------------------------------------------------------
# In-memory cache
# ---------------------------------------------------------------------------

class MemoryCache(CacheManager):
    """CacheManager with dict storage; ``invalidate_post`` is inherited."""

    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[str, str] = {}
        self.generations: dict[str, int] = {}

    async def get(self, key: str) -> dict | list | None:
        data = self.entries.get(key)
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def generation(self, gen_key: str) -> int | None:
        return self.generations.get(gen_key, 0)

    async def set_if_generation(self, key, value, gen_key, expected, ttl=None) -> bool:
        if expected is None or self.generations.get(gen_key, 0) != expected:
            return False
        self.entries[key] = json.dumps(value, default=str)
        return True

    async def bump(self, *gen_keys: str) -> None:
        for gen_key in gen_keys:
            self.generations[gen_key] = self.generations.get(gen_key, 0) + 1

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.entries.pop(key, None)


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def cached_service(database, post_store, memory_cache) -> PostService:
    return PostService(post_store, ProfileLookup(database), cache=memory_cache)
