"""
Test infrastructure for the Article Store API.

Strategy
--------
- SQLite in-memory via aiosqlite, shared through StaticPool (an in-memory
  database is connection-scoped, so every task must reuse one connection).
- The app's get_db dependency is overridden with the test session factory.
- Tables are created before and dropped after each test.
- Redis is disabled by setting cache._redis = None; the CacheManager
  treats that as a permanent miss, so services always hit the database.
- BCRYPT_ROUNDS is lowered before the app is imported to keep
  registration/login fast.
"""
import os

os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.cache import cache  # noqa: E402
from app.database import Base, discard_after_commit, get_db, run_after_commit  # noqa: E402
from app.main import app  # noqa: E402
from app.middleware import install_query_counter  # noqa: E402
from app.services.article_service import ArticleService  # noqa: E402
from app.stores import SqlArticleStore, SqlUserStore  # noqa: E402

# ---------------------------------------------------------------------------
# Test database engine
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_after_commit(session)
            raise
        await run_after_commit(session)


app.dependency_overrides[get_db] = override_get_db


class TickingClock:
    """Deterministic clock: each call is one second after the previous."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def service(db_session: AsyncSession) -> ArticleService:
    """An ArticleService on the SQL stores with a short recently-viewed limit."""
    return ArticleService(
        SqlArticleStore(db_session, clock=TickingClock()),
        SqlUserStore(db_session),
        max_recent_views=3,
    )


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(async_client: AsyncClient):
    """
    Factory fixture: register + log in a user through the API and return
    the Authorization header for them.
    """

    async def _make(email: str = "alice@example.com", password: str = "secret123") -> dict:
        resp = await async_client.post(
            "/api/v1/auth/register", json={"email": email, "password": password}
        )
        assert resp.status_code == 201, resp.text
        resp = await async_client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _make
