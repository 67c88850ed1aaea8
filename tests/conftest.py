"""
Test infrastructure for the Haven API.

Strategy
--------
- SQLite in-memory via aiosqlite keeps the suite self-contained; no
  Postgres instance is needed.
- StaticPool makes every session share the one in-memory connection,
  since a second connection would see an empty database.
- The app's get_db dependency is overridden so requests use the test
  session factory.
- Tables are created before and dropped after each test.
- Outgoing email is captured in ``outbox`` instead of being delivered.
- bcrypt runs at its minimum cost factor to keep hashing fast.
"""
import os

os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MAIL_API_KEY"] = ""
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from haven.database import Base, get_db
from haven.main import app
from haven.mailer import mailer
from haven.middleware import install_query_counter
from haven.services import category_service

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
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
    async with async_session_test() as session, session.begin():
        yield session


app.dependency_overrides[get_db] = override_get_db

DEFAULT_PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def outbox(monkeypatch) -> list[dict]:
    """Capture every email the app tries to send."""
    sent: list[dict] = []

    async def fake_send(to: str, subject: str, html: str) -> bool:
        sent.append({"to": to, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(mailer, "send", fake_send)
    return sent


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for tests that call services directly."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """The test session factory, for tests that set up or inspect rows directly."""
    return async_session_test


@pytest_asyncio.fixture
async def categories() -> None:
    """Insert the configured default categories."""
    async with async_session_test() as session:
        await category_service.ensure_default_categories(session)
        await session.commit()


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(async_client: AsyncClient):
    """
    Return a coroutine that registers a user and yields
    ``(auth_headers, user_dict)``.  Each call needs a unique *name*.
    """
    async def _register(name: str, password: str = DEFAULT_PASSWORD, **extra):
        payload = {
            "first_name": "Test",
            "last_name": "User",
            "user_name": name,
            "email": f"{name}@example.com",
            "password": password,
            **extra,
        }
        resp = await async_client.post("/api/v1/users/create", json=payload)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register


@pytest.fixture
def create_article(async_client: AsyncClient):
    """Return a coroutine that creates an article and returns its dict."""
    async def _create(headers: dict, **fields):
        payload = {
            "title": "A Day In The Life",
            "description": "What one day looks like",
            "article_body": "It started early in the morning.",
            **fields,
        }
        resp = await async_client.post("/api/v1/articles", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["article"]

    return _create

