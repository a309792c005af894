"""
Shared test fixtures and utilities.

The app runs against a fresh in-memory SQLite database per test, with the
storage, identity-provider, assistant, limiter and cache dependencies
replaced by local fakes.
"""
import itertools
import os
import tempfile
from dataclasses import dataclass

# Settings are read at import time; these must be in place before tramoo loads.
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret-for-testing-only"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="tramoo-uploads-")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["GEMINI_API_KEY"] = ""

import httpx
import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tramoo.core.exceptions import Unauthorized
from tramoo.core.permissions import Role
from tramoo.db.base import Base
from tramoo.db.session import get_db
from tramoo.main import app as fastapi_app
from tramoo.models.user import User
from tramoo.services.assistant_service import get_assistant
from tramoo.services.identity_service import GoogleProfile, get_identity_provider
from tramoo.services.storage_service import LocalStorage, get_storage
from tramoo.services.throttle_service import (
    MemoryRateLimiter,
    ResponseCache,
    get_api_rate_limiter,
    get_chat_rate_limiter,
    get_response_cache,
)

API = "/api/v1"


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAssistant:
    def __init__(self, reply_text: str = "Lisbon is lovely in spring."):
        self.reply_text = reply_text
        self.calls: list[tuple[list[tuple[str, str]], str]] = []

    async def reply(self, history, message: str) -> str:
        self.calls.append(([(turn.sender, turn.message) for turn in history], message))
        return self.reply_text


class FakeIdentityProvider:
    def __init__(self):
        self.profiles: dict[str, GoogleProfile] = {}

    async def exchange_code(self, code: str) -> GoogleProfile:
        if code not in self.profiles:
            raise Unauthorized("Google authentication failed", code="GOOGLE_AUTH_FAILED")
        return self.profiles[code]


@dataclass
class Account:
    id: str
    name: str
    email: str
    password: str
    access_token: str
    refresh_token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


@pytest.fixture
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


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(base_dir=tmp_path / "uploads", base_url="http://testserver")


@pytest.fixture
def assistant() -> FakeAssistant:
    return FakeAssistant()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def chat_limiter(clock) -> MemoryRateLimiter:
    return MemoryRateLimiter(limit=1, window_seconds=2.0, clock=clock)


@pytest.fixture
def response_cache(clock) -> ResponseCache:
    return ResponseCache(ttl_seconds=300.0, max_entries=64, clock=clock)


@pytest.fixture
def app(session_maker, storage, assistant, identity_provider, chat_limiter, response_cache):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    api_limiter = MemoryRateLimiter(limit=10_000, window_seconds=900)
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_storage] = lambda: storage
    fastapi_app.dependency_overrides[get_assistant] = lambda: assistant
    fastapi_app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    fastapi_app.dependency_overrides[get_chat_rate_limiter] = lambda: chat_limiter
    fastapi_app.dependency_overrides[get_response_cache] = lambda: response_cache
    fastapi_app.dependency_overrides[get_api_rate_limiter] = lambda: api_limiter
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def set_role(session_maker):
    """Change a role directly in the database, as scripts/set_role.py does."""

    async def _set_role(account: Account, role: Role) -> None:
        async with session_maker() as session:
            await session.execute(update(User).where(User.id == _uuid(account.id)).values(role=role.value))
            await session.commit()

    return _set_role


@pytest.fixture
def register_user(client, set_role):
    counter = itertools.count(1)

    async def _register(name: str = "Traveler", role: Role | None = None, password: str = "password123") -> Account:
        email = f"{name.lower()}{next(counter)}@example.com"
        response = await client.post(
            f"{API}/auth/register", json={"name": name, "email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        data = response.json()
        account = Account(
            id=data["user"]["id"],
            name=name,
            email=email,
            password=password,
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
        )
        if role is not None:
            await set_role(account, role)
        return account

    return _register


@pytest.fixture
def create_blog(client):
    async def _create(account: Account, **overrides) -> dict:
        payload = {
            "title": "Three days in Porto",
            "content": "Tiled facades, port cellars and a lot of stairs. " * 5,
            "country": "Portugal",
            "tags": ["city", "food"],
        }
        payload.update(overrides)
        response = await client.post(f"{API}/blogs", json=payload, headers=account.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


def _uuid(value: str):
    from uuid import UUID

    return UUID(value)
