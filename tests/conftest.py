"""
Shared fixtures: an in-memory SQLite database behind ``get_db`` and an
in-memory Redis double, so the API can be exercised without Postgres/Redis.

Run with:
    pip install -e ".[test]" && pytest -v
"""
import os

# Must be set before budgetspace.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("API_SECRET_KEY", "test-secret-key-that-is-long-enough-0123456789")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from budgetspace.core import redis as redis_module
from budgetspace.core.config import settings
from budgetspace.core.database import Base, get_db
from budgetspace.main import app
from budgetspace.models import (  # noqa: F401  registers tables on Base.metadata
    budget,
    debt,
    income,
    preferences,
    recurring,
    transaction,
    user,
    workspace,
)

PASSWORD = "CorrectHorse42Battery"


class FakeRedis:
    """Just enough of redis.asyncio.Redis for lockout, revocation and locks. TTLs are ignored."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = str(value)
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = str(value)
        return True

    async def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])

    async def expire(self, key, ttl):
        return key in self.data

    async def exists(self, key):
        return 1 if key in self.data else 0

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis", fake)
    return fake


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def client(session_factory, fake_redis):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ─── Helpers ──────────────────────────────────────────────────────────────────

async def sign_up(client: AsyncClient, email: str, full_name: str = "Test User") -> str:
    """Register a user and return their session token."""
    resp = await client.post(
        "/api/v1/auth/sign-up",
        json={"email": email, "password": PASSWORD, "full_name": full_name},
    )
    assert resp.status_code == 201, resp.text
    return resp.cookies[settings.session_cookie_name]


def use_session(client: AsyncClient, token: str) -> None:
    """Act as the user the token belongs to."""
    client.cookies.clear()
    client.cookies.set(settings.session_cookie_name, token)


async def create_workspace(client: AsyncClient, name: str = "Home") -> dict:
    resp = await client.post("/api/v1/workspaces/", json={"name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def add_member(client: AsyncClient, workspace_id: str, owner: str, invitee: str,
                     invitee_email: str, role: str) -> None:
    """Invite ``invitee_email`` as ``role`` and accept on their behalf."""
    use_session(client, owner)
    resp = await client.post(
        f"/api/v1/workspaces/{workspace_id}/invitations",
        json={"email": invitee_email, "role": role},
    )
    assert resp.status_code == 201, resp.text
    invitation_id = resp.json()["id"]

    use_session(client, invitee)
    resp = await client.post(
        f"/api/v1/invitations/{invitation_id}/respond", json={"status": "accepted"}
    )
    assert resp.status_code == 200, resp.text
