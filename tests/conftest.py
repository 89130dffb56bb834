"""Shared test fixtures.

Every test gets its own SQLite database (created from the ORM metadata) and
an in-memory fake Redis, so the suite needs no running services.
"""

from __future__ import annotations

import itertools
import os
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["NOIZ_JWT_SECRET"] = "test-secret"
os.environ["NOIZ_CRON_SECRET"] = "test-cron-secret"
os.environ["NOIZ_LOG_FORMAT"] = "console"
os.environ["NOIZ_LOG_LEVEL"] = "WARNING"
os.environ["NOIZ_ANTHROPIC_API_KEY"] = ""

from noizlabs.arena.storage import get_storage  # noqa: E402
from noizlabs.auth.base58 import b58encode  # noqa: E402
from noizlabs.auth.solana import build_auth_message  # noqa: E402
from noizlabs.config import get_settings  # noqa: E402
from noizlabs.database import close_db, get_engine, init_db, session_scope  # noqa: E402
from noizlabs.db.base import Base  # noqa: E402
from noizlabs.db import models  # noqa: E402, F401
from noizlabs.main import create_app  # noqa: E402
from noizlabs.redis_client import set_redis  # noqa: E402
from noizlabs.tasks.seed import seed_tasks  # noqa: E402

get_settings.cache_clear()

_ip_counter = itertools.count(1)


@dataclass
class Wallet:
    """An Ed25519 keypair standing in for a browser wallet adapter."""

    private_key: Ed25519PrivateKey

    @classmethod
    def generate(cls) -> Wallet:
        return cls(Ed25519PrivateKey.generate())

    @property
    def address(self) -> str:
        raw = self.private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return b58encode(raw)

    def sign(self, message: str) -> str:
        return b58encode(self.private_key.sign(message.encode("utf-8")))

    def auth_payload(self, timestamp_ms: int | None = None, **extra: str) -> dict[str, str]:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        message = build_auth_message(self.address, timestamp_ms)
        return {"walletAddress": self.address, "signature": self.sign(message), "message": message, **extra}


@dataclass
class User:
    wallet: Wallet
    token: str
    profile_id: str

    @property
    def address(self) -> str:
        return self.wallet.address

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def next_ip() -> str:
    n = next(_ip_counter)
    return f"10.{(n >> 16) & 255}.{(n >> 8) & 255}.{n & 255}"


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with the full schema."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'noizlabs.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """In-memory Redis installed as the application's client."""
    rc = fakeredis.FakeAsyncRedis(decode_responses=True)
    await rc.flushall()
    set_redis(rc)
    yield rc
    set_redis(None)
    await rc.aclose()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    async with session_scope() as session:
        yield session


@pytest.fixture
def mock_storage() -> MagicMock:
    """Object storage double; records uploads and deletes, returns a stable URL."""
    storage = MagicMock()
    storage.upload_clip = AsyncMock(return_value="https://cdn.test/audio-clips/clip.mp3")
    storage.delete_clip = AsyncMock()
    return storage


@pytest.fixture
def app(mock_storage: MagicMock) -> FastAPI:
    """The application with object storage swapped for the double."""
    application = create_app()
    application.dependency_overrides[get_storage] = lambda: mock_storage
    return application


@pytest_asyncio.fixture
async def client(
    app: FastAPI,
    database: None,
    redis_client: fakeredis.FakeAsyncRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the real app, wired to the test database and fake Redis."""
    async with session_scope() as session:
        await seed_tasks(session)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_wallet() -> Callable[[], Wallet]:
    return Wallet.generate


@pytest.fixture
def sign_in(client: AsyncClient) -> Callable[..., Awaitable[User]]:
    """Full wallet sign-in: signed challenge, then magic-link exchange."""

    async def _sign_in(wallet: Wallet | None = None, ip: str | None = None, username: str | None = None) -> User:
        wallet = wallet or Wallet.generate()
        extra = {"username": username} if username else {}
        response = await client.post(
            "/api/v1/auth/wallet",
            json=wallet.auth_payload(**extra),
            headers={"X-Forwarded-For": ip or next_ip()},
        )
        assert response.status_code == 200, response.text
        body = response.json()
        session = await client.post(
            "/api/v1/auth/session",
            json={"token_hash": body["properties"]["hashed_token"]},
        )
        assert session.status_code == 200, session.text
        return User(wallet=wallet, token=session.json()["access_token"], profile_id=body["userId"])

    return _sign_in


@pytest_asyncio.fixture
async def user(sign_in: Callable[..., Awaitable[User]]) -> User:
    """A signed-in wallet."""
    return await sign_in()


@pytest_asyncio.fixture
async def other_user(sign_in: Callable[..., Awaitable[User]]) -> User:
    """A second signed-in wallet, from a different IP."""
    return await sign_in()


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"X-Cron-Secret": "test-cron-secret"}
