"""Shared Redis client.

Holds the magic-link login tokens and the rate-limit windows (global per-IP
and per-wallet awards). One client per process; the arq worker and the test
suite install their own with ``set_redis``.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Connect from a URL. Responses are decoded to ``str``; callers never see bytes."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        health_check_interval=30,
    )


def set_redis(client: redis.Redis | None) -> None:
    global _client  # noqa: PLW0603
    _client = client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """The process-wide client (also a FastAPI dependency).

    Raises:
        RuntimeError: Before ``init_redis``/``set_redis``.
    """
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client
