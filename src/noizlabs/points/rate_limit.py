"""Per-wallet award rate limit.

A sliding log in a Redis sorted set: one member per admitted call, scored
by its timestamp in milliseconds. Shared by every API instance, so the cap
holds under horizontal scaling.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from redis.asyncio import Redis

from noizlabs.config import get_settings
from noizlabs.errors import RateLimited

AWARD_RATE_PREFIX = "ratelimit:award:"


async def check_award_rate(
    redis: Redis,
    wallet_address: str,
    *,
    limit: int | None = None,
    window_seconds: int | None = None,
    now_ms: int | None = None,
) -> int:
    """Admit one award call for ``wallet_address`` or raise ``RateLimited``.

    Returns the number of calls still available in the current window.
    A rejected call removes its own entry, so it never counts against later ones.
    """
    settings = get_settings()
    if limit is None:
        limit = settings.award_rate_limit
    if window_seconds is None:
        window_seconds = settings.award_rate_window_seconds
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    key = f"{AWARD_RATE_PREFIX}{wallet_address}"
    member = f"{now_ms}:{uuid.uuid4().hex}"

    pipe = redis.pipeline(transaction=True)
    pipe.zremrangebyscore(key, 0, now_ms - window_seconds * 1000)
    pipe.zadd(key, {member: now_ms})
    pipe.zcard(key)
    pipe.expire(key, window_seconds + 1)
    results: list[Any] = await pipe.execute()

    count: int = results[2]
    if count > limit:
        await redis.zrem(key, member)
        msg = "Rate limit exceeded"
        raise RateLimited(msg)
    return limit - count
