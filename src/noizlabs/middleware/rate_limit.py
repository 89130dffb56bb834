"""Global per-IP request limit, counted in Redis so every API instance shares it.

Sign-in routes get a tighter bucket than the rest of the API: they are where
new wallets are minted, and the one-wallet-per-IP rule only holds if an IP
cannot hammer them.
"""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from noizlabs.middleware.client_ip import get_client_ip
from noizlabs.redis_client import get_redis

_UNLIMITED_PATHS = frozenset({"/health", "/ready"})
_AUTH_PREFIX = "/api/v1/auth/"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed one-window counter per (bucket, client IP)."""

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 300,
        window_seconds: int = 60,
        auth_requests_per_window: int | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.auth_requests_per_window = auth_requests_per_window or requests_per_window

    def _bucket(self, path: str) -> tuple[str, int]:
        if path.startswith(_AUTH_PREFIX):
            return "auth", self.auth_requests_per_window
        return "api", self.requests_per_window

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in _UNLIMITED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            # Redis not initialized, let the request through
            return await call_next(request)

        bucket, limit = self._bucket(path)
        window = int(time.time()) // self.window_seconds
        key = f"ratelimit:ip:{bucket}:{get_client_ip(request)}:{window}"

        async with redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self.window_seconds + 1)
            count, _ = await pipe.execute()

        headers = {"X-RateLimit-Limit": str(limit), "X-RateLimit-Remaining": str(max(0, limit - count))}
        if count > limit:
            headers["Retry-After"] = str(self.window_seconds)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "code": "rate_limited"},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
