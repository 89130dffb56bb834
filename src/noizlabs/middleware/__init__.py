"""HTTP middleware and exception handlers for the API app."""

from fastapi import FastAPI

from noizlabs.config import Settings
from noizlabs.middleware.cors import setup_cors
from noizlabs.middleware.error_handler import setup_error_handlers
from noizlabs.middleware.logging import setup_logging
from noizlabs.middleware.rate_limit import RateLimitMiddleware
from noizlabs.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs the last-added middleware first. Resulting order per request:
    CORS, then request id (so 429s carry one), then the per-IP limit.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        auth_requests_per_window=settings.auth_rate_limit_requests,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
