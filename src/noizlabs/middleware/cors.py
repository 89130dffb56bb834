"""CORS for the web client."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from noizlabs.config import Settings

# Headers the wallet client sends: bearer session, JSON bodies and its own client tag.
_CLIENT_HEADERS = ["authorization", "content-type", "x-client-info", "apikey", "x-request-id"]
_EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """
    Register CORS for ``settings.cors_origins``.

    A bare ``*`` opens the API to any origin; browsers refuse credentialed
    requests in that mode, so credentials are only allowed for explicit origins.
    """
    wildcard = settings.cors_origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=_CLIENT_HEADERS,
        expose_headers=_EXPOSED_HEADERS,
    )
