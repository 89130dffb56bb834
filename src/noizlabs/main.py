"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from noizlabs.arena.router import router as arena_router
from noizlabs.auth.router import router as auth_router
from noizlabs.config import get_settings
from noizlabs.database import close_db, init_db, session_scope
from noizlabs.health.router import router as health_router
from noizlabs.jobs.router import router as jobs_router
from noizlabs.middleware import setup_middleware
from noizlabs.points.router import leaderboard_router
from noizlabs.points.router import router as points_router
from noizlabs.redis_client import close_redis, init_redis
from noizlabs.tasks.router import router as tasks_router
from noizlabs.tasks.seed import seed_tasks
from noizlabs.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Task catalog is upserted by slug, so this is safe on every boot.
    try:
        async with session_scope() as db:
            await seed_tasks(db)
    except Exception:  # noqa: BLE001
        logger.warning("task_seed_failed", reason="tables may not exist yet", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="NoizLabs API",
        description="Wallet sign-in, audio battles and the points ledger for NoizLabs",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(points_router)
    app.include_router(leaderboard_router)
    app.include_router(arena_router)
    app.include_router(tasks_router)
    app.include_router(jobs_router)

    return app


app = create_app()
