"""arq jobs for the scheduled points sweeps.

Runs as a separate process next to the API:

    arq noizlabs.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from noizlabs.config import get_settings
from noizlabs.database import close_db, init_db, session_scope
from noizlabs.middleware.logging import setup_logging
from noizlabs.points.day_utils import utc_today
from noizlabs.points.expiry import process_category_expiry
from noizlabs.points.quests import reset_daily_quests

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open the database engine once per worker process."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    logger.info("Points worker started (environment=%s)", settings.environment)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Points worker shut down")


async def expire_categories(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Pay out and delete expired categories."""
    async with session_scope() as db:
        report = await process_category_expiry(db)
    logger.info(
        "Category expiry: %d processed, %d winners, %d failed",
        report.processed,
        len(report.winners),
        len(report.failed),
    )
    return {"processed": report.processed, "winners": len(report.winners), "failed": len(report.failed)}


async def reset_quests(ctx: dict) -> int:  # type: ignore[type-arg]
    """Drop quest rows from previous UTC days."""
    async with session_scope() as db:
        return await reset_daily_quests(db, utc_today(), actor="system:cron")
