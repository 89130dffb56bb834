"""Task catalog seed data. Upserted by slug at startup, so edits here roll out on deploy."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.db.models import Task
from noizlabs.db.upsert import dialect_insert

logger = logging.getLogger(__name__)

TASK_SEED_DATA: list[dict[str, Any]] = [
    {
        "slug": "follow_x",
        "name": "Follow NoizLabs on X",
        "description": "Follow @NoizLabs for battle announcements and winners",
        "task_type": "social",
        "external_link": "https://x.com/NoizLabs",
        "points_reward": 50,
        "max_completions": None,
        "sort_order": 1,
    },
    {
        "slug": "join_discord",
        "name": "Join the Discord",
        "description": "Hang out with producers and voters in the NoizLabs Discord",
        "task_type": "social",
        "external_link": "https://discord.gg/noizlabs",
        "points_reward": 50,
        "max_completions": None,
        "sort_order": 2,
    },
    {
        "slug": "join_telegram",
        "name": "Join the Telegram",
        "description": "Get drop alerts in the NoizLabs Telegram channel",
        "task_type": "social",
        "external_link": "https://t.me/noizlabs",
        "points_reward": 25,
        "max_completions": None,
        "sort_order": 3,
    },
    {
        "slug": "invite_friend",
        "name": "Invite a friend",
        "description": "Share your referral code. You both earn 100 points when they create their first category",
        "task_type": "referral",
        "external_link": None,
        "points_reward": 100,
        "max_completions": None,
        "sort_order": 4,
    },
]


async def seed_tasks(db: AsyncSession) -> int:
    """Insert or update every catalog task by slug. Returns the number of rows written."""
    for task in TASK_SEED_DATA:
        stmt = dialect_insert(db, Task).values(**task)
        stmt = stmt.on_conflict_do_update(
            index_elements=["slug"],
            set_={key: stmt.excluded[key] for key in task if key != "slug"},
        )
        await db.execute(stmt)
    await db.commit()
    logger.info("Seeded %d tasks", len(TASK_SEED_DATA))
    return len(TASK_SEED_DATA)
