"""Daily quest rows: lazy creation, progress counters and the nightly reset."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.db.models import DailyQuest, ResetAudit
from noizlabs.db.upsert import insert_ignore

logger = logging.getLogger(__name__)

QUEST_COUNTERS = frozenset({"categories_created", "clips_uploaded", "votes_cast"})


async def ensure_quest(db: AsyncSession, wallet_address: str, day: date) -> None:
    """Create the (wallet, day) quest row if it does not exist yet."""
    await insert_ignore(
        db,
        DailyQuest,
        {"user_wallet": wallet_address, "quest_date": day},
        ["user_wallet", "quest_date"],
    )


async def get_quest(db: AsyncSession, wallet_address: str, day: date) -> DailyQuest | None:
    result = await db.execute(
        select(DailyQuest).where(DailyQuest.user_wallet == wallet_address, DailyQuest.quest_date == day)
    )
    return result.scalar_one_or_none()


async def bump_counter(db: AsyncSession, wallet_address: str, day: date, counter: str) -> None:
    """Atomically increment one progress counter on the wallet's quest row."""
    if counter not in QUEST_COUNTERS:
        msg = f"Unknown quest counter: {counter}"
        raise ValueError(msg)
    await ensure_quest(db, wallet_address, day)
    column = getattr(DailyQuest, counter)
    await db.execute(
        update(DailyQuest)
        .where(DailyQuest.user_wallet == wallet_address, DailyQuest.quest_date == day)
        .values({counter: column + 1})
    )


async def claim_flag(db: AsyncSession, wallet_address: str, day: date, flag: str, *conditions: object) -> bool:
    """Compare-and-set ``flag`` from false to true on the wallet's quest row.

    Extra ``conditions`` narrow the match (e.g. a counter threshold). Returns
    True only for the single caller whose UPDATE changed the row.
    """
    column = getattr(DailyQuest, flag)
    result = await db.execute(
        update(DailyQuest)
        .where(
            DailyQuest.user_wallet == wallet_address,
            DailyQuest.quest_date == day,
            column.is_(False),
            *conditions,
        )
        .values({flag: True})
    )
    return result.rowcount == 1


async def reset_daily_quests(db: AsyncSession, today: date, actor: str = "system:cron") -> int:
    """Delete every quest row not dated ``today`` and record the sweep. Returns rows deleted."""
    result = await db.execute(delete(DailyQuest).where(DailyQuest.quest_date != today))
    deleted = result.rowcount or 0
    db.add(ResetAudit(reset_type="daily_quests", records_affected=deleted, actor=actor))
    await db.commit()
    logger.info("Daily quests reset for %s: %d rows deleted", today.isoformat(), deleted)
    return deleted
