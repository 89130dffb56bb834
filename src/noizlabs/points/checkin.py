"""Daily check-in and consecutive-day streaks.

The quest row's ``checkin_done`` flag is the once-per-day gate; the streak
lives in ``checkin_streaks`` because yesterday's quest row is gone after the
nightly reset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.config import get_settings
from noizlabs.db.models import CheckinStreak, DailyQuest
from noizlabs.db.upsert import insert_ignore
from noizlabs.errors import AlreadyDone
from noizlabs.points.day_utils import utc_now, utc_today, yesterday
from noizlabs.points.ledger import add_points
from noizlabs.points.quests import claim_flag, ensure_quest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckinResult:
    streak: int
    points: int
    is_streak_complete: bool


async def daily_checkin(db: AsyncSession, wallet_address: str, now: datetime | None = None) -> CheckinResult:
    """Record today's check-in for ``wallet_address`` and pay it.

    Pays the base amount, plus the streak bonus on the day the streak reaches
    the bonus day. Past that day the streak keeps counting without further
    bonuses. Commits on success, rolls back on any failure.

    Raises:
        AlreadyDone: ``already_checked_in`` on a second call the same UTC day.
    """
    if now is None:
        now = utc_now()
    settings = get_settings()
    today = utc_today(now)

    try:
        await ensure_quest(db, wallet_address, today)
        if not await claim_flag(db, wallet_address, today, "checkin_done"):
            msg = "Already checked in today"
            raise AlreadyDone(msg, code="already_checked_in")

        await insert_ignore(db, CheckinStreak, {"wallet_address": wallet_address}, ["wallet_address"])
        streak_row = await db.get(CheckinStreak, wallet_address, populate_existing=True)
        if streak_row is None:
            msg = f"Streak row missing for {wallet_address}"
            raise RuntimeError(msg)

        if streak_row.last_checkin_date == yesterday(today):
            new_streak = streak_row.current_streak + 1
        else:
            new_streak = 1
        streak_row.current_streak = new_streak
        streak_row.longest_streak = max(streak_row.longest_streak or 0, new_streak)
        streak_row.last_checkin_date = today

        is_complete = new_streak == settings.streak_bonus_day
        points = settings.points_checkin + (settings.points_streak_bonus if is_complete else 0)

        await db.execute(
            update(DailyQuest)
            .where(DailyQuest.user_wallet == wallet_address, DailyQuest.quest_date == today)
            .values(streak_count=new_streak, rewarded_checkin=True)
        )
        credited = await add_points(
            db,
            wallet_address,
            points,
            action="checkin",
            reason=f"Daily check-in (streak: {new_streak})",
            actor="system:daily-checkin",
            idempotency_key=f"checkin:{wallet_address}:{today.isoformat()}",
        )
        if not credited:
            msg = "Already checked in today"
            raise AlreadyDone(msg, code="already_checked_in")
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Check-in for %s on %s: streak %d, %d points", wallet_address, today.isoformat(), new_streak, points)
    return CheckinResult(streak=new_streak, points=points, is_streak_complete=is_complete)
