"""Category expiry sweep.

Finds categories past ``expires_at``, pays the creator of the most-voted
clip, and deletes the category with its clips and votes. Each category is
its own transaction, so one failing category never blocks the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.config import get_settings
from noizlabs.db.models import AudioClip, Category, Vote
from noizlabs.points.day_utils import utc_now
from noizlabs.points.ledger import add_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClipTally:
    clip_id: str
    creator_wallet: str
    created_at: datetime
    votes: int


@dataclass
class ExpiryReport:
    processed: int = 0
    winners: list[dict[str, object]] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def pick_winner(tallies: list[ClipTally]) -> ClipTally | None:
    """Most votes wins; ties go to the earliest clip, then the lowest clip id."""
    if not tallies:
        return None
    return min(tallies, key=lambda t: (-t.votes, t.created_at, t.clip_id))


async def tally_votes(db: AsyncSession, category_id: str) -> list[ClipTally]:
    """Vote count per clip in a category, counted from the vote log."""
    vote_count = func.count(Vote.id)
    result = await db.execute(
        select(AudioClip.id, AudioClip.creator_wallet, AudioClip.created_at, vote_count)
        .outerjoin(Vote, Vote.clip_id == AudioClip.id)
        .where(AudioClip.category_id == category_id)
        .group_by(AudioClip.id, AudioClip.creator_wallet, AudioClip.created_at)
    )
    return [
        ClipTally(clip_id=row[0], creator_wallet=row[1], created_at=row[2], votes=int(row[3]))
        for row in result.all()
    ]


async def delete_category(db: AsyncSession, category_id: str) -> None:
    """Remove a category and everything under it, children first."""
    clip_ids = select(AudioClip.id).where(AudioClip.category_id == category_id)
    await db.execute(delete(Vote).where(Vote.clip_id.in_(clip_ids)))
    await db.execute(delete(AudioClip).where(AudioClip.category_id == category_id))
    await db.execute(delete(Category).where(Category.id == category_id))


async def _expire_one(db: AsyncSession, category_id: str, name: str) -> ClipTally | None:
    winner = pick_winner(await tally_votes(db, category_id))
    paid = False
    if winner is not None and winner.votes > 0:
        paid = await add_points(
            db,
            winner.creator_wallet,
            get_settings().points_category_win,
            action="category_win",
            reason=f"Won category {name}",
            actor="system:category-expiry",
            idempotency_key=f"category_win:{category_id}",
            reference_id=winner.clip_id,
        )
    await delete_category(db, category_id)
    await db.commit()
    return winner if paid else None


async def process_category_expiry(db: AsyncSession, now: datetime | None = None) -> ExpiryReport:
    """Sweep every expired category. Safe to rerun: a category is paid at most once."""
    if now is None:
        now = utc_now()

    result = await db.execute(
        select(Category.id, Category.name).where(Category.expires_at < now).order_by(Category.expires_at, Category.id)
    )
    expired = [(row[0], row[1]) for row in result.all()]
    logger.info("Found %d expired categories", len(expired))

    report = ExpiryReport()
    for category_id, name in expired:
        try:
            winner = await _expire_one(db, category_id, name)
        except Exception:
            await db.rollback()
            logger.exception("Failed to expire category %s (%s)", category_id, name)
            report.failed.append(category_id)
            continue

        report.processed += 1
        if winner is not None:
            report.winners.append(
                {"categoryId": category_id, "clipId": winner.clip_id, "wallet": winner.creator_wallet,
                 "votes": winner.votes}
            )
            logger.info("Category %s won by %s with %d votes", name, winner.creator_wallet, winner.votes)
        logger.info("Deleted expired category %s", name)

    return report
