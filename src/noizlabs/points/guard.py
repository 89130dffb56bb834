"""Points award guard.

The only request path that credits points. The caller names an action and a
reference id; the guard re-reads the referenced row, checks that the
authenticated wallet owns it and that it is fresh, then credits a fixed,
server-side amount through the ledger. Each reference can be rewarded once.

Every award is one transaction: the ledger rows, the balance bump and any
quest-flag compare-and-set commit together or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.config import get_settings
from noizlabs.db.models import AudioClip, Category, DailyQuest, Profile, Task, UserTask, Vote
from noizlabs.errors import AlreadyDone, Forbidden, StaleReference, ValidationFailed
from noizlabs.points.day_utils import is_fresh, utc_now, utc_today
from noizlabs.points.ledger import add_points
from noizlabs.points.quests import claim_flag, ensure_quest

logger = logging.getLogger(__name__)

ACTIONS = ("upload", "vote", "category", "referral", "task")


@dataclass(frozen=True)
class AwardResult:
    points: int
    reason: str


def _require(data: dict[str, Any], *fields: str) -> list[str]:
    values = []
    for field in fields:
        value = data.get(field)
        if not value or not isinstance(value, str):
            msg = f"{field} required"
            raise ValidationFailed(msg)
        values.append(value)
    return values


def _check_owned_and_fresh(
    row_owner: str | None,
    created_at: datetime | None,
    wallet_address: str,
    now: datetime,
    label: str,
) -> None:
    if row_owner is None or row_owner != wallet_address:
        msg = f"Invalid {label.lower()}"
        raise Forbidden(msg)
    if created_at is None or not is_fresh(created_at, now, get_settings().award_freshness_seconds):
        msg = f"{label} too old"
        raise StaleReference(msg)


async def _credit_once(db: AsyncSession, wallet_address: str, amount: int, **kwargs: Any) -> None:
    if not await add_points(db, wallet_address, amount, **kwargs):
        msg = "Points already awarded for this action"
        raise AlreadyDone(msg)


async def _award_upload(db: AsyncSession, wallet: str, actor: str, data: dict[str, Any], now: datetime) -> AwardResult:
    (clip_id,) = _require(data, "clipId")
    clip = await db.get(AudioClip, clip_id)
    _check_owned_and_fresh(
        clip.creator_wallet if clip else None, clip.created_at if clip else None, wallet, now, "Clip"
    )
    amount = get_settings().points_upload
    await _credit_once(
        db, wallet, amount,
        action="upload", reason="Audio upload", actor=actor,
        idempotency_key=f"upload:{clip_id}", reference_id=clip_id,
    )
    return AwardResult(points=amount, reason="Audio upload")


async def _award_vote(db: AsyncSession, wallet: str, actor: str, data: dict[str, Any], now: datetime) -> AwardResult:
    (vote_id,) = _require(data, "voteId")
    vote = await db.get(Vote, vote_id)
    _check_owned_and_fresh(
        vote.voter_wallet if vote else None, vote.created_at if vote else None, wallet, now, "Vote"
    )
    settings = get_settings()
    await _credit_once(
        db, wallet, settings.points_vote,
        action="vote", reason="Vote cast", actor=actor,
        idempotency_key=f"vote:{vote_id}", reference_id=vote_id,
    )

    today = utc_today(now)
    bonus = await claim_flag(
        db, wallet, today, "rewarded_votes", DailyQuest.votes_cast >= settings.vote_bonus_threshold
    )
    if not bonus:
        return AwardResult(points=settings.points_vote, reason="Vote cast")

    await _credit_once(
        db, wallet, settings.points_vote_bonus,
        action="vote_bonus", reason=f"{settings.vote_bonus_threshold} votes bonus", actor=actor,
        idempotency_key=f"vote_bonus:{wallet}:{today.isoformat()}",
    )
    return AwardResult(
        points=settings.points_vote + settings.points_vote_bonus,
        reason=f"Vote cast + {settings.vote_bonus_threshold} votes bonus",
    )


async def _award_category(
    db: AsyncSession, wallet: str, actor: str, data: dict[str, Any], now: datetime
) -> AwardResult:
    (category_id,) = _require(data, "categoryId")
    category = await db.get(Category, category_id)
    _check_owned_and_fresh(
        category.creator_wallet if category else None,
        category.created_at if category else None,
        wallet,
        now,
        "Category",
    )
    settings = get_settings()
    await _credit_once(
        db, wallet, settings.points_category,
        action="category", reason="Category creation", actor=actor,
        idempotency_key=f"category:{category_id}", reference_id=category_id,
    )

    today = utc_today(now)
    await ensure_quest(db, wallet, today)
    if not await claim_flag(db, wallet, today, "rewarded_category"):
        return AwardResult(points=settings.points_category, reason="Category creation")

    await _credit_once(
        db, wallet, settings.points_category_quest_bonus,
        action="category_bonus", reason="Daily category quest", actor=actor,
        idempotency_key=f"category_bonus:{wallet}:{today.isoformat()}",
    )
    return AwardResult(
        points=settings.points_category + settings.points_category_quest_bonus,
        reason="Category creation + daily quest",
    )


async def _award_referral(
    db: AsyncSession, wallet: str, actor: str, data: dict[str, Any], now: datetime
) -> AwardResult:
    category_id, referrer_wallet = _require(data, "categoryId", "referrerWallet")

    result = await db.execute(select(Category.id).where(Category.creator_wallet == wallet))
    category_ids = list(result.scalars().all())
    if len(category_ids) != 1 or category_ids[0] != category_id:
        msg = "Not first category"
        raise Forbidden(msg)

    profile = await db.execute(select(Profile.referred_by).where(Profile.wallet_address == wallet))
    if profile.scalar_one_or_none() != referrer_wallet:
        msg = "Invalid referral"
        raise Forbidden(msg)

    amount = get_settings().points_referral
    await _credit_once(
        db, wallet, amount,
        action="referral", reason="Referral bonus (referred user)", actor="system:referral",
        idempotency_key=f"referral:{wallet}:referred", reference_id=category_id,
    )
    await _credit_once(
        db, referrer_wallet, amount,
        action="referral", reason="Referral bonus (referrer)", actor="system:referral",
        idempotency_key=f"referral:{wallet}:referrer", reference_id=wallet,
    )
    return AwardResult(points=amount, reason="Referral bonus awarded")


async def _award_task(db: AsyncSession, wallet: str, actor: str, data: dict[str, Any], now: datetime) -> AwardResult:
    (task_id,) = _require(data, "taskId")
    task = await db.get(Task, task_id)
    if task is None:
        msg = "Invalid task"
        raise Forbidden(msg)

    result = await db.execute(
        select(UserTask).where(UserTask.user_wallet == wallet, UserTask.task_id == task_id)
    )
    user_task = result.scalar_one_or_none()
    if user_task is None:
        msg = "Task not completed"
        raise Forbidden(msg)
    completed_at = user_task.completed_at or user_task.created_at
    if not is_fresh(completed_at, now, get_settings().award_freshness_seconds):
        msg = "Task completion too old"
        raise StaleReference(msg)
    if task.points_reward <= 0:
        msg = "Task carries no reward"
        raise ValidationFailed(msg)

    await _credit_once(
        db, wallet, task.points_reward,
        action="task", reason="Task completion", actor=actor,
        idempotency_key=f"task:{wallet}:{task_id}", reference_id=task_id,
    )
    return AwardResult(points=task.points_reward, reason="Task completion")


_HANDLERS = {
    "upload": _award_upload,
    "vote": _award_vote,
    "category": _award_category,
    "referral": _award_referral,
    "task": _award_task,
}


async def award_points(
    db: AsyncSession,
    wallet_address: str,
    actor: str,
    action: str | None,
    data: dict[str, Any] | None,
    *,
    now: datetime | None = None,
) -> AwardResult:
    """
    Apply one guarded award for ``wallet_address``.

    Args:
        db: Session; committed on success, rolled back on any failure.
        wallet_address: Wallet resolved from the caller's session.
        actor: Audit actor recorded on ledger rows (the profile id).
        action: One of ``ACTIONS``.
        data: Reference ids for the action (``clipId``, ``voteId``, ...).
        now: Clock override for the freshness check.

    Raises:
        ValidationFailed, Forbidden, StaleReference, AlreadyDone.
    """
    if not action:
        msg = "Action required"
        raise ValidationFailed(msg)
    handler = _HANDLERS.get(action)
    if handler is None:
        msg = "Invalid action"
        raise ValidationFailed(msg)
    if now is None:
        now = utc_now()

    try:
        result = await handler(db, wallet_address, actor, data or {}, now)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Award %s for %s: %d points (%s)", action, wallet_address, result.points, result.reason)
    return result

