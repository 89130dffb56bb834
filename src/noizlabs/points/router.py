"""Points router: award claims, daily check-in, balances and the leaderboard."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.auth.dependencies import get_current_profile
from noizlabs.config import get_settings
from noizlabs.database import get_session
from noizlabs.db.models import CheckinStreak, Profile
from noizlabs.points.checkin import daily_checkin
from noizlabs.points.day_utils import utc_today, yesterday
from noizlabs.points.guard import award_points
from noizlabs.points.ledger import get_balance, get_history, get_leaderboard
from noizlabs.points.quests import get_quest
from noizlabs.points.rate_limit import check_award_rate
from noizlabs.points.schemas import (
    AwardRequest,
    AwardResponse,
    BalanceResponse,
    CheckinResponse,
    HistoryResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LedgerEntryResponse,
    QuestResponse,
)
from noizlabs.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/points", tags=["Points"])
leaderboard_router = APIRouter(prefix="/api/v1/leaderboard", tags=["Points"])


@router.post("/award", response_model=AwardResponse)
async def award(
    body: AwardRequest,
    profile: Profile = Depends(get_current_profile),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
    db: AsyncSession = Depends(get_session),
) -> AwardResponse:
    """Claim the fixed reward for a fresh action the caller performed."""
    wallet = profile.wallet_address
    actor = profile.id
    await check_award_rate(redis, wallet)
    result = await award_points(db, wallet, actor, body.action, body.data)
    logger.info("points_awarded", wallet=wallet, action=body.action, points=result.points)
    return AwardResponse(points=result.points, reason=result.reason)


@router.post("/daily-checkin", response_model=CheckinResponse)
async def checkin(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> CheckinResponse:
    """Check in for the current UTC day."""
    wallet = profile.wallet_address
    result = await daily_checkin(db, wallet)
    logger.info("checkin_recorded", wallet=wallet, streak=result.streak, points=result.points)
    return CheckinResponse(
        streak=result.streak,
        points=result.points,
        is_streak_complete=result.is_streak_complete,
    )


@router.get("/me", response_model=BalanceResponse)
async def my_balance(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    return BalanceResponse(
        wallet_address=profile.wallet_address,
        points=await get_balance(db, profile.wallet_address),
    )


@router.get("/history", response_model=HistoryResponse)
async def my_history(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> HistoryResponse:
    """Ledger entries, newest first."""
    entries, total = await get_history(db, profile.wallet_address, limit=limit, offset=offset)
    return HistoryResponse(
        entries=[
            LedgerEntryResponse(
                id=e.id,
                amount=e.amount,
                action=e.action,
                reason=e.reason,
                reference_id=e.reference_id,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/quests/today", response_model=QuestResponse)
async def todays_quest(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> QuestResponse:
    """Today's quest progress. Days without activity read as an empty quest."""
    settings = get_settings()
    today = utc_today()
    quest = await get_quest(db, profile.wallet_address, today)
    streak = await db.get(CheckinStreak, profile.wallet_address)

    response = QuestResponse(quest_date=today, vote_bonus_threshold=settings.vote_bonus_threshold)
    if quest is not None:
        response.checkin_done = quest.checkin_done
        response.categories_created = quest.categories_created
        response.clips_uploaded = quest.clips_uploaded
        response.votes_cast = quest.votes_cast
        response.rewarded_checkin = quest.rewarded_checkin
        response.rewarded_category = quest.rewarded_category
        response.rewarded_votes = quest.rewarded_votes
    if streak is not None:
        # A streak survives only while yesterday or today was checked in.
        if streak.last_checkin_date in (today, yesterday(today)):
            response.current_streak = streak.current_streak
        response.longest_streak = streak.longest_streak
    return response


@leaderboard_router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Wallets ranked by points."""
    rows = await get_leaderboard(db, limit=limit)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(rank=i, wallet_address=wallet, username=username, points=points)
            for i, (wallet, username, points) in enumerate(rows, start=1)
        ]
    )
