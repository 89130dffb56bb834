"""Points ledger: the only writer of ``user_points``.

Each award inserts one ``points_ledger`` row keyed by a unique
``idempotency_key`` and bumps the denormalized balance in the same
transaction. A repeated key inserts nothing and adds nothing, so the
balance always equals the sum of the wallet's ledger rows.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.db.models import PointsLedger, Profile, UserPoints
from noizlabs.db.upsert import dialect_insert, insert_ignore
from noizlabs.points.day_utils import utc_now

logger = logging.getLogger(__name__)


async def add_points(
    db: AsyncSession,
    wallet_address: str,
    amount: int,
    *,
    action: str,
    reason: str,
    actor: str,
    idempotency_key: str,
    reference_id: str | None = None,
) -> bool:
    """Credit ``amount`` points. Returns True if credited, False if the key was already used.

    Does not commit; the caller owns the transaction so that quest flags and
    ledger rows land or roll back together.
    """
    if amount <= 0:
        msg = f"Point awards must be positive, got {amount}"
        raise ValueError(msg)

    inserted = await insert_ignore(
        db,
        PointsLedger,
        {
            "wallet_address": wallet_address,
            "amount": amount,
            "action": action,
            "reason": reason,
            "actor": actor,
            "reference_id": reference_id,
            "idempotency_key": idempotency_key,
        },
        ["idempotency_key"],
    )
    if not inserted:
        logger.info("Duplicate award %s for %s ignored", idempotency_key, wallet_address)
        return False

    now = utc_now()
    stmt = dialect_insert(db, UserPoints).values(
        wallet_address=wallet_address,
        points=amount,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["wallet_address"],
        set_={"points": UserPoints.points + amount, "updated_at": now},
    )
    await db.execute(stmt)

    logger.info("Awarded %d points to %s (%s, key=%s)", amount, wallet_address, action, idempotency_key)
    return True


async def get_balance(db: AsyncSession, wallet_address: str) -> int:
    result = await db.execute(select(UserPoints.points).where(UserPoints.wallet_address == wallet_address))
    return result.scalar_one_or_none() or 0


async def get_ledger_total(db: AsyncSession, wallet_address: str) -> int:
    """Sum of ledger rows; equals ``get_balance`` for every wallet."""
    result = await db.execute(
        select(func.coalesce(func.sum(PointsLedger.amount), 0)).where(PointsLedger.wallet_address == wallet_address)
    )
    return int(result.scalar_one())


async def get_history(
    db: AsyncSession,
    wallet_address: str,
    *,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[PointsLedger], int]:
    """Ledger entries for a wallet, newest first, plus the total count."""
    total = await db.execute(
        select(func.count()).select_from(PointsLedger).where(PointsLedger.wallet_address == wallet_address)
    )
    rows = await db.execute(
        select(PointsLedger)
        .where(PointsLedger.wallet_address == wallet_address)
        .order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(rows.scalars().all()), int(total.scalar_one())


async def get_leaderboard(db: AsyncSession, limit: int = 50) -> list[tuple[str, str | None, int]]:
    """Top balances as (wallet, username, points), highest first."""
    result = await db.execute(
        select(UserPoints.wallet_address, Profile.username, UserPoints.points)
        .outerjoin(Profile, Profile.wallet_address == UserPoints.wallet_address)
        .order_by(UserPoints.points.desc(), UserPoints.wallet_address)
        .limit(limit)
    )
    return [(row[0], row[1], int(row[2])) for row in result.all()]
