"""Batch job triggers for an external scheduler: /api/v1/jobs/*."""

from __future__ import annotations

import secrets

import structlog
from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.config import get_settings
from noizlabs.database import get_session
from noizlabs.errors import Unauthorized
from noizlabs.points.day_utils import utc_today
from noizlabs.points.expiry import process_category_expiry
from noizlabs.points.quests import reset_daily_quests
from noizlabs.points.schemas import ExpiryResponse, ResetResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/jobs", tags=["Jobs"])


async def require_cron_secret(x_cron_secret: str | None = Header(None)) -> None:
    """Reject callers without the shared scheduler secret. An unset secret disables the endpoints."""
    expected = get_settings().cron_secret
    if not expected or not x_cron_secret or not secrets.compare_digest(x_cron_secret, expected):
        msg = "Invalid cron secret"
        raise Unauthorized(msg)


@router.post("/process-category-expiry", response_model=ExpiryResponse, dependencies=[Depends(require_cron_secret)])
async def run_category_expiry(db: AsyncSession = Depends(get_session)) -> ExpiryResponse:
    report = await process_category_expiry(db)
    logger.info("category_expired", processed=report.processed, winners=len(report.winners), failed=len(report.failed))
    return ExpiryResponse(processed=report.processed, winners=report.winners, failed=report.failed)


@router.post("/reset-daily-quests", response_model=ResetResponse, dependencies=[Depends(require_cron_secret)])
async def run_daily_reset(db: AsyncSession = Depends(get_session)) -> ResetResponse:
    deleted = await reset_daily_quests(db, utc_today(), actor="system:cron")
    logger.info("daily_quests_reset", records_affected=deleted)
    return ResetResponse(records_affected=deleted)
