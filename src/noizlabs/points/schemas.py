"""Request/response schemas for points endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field

from noizlabs.schemas import CamelModel


class AwardRequest(CamelModel):
    """An award claim. Amounts are never accepted from the client."""

    action: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class AwardResponse(CamelModel):
    success: bool = True
    points: int
    reason: str


class CheckinResponse(CamelModel):
    success: bool = True
    streak: int
    points: int
    is_streak_complete: bool


class BalanceResponse(CamelModel):
    wallet_address: str
    points: int


class LedgerEntryResponse(CamelModel):
    id: str
    amount: int
    action: str
    reason: str
    reference_id: str | None
    created_at: datetime


class HistoryResponse(CamelModel):
    entries: list[LedgerEntryResponse]
    total: int
    limit: int
    offset: int


class QuestResponse(CamelModel):
    quest_date: date
    checkin_done: bool = False
    categories_created: int = 0
    clips_uploaded: int = 0
    votes_cast: int = 0
    rewarded_checkin: bool = False
    rewarded_category: bool = False
    rewarded_votes: bool = False
    current_streak: int = 0
    longest_streak: int = 0
    vote_bonus_threshold: int


class LeaderboardEntry(CamelModel):
    rank: int
    wallet_address: str
    username: str | None
    points: int


class LeaderboardResponse(CamelModel):
    entries: list[LeaderboardEntry]


class ExpiryResponse(CamelModel):
    success: bool = True
    processed: int
    winners: list[dict[str, Any]]
    failed: list[str]


class ResetResponse(CamelModel):
    success: bool = True
    records_affected: int
