"""ORM models for profiles, the points ledger, daily quests and the arena.

Identifiers are UUID strings so that rows created by the API and rows
imported from the legacy store share one key space.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from noizlabs.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class Profile(Base):
    """One profile per wallet. Created on first verified signature."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    wallet_address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    referral_code: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    referred_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    referral_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", server_default="UTC")
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


class UserPoints(Base):
    """Denormalized balance. Only ``noizlabs.points.ledger`` writes here."""

    __tablename__ = "user_points"

    wallet_address: Mapped[str] = mapped_column(String(64), primary_key=True)
    points: Mapped[int] = mapped_column(BigInteger, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class PointsLedger(Base):
    """Append-only record of every award. ``idempotency_key`` is the single-use marker."""

    __tablename__ = "points_ledger"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(String(128), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String(160), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class DailyQuest(Base):
    """Per-wallet, per-UTC-day quest progress. Rows for past days are swept nightly."""

    __tablename__ = "daily_quests"
    __table_args__ = (UniqueConstraint("user_wallet", "quest_date", name="daily_quests_wallet_date_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_wallet: Mapped[str] = mapped_column(String(64), nullable=False)
    quest_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    checkin_done: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    categories_created: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    clips_uploaded: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    votes_cast: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    rewarded_checkin: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    rewarded_category: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    rewarded_votes: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    streak_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class CheckinStreak(Base):
    """Consecutive-day check-in state. Survives the nightly quest sweep."""

    __tablename__ = "checkin_streaks"

    wallet_address: Mapped[str] = mapped_column(String(64), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_checkin_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ResetAudit(Base):
    __tablename__ = "resets_audit"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    reset_type: Mapped[str] = mapped_column(String(32), nullable=False)
    records_affected: Mapped[int] = mapped_column(Integer, default=0)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Arena
# ---------------------------------------------------------------------------


class Category(Base):
    """Time-boxed battle category. Deleted with its clips once expired and paid out."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    creator_wallet: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class AudioClip(Base):
    __tablename__ = "audio_clips"
    __table_args__ = (UniqueConstraint("category_id", "creator_wallet", name="audio_clips_category_creator_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    creator_wallet: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Vote(Base):
    """Append-only vote log. Clip vote totals are always derived by counting."""

    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("voter_wallet", "battle_id", name="votes_voter_battle_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # Category id of the voted clip; one vote per wallet per category.
    battle_id: Mapped[str] = mapped_column(String(64), nullable=False)
    clip_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("audio_clips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_wallet: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    task_type: Mapped[str] = mapped_column(String(16), nullable=False)
    external_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    points_reward: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    max_completions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class UserTask(Base):
    __tablename__ = "user_tasks"
    __table_args__ = (UniqueConstraint("user_wallet", "task_id", name="user_tasks_wallet_task_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_wallet: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
