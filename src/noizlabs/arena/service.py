"""Arena business logic: categories, clip uploads and votes.

These produce the rows the points guard later re-reads, so ownership and
timestamps are always set server-side.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from noizlabs.arena.storage import ALLOWED_AUDIO_TYPES
from noizlabs.config import get_settings
from noizlabs.db.models import AudioClip, Category, Vote
from noizlabs.errors import AlreadyDone, Forbidden, NotFound, ValidationFailed
from noizlabs.points.day_utils import as_utc, utc_now, utc_today
from noizlabs.points.quests import bump_counter

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from noizlabs.arena.storage import ClipStorage

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


async def create_category(
    db: AsyncSession,
    wallet_address: str,
    name: str,
    now: datetime | None = None,
) -> Category:
    """
    Open a new category expiring after the configured lifetime.

    Raises:
        ValidationFailed: Blank name.
        AlreadyDone: An active category with the same name exists.
    """
    if now is None:
        now = utc_now()
    name = name.strip()
    if not name:
        msg = "Please enter a category name"
        raise ValidationFailed(msg)

    existing = await db.execute(
        select(Category.id).where(func.lower(Category.name) == name.lower(), Category.expires_at > now)
    )
    if existing.first() is not None:
        msg = "Category already exists"
        raise AlreadyDone(msg, code="category_exists")

    category = Category(
        name=name,
        creator_wallet=wallet_address,
        created_at=now,
        expires_at=now + timedelta(days=get_settings().category_lifetime_days),
    )
    db.add(category)
    await db.flush()
    await bump_counter(db, wallet_address, utc_today(now), "categories_created")
    logger.info("category_created", category_id=category.id, wallet=wallet_address, name=name)
    return category


async def list_active_categories(
    db: AsyncSession,
    now: datetime | None = None,
) -> list[tuple[Category, list[tuple[AudioClip, int]]]]:
    """Unexpired categories, newest first, each with its clips and derived vote counts."""
    if now is None:
        now = utc_now()
    result = await db.execute(
        select(Category).where(Category.expires_at > now).order_by(Category.created_at.desc())
    )
    categories = list(result.scalars().all())
    if not categories:
        return []

    vote_count = func.count(Vote.id)
    clip_rows = await db.execute(
        select(AudioClip, vote_count)
        .outerjoin(Vote, Vote.clip_id == AudioClip.id)
        .where(AudioClip.category_id.in_([c.id for c in categories]))
        .group_by(AudioClip.id)
        .order_by(AudioClip.created_at)
    )
    clips: dict[str, list[tuple[AudioClip, int]]] = {c.id: [] for c in categories}
    for clip, votes in clip_rows.all():
        clips[clip.category_id].append((clip, int(votes)))
    return [(c, clips[c.id]) for c in categories]


# ---------------------------------------------------------------------------
# Clips
# ---------------------------------------------------------------------------


async def _discard_upload(db: AsyncSession, storage: ClipStorage, audio_url: str) -> None:
    await db.rollback()
    logger.warning("clip_upload_discarded", audio_url=audio_url)
    await storage.delete_clip(audio_url)


async def upload_clip(
    db: AsyncSession,
    storage: ClipStorage,
    wallet_address: str,
    category_id: str,
    title: str,
    data: bytes,
    content_type: str,
    now: datetime | None = None,
) -> AudioClip:
    """
    Store an audio clip and enter it into a category.

    Commits on success. If the row cannot be saved the stored object is
    deleted again.

    Raises:
        NotFound: Unknown category.
        ValidationFailed: Expired or full category, bad title, type or size.
        Forbidden: Uploading into one's own category.
        AlreadyDone: The wallet already has a clip in this category.
    """
    if now is None:
        now = utc_now()
    settings = get_settings()

    category = await db.get(Category, category_id)
    if category is None:
        msg = "Category not found"
        raise NotFound(msg)
    if as_utc(category.expires_at) <= as_utc(now):
        msg = "Category has expired"
        raise ValidationFailed(msg)
    if category.creator_wallet == wallet_address:
        msg = "You cannot upload to your own category"
        raise Forbidden(msg)

    title = title.strip()
    if not title or len(title) > 100:
        msg = "Title must be 1-100 characters"
        raise ValidationFailed(msg)
    if content_type not in ALLOWED_AUDIO_TYPES:
        msg = f"Unsupported audio type: {content_type}"
        raise ValidationFailed(msg)
    if not data or len(data) > settings.max_clip_bytes:
        msg = f"Audio file must be between 1 byte and {settings.max_clip_bytes} bytes"
        raise ValidationFailed(msg)

    mine = await db.execute(
        select(AudioClip.id).where(AudioClip.category_id == category_id, AudioClip.creator_wallet == wallet_address)
    )
    if mine.first() is not None:
        msg = "You already uploaded a clip to this category"
        raise AlreadyDone(msg, code="clip_exists")

    count = await db.execute(select(func.count()).select_from(AudioClip).where(AudioClip.category_id == category_id))
    if count.scalar_one() >= settings.max_clips_per_category:
        msg = f"Category is full (max {settings.max_clips_per_category} clips)"
        raise ValidationFailed(msg, code="category_full")

    audio_url = await storage.upload_clip(data, wallet_address, content_type)

    clip = AudioClip(
        title=title,
        creator_wallet=wallet_address,
        category_id=category_id,
        audio_url=audio_url,
        created_at=now,
    )
    db.add(clip)
    try:
        await db.flush()
        await bump_counter(db, wallet_address, utc_today(now), "clips_uploaded")
        await db.commit()
    except IntegrityError as e:
        await _discard_upload(db, storage, audio_url)
        msg = "You already uploaded a clip to this category"
        raise AlreadyDone(msg, code="clip_exists") from e
    except Exception:
        await _discard_upload(db, storage, audio_url)
        raise
    logger.info("clip_uploaded", clip_id=clip.id, category_id=category_id, wallet=wallet_address)
    return clip


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


async def cast_vote(
    db: AsyncSession,
    wallet_address: str,
    clip_id: str,
    battle_id: str | None = None,
    now: datetime | None = None,
) -> Vote:
    """
    Append a vote for a clip.

    A battle is the clip's category: each wallet gets one vote per category.
    A client-supplied ``battle_id`` is only checked against it.

    Raises:
        NotFound: Unknown clip.
        ValidationFailed: Category expired, or ``battle_id`` names another battle.
        Forbidden: Voting for one's own clip.
        AlreadyDone: The wallet already voted in this battle.
    """
    if now is None:
        now = utc_now()

    clip = await db.get(AudioClip, clip_id)
    if clip is None:
        msg = "Clip not found"
        raise NotFound(msg)
    if battle_id is not None and battle_id != clip.category_id:
        msg = "Clip is not part of this battle"
        raise ValidationFailed(msg, code="battle_mismatch")
    category = await db.get(Category, clip.category_id)
    if category is None or as_utc(category.expires_at) <= as_utc(now):
        msg = "Category has expired"
        raise ValidationFailed(msg)
    if clip.creator_wallet == wallet_address:
        msg = "You cannot vote for your own clip"
        raise Forbidden(msg)

    battle_id = clip.category_id
    voted = await db.execute(
        select(Vote.id).where(Vote.battle_id == battle_id, Vote.voter_wallet == wallet_address)
    )
    if voted.first() is not None:
        msg = "You already voted in this battle"
        raise AlreadyDone(msg, code="already_voted")

    vote = Vote(battle_id=battle_id, clip_id=clip_id, voter_wallet=wallet_address, created_at=now)
    db.add(vote)
    try:
        await db.flush()
    except IntegrityError as e:
        # Concurrent vote from the same wallet in the same battle.
        await db.rollback()
        msg = "You already voted in this battle"
        raise AlreadyDone(msg, code="already_voted") from e
    await bump_counter(db, wallet_address, utc_today(now), "votes_cast")
    logger.info("vote_cast", vote_id=vote.id, clip_id=clip_id, battle_id=battle_id, wallet=wallet_address)
    return vote
