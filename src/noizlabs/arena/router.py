"""Arena router: /api/v1/arena/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.arena.remix import RemixService, get_remix_service, resolve_remix_type
from noizlabs.arena.schemas import (
    CategoryCreateRequest,
    CategoryListResponse,
    CategoryResponse,
    ClipResponse,
    RemixRequest,
    RemixResponse,
    VoteRequest,
    VoteResponse,
)
from noizlabs.arena.service import cast_vote, create_category, list_active_categories, upload_clip
from noizlabs.arena.storage import ClipStorage, get_storage
from noizlabs.auth.dependencies import get_current_profile
from noizlabs.database import get_session
from noizlabs.db.models import AudioClip, Category, Profile
from noizlabs.errors import NotFound

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/arena", tags=["Arena"])


def _clip_response(clip: AudioClip, votes: int = 0) -> ClipResponse:
    return ClipResponse(
        id=clip.id,
        title=clip.title,
        creator_wallet=clip.creator_wallet,
        category_id=clip.category_id,
        audio_url=clip.audio_url,
        created_at=clip.created_at,
        votes=votes,
    )


def _category_response(category: Category, clips: list[ClipResponse] | None = None) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        creator_wallet=category.creator_wallet,
        created_at=category.created_at,
        expires_at=category.expires_at,
        clips=clips or [],
    )


@router.get("/categories", response_model=CategoryListResponse)
async def get_categories(db: AsyncSession = Depends(get_session)) -> CategoryListResponse:
    """Active categories with their clips and vote counts."""
    rows = await list_active_categories(db)
    return CategoryListResponse(
        categories=[
            _category_response(category, [_clip_response(clip, votes) for clip, votes in clips])
            for category, clips in rows
        ]
    )


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def post_category(
    body: CategoryCreateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> CategoryResponse:
    category = await create_category(db, profile.wallet_address, body.name)
    await db.commit()
    return _category_response(category)


@router.post("/categories/{category_id}/clips", response_model=ClipResponse, status_code=201)
async def post_clip(
    category_id: str,
    title: str = Form(...),
    file: UploadFile = File(...),
    profile: Profile = Depends(get_current_profile),
    storage: ClipStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_session),
) -> ClipResponse:
    """Upload an audio clip into someone else's category."""
    data = await file.read()
    clip = await upload_clip(
        db,
        storage,
        profile.wallet_address,
        category_id,
        title,
        data,
        file.content_type or "application/octet-stream",
    )
    return _clip_response(clip)


@router.post("/votes", response_model=VoteResponse, status_code=201)
async def post_vote(
    body: VoteRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> VoteResponse:
    vote = await cast_vote(db, profile.wallet_address, body.clip_id, battle_id=body.battle_id)
    await db.commit()
    return VoteResponse(id=vote.id, battle_id=vote.battle_id, clip_id=vote.clip_id, created_at=vote.created_at)


@router.post("/clips/{clip_id}/remix", response_model=RemixResponse)
async def remix_clip(
    clip_id: str,
    body: RemixRequest,
    profile: Profile = Depends(get_current_profile),
    remixer: RemixService = Depends(get_remix_service),
    db: AsyncSession = Depends(get_session),
) -> RemixResponse:
    """Describe how the clip would sound with the chosen remix applied."""
    remix_type = resolve_remix_type(body.remix_type)
    clip = await db.get(AudioClip, clip_id)
    if clip is None:
        msg = "Clip not found"
        raise NotFound(msg)

    description = await remixer.describe(clip.title, remix_type)
    logger.info("clip_remix_described", clip_id=clip.id, remix_type=remix_type, wallet=profile.wallet_address)
    return RemixResponse(
        clip_id=clip.id,
        remix_type=remix_type,
        description=description,
        original_url=clip.audio_url,
    )
