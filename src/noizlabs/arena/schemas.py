"""Request/response schemas for arena endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from noizlabs.schemas import CamelModel


class CategoryCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=64)


class ClipResponse(CamelModel):
    id: str
    title: str
    creator_wallet: str
    category_id: str
    audio_url: str | None
    created_at: datetime
    votes: int = 0


class CategoryResponse(CamelModel):
    id: str
    name: str
    creator_wallet: str
    created_at: datetime
    expires_at: datetime
    clips: list[ClipResponse] = Field(default_factory=list)


class CategoryListResponse(CamelModel):
    categories: list[CategoryResponse]


class VoteRequest(CamelModel):
    battle_id: str | None = Field(None, min_length=1, max_length=64)
    clip_id: str = Field(..., min_length=1, max_length=36)


class VoteResponse(CamelModel):
    id: str
    battle_id: str
    clip_id: str
    created_at: datetime


class RemixRequest(CamelModel):
    remix_type: str | None = Field(None, max_length=32)


class RemixResponse(CamelModel):
    success: bool = True
    clip_id: str
    remix_type: str
    description: str
    original_url: str | None
