"""Request/response schemas for task endpoints."""

from __future__ import annotations

from datetime import datetime

from noizlabs.schemas import CamelModel


class TaskResponse(CamelModel):
    id: str
    slug: str
    name: str
    description: str
    task_type: str
    external_link: str | None
    points_reward: int
    max_completions: int | None
    completed: bool
    completed_at: datetime | None


class TaskListResponse(CamelModel):
    tasks: list[TaskResponse]


class TaskCompleteResponse(CamelModel):
    success: bool = True
    task_id: str
    completed_at: datetime
    points_reward: int
