"""Task router: /api/v1/tasks/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.auth.dependencies import get_current_profile
from noizlabs.database import get_session
from noizlabs.db.models import Profile, Task
from noizlabs.tasks.schemas import TaskCompleteResponse, TaskListResponse, TaskResponse
from noizlabs.tasks.service import complete_task, list_tasks

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


@router.get("", response_model=TaskListResponse)
async def get_tasks(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    """Task catalog with the caller's completion state."""
    rows = await list_tasks(db, profile.wallet_address)
    return TaskListResponse(
        tasks=[
            TaskResponse(
                id=task.id,
                slug=task.slug,
                name=task.name,
                description=task.description,
                task_type=task.task_type,
                external_link=task.external_link,
                points_reward=task.points_reward,
                max_completions=task.max_completions,
                completed=bool(done and done.verified),
                completed_at=done.completed_at if done else None,
            )
            for task, done in rows
        ]
    )


@router.post("/{task_id}/complete", response_model=TaskCompleteResponse, status_code=201)
async def post_complete(
    task_id: str,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> TaskCompleteResponse:
    """Mark a social task done. Claim its points with ``POST /api/v1/points/award``."""
    user_task = await complete_task(db, profile.wallet_address, task_id)
    await db.commit()
    task = await db.get(Task, task_id)
    return TaskCompleteResponse(
        task_id=task_id,
        completed_at=user_task.completed_at or user_task.created_at,
        points_reward=task.points_reward if task else 0,
    )
