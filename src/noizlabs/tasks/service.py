"""Task catalog queries and social-task completion."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.db.models import Task, UserTask
from noizlabs.errors import AlreadyDone, NotFound, ValidationFailed
from noizlabs.points.day_utils import utc_now

logger = logging.getLogger(__name__)


async def list_tasks(db: AsyncSession, wallet_address: str) -> list[tuple[Task, UserTask | None]]:
    """Every catalog task paired with the wallet's completion, if any."""
    tasks = await db.execute(select(Task).order_by(Task.sort_order, Task.name))
    done = await db.execute(select(UserTask).where(UserTask.user_wallet == wallet_address))
    by_task = {ut.task_id: ut for ut in done.scalars().all()}
    return [(task, by_task.get(task.id)) for task in tasks.scalars().all()]


async def complete_task(
    db: AsyncSession,
    wallet_address: str,
    task_id: str,
    now: datetime | None = None,
) -> UserTask:
    """
    Record a verified completion of a social task.

    Points are claimed separately through the award guard, which requires
    this completion to be fresh.

    Raises:
        NotFound: Unknown task.
        ValidationFailed: Not a social task, or the task is fully claimed.
        AlreadyDone: The wallet already completed it.
    """
    if now is None:
        now = utc_now()

    task = await db.get(Task, task_id)
    if task is None:
        msg = "Task not found"
        raise NotFound(msg)
    if task.task_type != "social" or not task.external_link:
        msg = "Only social tasks can be completed directly"
        raise ValidationFailed(msg)

    existing = await db.execute(
        select(UserTask.id).where(UserTask.user_wallet == wallet_address, UserTask.task_id == task_id)
    )
    if existing.first() is not None:
        msg = "You've already completed this task"
        raise AlreadyDone(msg, code="task_completed")

    if task.max_completions is not None:
        count = await db.execute(select(func.count()).select_from(UserTask).where(UserTask.task_id == task_id))
        if count.scalar_one() >= task.max_completions:
            msg = "This task has reached its completion limit"
            raise ValidationFailed(msg, code="task_exhausted")

    user_task = UserTask(
        user_wallet=wallet_address,
        task_id=task_id,
        verified=True,
        completed_at=now,
        created_at=now,
    )
    db.add(user_task)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "You've already completed this task"
        raise AlreadyDone(msg, code="task_completed") from e

    logger.info("Task %s completed by %s", task.slug, wallet_address)
    return user_task
