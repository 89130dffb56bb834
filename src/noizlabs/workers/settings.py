"""arq worker settings module.

Import path for arq CLI: arq noizlabs.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from noizlabs.config import get_settings
from noizlabs.workers.jobs import expire_categories, reset_quests, shutdown, startup

_settings = get_settings()


class WorkerSettings:
    """Cron-only worker: expiry sweep every few minutes, quest reset at 00:00 UTC."""

    functions = [expire_categories, reset_quests]
    cron_jobs = [
        cron(expire_categories, minute=set(range(0, 60, _settings.expiry_sweep_minutes))),
        cron(reset_quests, hour={0}, minute={0}, second={0}),
    ]
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 2
    job_timeout = 300
