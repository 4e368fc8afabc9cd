"""Celery application configuration and beat schedule."""

from celery import Celery
from celery.schedules import crontab

from aijobs.config import get_settings

settings = get_settings()

celery_app = Celery(
    "aijobs",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "aijobs.tasks.scrape_tasks",
        "aijobs.tasks.maintenance_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=600,
    task_soft_time_limit=540,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.conf.beat_schedule = {
    "expire-stale-runs": {
        "task": "aijobs.tasks.maintenance_tasks.expire_stale_runs",
        "schedule": crontab(minute="*/5"),
    },
    "clean-duplicate-jobs": {
        "task": "aijobs.tasks.maintenance_tasks.clean_duplicate_jobs",
        "schedule": crontab(minute=30, hour=3),
    },
}
