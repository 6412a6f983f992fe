"""Celery application configuration and beat schedule."""

from celery import Celery
from celery.schedules import crontab

from board.config import get_settings

settings = get_settings()

celery_app = Celery(
    "board",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "board.tasks.opportunity_tasks",
        "board.tasks.notification_tasks",
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
    "check-expired-opportunities": {
        "task": "opportunity.check_expired.all",
        "schedule": crontab(minute=0),
        "kwargs": {"limit": settings.expiration_sweep_limit},
    },
}
