"""Background job dispatch.

Producers only know a job name and a JSON-serializable payload. The Celery
worker that consumes a given name may live in this service
(``board.tasks.opportunity_tasks``) or in another one (gamification).
"""

import logging
from functools import lru_cache
from typing import Any, Protocol

from board.monitoring import report_exception

logger = logging.getLogger(__name__)

# Job names
CHECK_EXPIRED = "opportunity.check_expired"
CHECK_EXPIRED_ALL = "opportunity.check_expired.all"
CREATE_FROM_SLACK = "opportunity.create"
CHECK_DELETED = "opportunity.check_deleted"
SEND_SLACK_NOTIFICATION = "notification.slack.send"
ACTIVITY_COMPLETED = "gamification.activity.completed"


class JobQueue(Protocol):
    def enqueue(self, name: str, payload: dict[str, Any]) -> None: ...


class CeleryJobQueue:
    """Fire-and-forget dispatch through the Celery broker."""

    def __init__(self, app=None):
        if app is None:
            from board.tasks.celery_app import celery_app as app
        self.app = app

    def enqueue(self, name: str, payload: dict[str, Any]) -> None:
        try:
            self.app.send_task(name, kwargs=payload)
            logger.debug(f"Enqueued {name}")
        except Exception as e:
            # Don't fail the caller if the broker is down
            report_exception(e, job=name)


@lru_cache
def get_job_queue() -> JobQueue:
    return CeleryJobQueue()
