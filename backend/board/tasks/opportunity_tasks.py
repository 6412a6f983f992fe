"""Opportunity background jobs: Slack-sourced creation and expiration checks."""

import asyncio
import logging
import uuid
from datetime import datetime

from board.tasks.celery_app import celery_app
from board.models.base import WorkerSessionLocal
from board.result import Result
from board.services.channels import opportunity_channels
from board.services.enrichment import get_pipeline
from board.services.jobs import CHECK_EXPIRED, CHECK_EXPIRED_ALL, CHECK_DELETED, CREATE_FROM_SLACK
from board.services.moderation import get_moderation_engine

logger = logging.getLogger(__name__)


class OpportunityJobError(Exception):
    """An opportunity job finished with a failed result."""

    def __init__(self, name: str, result: Result):
        super().__init__(f"{name} failed ({result.code}): {result.error}")
        self.code = result.code
        self.error = result.error


def _run(name: str, operation) -> dict | bool | None:
    """Run ``operation(db)`` in a worker session and unwrap its result."""

    async def _execute():
        async with WorkerSessionLocal() as db:
            return await operation(db)

    result = asyncio.run(_execute())
    if result is None:
        return None
    if not result.ok:
        raise OpportunityJobError(name, result)
    return _jsonable(result.data)


def _jsonable(data):
    if isinstance(data, dict):
        return {key: _jsonable(value) for key, value in data.items()}
    if isinstance(data, uuid.UUID):
        return str(data)
    return data


@celery_app.task(name=CREATE_FROM_SLACK)
def create_opportunity(slack_channel_id: str, slack_message_id: str, send_notification: bool = True):
    """Create (and refine) an opportunity from a Slack message."""
    pipeline = get_pipeline()
    data = _run(
        CREATE_FROM_SLACK,
        lambda db: pipeline.create_opportunity_from_slack(
            db, slack_channel_id, slack_message_id, send_notification=send_notification,
        ),
    )
    logger.info(f"Processed Slack message {slack_channel_id}/{slack_message_id}: {data}")
    return data


@celery_app.task(name=CHECK_EXPIRED)
def check_expired(opportunity_id: str, force: bool = False):
    """Re-scrape one opportunity and expire it if the posting is gone."""
    engine = get_moderation_engine()
    expired = _run(
        CHECK_EXPIRED,
        lambda db: engine.check_for_expired_opportunity(db, uuid.UUID(opportunity_id), force=force),
    )
    logger.info(f"Checked opportunity {opportunity_id} (force={force}): expired={expired}")
    return {"expired": expired}


@celery_app.task(name=CHECK_EXPIRED_ALL)
def check_expired_all(limit: int = 100):
    """Dispatch forced checks for opportunities that were never checked."""
    engine = get_moderation_engine()
    return _run(CHECK_EXPIRED_ALL, lambda db: engine.check_for_expired_opportunities(db, limit))


@celery_app.task(name=CHECK_DELETED)
def check_deleted(channel_id: str, message_id: str, deleted_at: str | None = None):
    """Remove the opportunity posted in a Slack message that was deleted."""
    engine = get_moderation_engine()

    async def _check(db):
        async with opportunity_channels() as channels:
            await engine.check_for_deleted_opportunity(
                db,
                channel_id,
                message_id,
                datetime.fromisoformat(deleted_at) if deleted_at else None,
                channels,
            )

    _run(CHECK_DELETED, _check)
