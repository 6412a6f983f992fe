"""Slack notification delivery."""

import asyncio
import logging

from board.tasks.celery_app import celery_app
from board.services.jobs import SEND_SLACK_NOTIFICATION
from board.services.notifications import post_slack_message

logger = logging.getLogger(__name__)


@celery_app.task(
    name=SEND_SLACK_NOTIFICATION,
    autoretry_for=(Exception,),
    retry_backoff=True,
    max_retries=3,
)
def send_slack_notification(channel: str, message: str, thread_id: str | None = None, workspace: str = "regular"):
    """Post a message to a Slack channel, DM or thread."""
    asyncio.run(post_slack_message(channel, message, thread_id=thread_id))
    logger.info(f"Sent Slack notification to {channel} ({workspace} workspace)")
    return {"channel": channel}
