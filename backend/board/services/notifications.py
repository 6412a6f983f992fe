"""Outbound side effects: Slack notifications and analytics events.

Notifications are never sent inline: they are enqueued as
``notification.slack.send`` jobs and posted by the worker.
"""

import logging
from functools import lru_cache
from typing import Any, Protocol
from uuid import UUID

import httpx

from board.config import get_settings
from board.services.jobs import SEND_SLACK_NOTIFICATION, JobQueue

logger = logging.getLogger(__name__)


def notify_slack(
    jobs: JobQueue,
    channel: str,
    message: str,
    thread_id: str | None = None,
) -> None:
    payload: dict[str, Any] = {"channel": channel, "message": message, "workspace": "regular"}
    if thread_id:
        payload["thread_id"] = thread_id
    jobs.enqueue(SEND_SLACK_NOTIFICATION, payload)


def send_refinement_notification(
    jobs: JobQueue,
    opportunity_id: UUID | str,
    slack_channel_id: str,
    slack_user_id: str,
) -> None:
    """Ask the original poster to paste the opportunity's page content.

    Sent when the page couldn't be scraped, or when the AI couldn't find a
    title and description in it.
    """
    base_url = get_settings().student_profile_url
    message = (
        f"Thanks for sharing an opportunity in <#{slack_channel_id}>! "
        f"To add it to our <{base_url}/opportunities|opportunities board>, "
        f"please paste the opportunity's website content "
        f"<{base_url}/opportunities/{opportunity_id}/refine|*HERE*>.\n\n"
        "Appreciate you! 🙂"
    )
    notify_slack(jobs, channel=slack_user_id, message=message)


def send_added_to_board_notification(
    jobs: JobQueue,
    opportunity_id: UUID | str,
    slack_channel_id: str,
    slack_message_id: str,
) -> None:
    """Reply in the original thread once the opportunity is on the board."""
    base_url = get_settings().student_profile_url
    message = f"I added this to our <{base_url}/opportunities/{opportunity_id}|opportunities board>! 📌"
    notify_slack(jobs, channel=slack_channel_id, message=message, thread_id=slack_message_id)


async def post_slack_message(channel: str, message: str, thread_id: str | None = None) -> dict:
    """Post a message with the Slack Web API. Raises on HTTP or Slack errors."""
    settings = get_settings()
    body: dict[str, Any] = {"channel": channel, "text": message}
    if thread_id:
        body["thread_ts"] = thread_id

    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.post(
            f"{settings.slack_api_url}/chat.postMessage",
            json=body,
            headers={"Authorization": f"Bearer {settings.slack_bot_token}"},
        )
    resp.raise_for_status()

    data = resp.json()
    if not data.get("ok"):
        raise RuntimeError(f"Slack error: {data.get('error', 'unknown')}")
    return data


class Analytics(Protocol):
    def track(self, event: str, properties: dict[str, Any], user: UUID | str) -> None: ...


class LoggingAnalytics:
    """Records analytics events in the application log."""

    def track(self, event: str, properties: dict[str, Any], user: UUID | str) -> None:
        logger.info("Analytics event %r for %s: %s", event, user, properties)


@lru_cache
def get_analytics() -> Analytics:
    return LoggingAnalytics()
