"""Tests for the Celery task wrappers and schedule."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from board.result import fail, success
from board.services import channels
from board.tasks import notification_tasks, opportunity_tasks  # noqa: F401
from board.tasks.celery_app import celery_app
from board.tasks.opportunity_tasks import OpportunityJobError


class DummySession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def worker_session(monkeypatch):
    monkeypatch.setattr(opportunity_tasks, "WorkerSessionLocal", DummySession)


@pytest.fixture
def moderation_engine(monkeypatch):
    engine = MagicMock()
    monkeypatch.setattr(opportunity_tasks, "get_moderation_engine", lambda: engine)
    return engine


def test_check_expired_returns_result(worker_session, moderation_engine):
    moderation_engine.check_for_expired_opportunity = AsyncMock(return_value=success(True))
    opportunity_id = uuid.uuid4()

    assert opportunity_tasks.check_expired(str(opportunity_id), force=True) == {"expired": True}

    args, kwargs = moderation_engine.check_for_expired_opportunity.call_args
    assert args[1] == opportunity_id
    assert kwargs == {"force": True}


def test_failed_result_fails_the_job(worker_session, moderation_engine):
    moderation_engine.check_for_expired_opportunity = AsyncMock(return_value=fail(500, "Failed to get page content."))

    with pytest.raises(OpportunityJobError, match="Failed to get page content.") as excinfo:
        opportunity_tasks.check_expired(str(uuid.uuid4()))
    assert excinfo.value.code == 500


def test_create_opportunity_serializes_ids(worker_session, monkeypatch):
    opportunity_id = uuid.uuid4()
    pipeline = MagicMock()
    pipeline.create_opportunity_from_slack = AsyncMock(return_value=success({"id": opportunity_id}))
    monkeypatch.setattr(opportunity_tasks, "get_pipeline", lambda: pipeline)

    data = opportunity_tasks.create_opportunity("C_OPPS", "1700000000.000100", send_notification=False)

    assert data == {"id": str(opportunity_id)}
    pipeline.create_opportunity_from_slack.assert_awaited_once()
    assert pipeline.create_opportunity_from_slack.call_args.kwargs == {"send_notification": False}


def test_task_names_and_schedule():
    assert "opportunity.check_expired" in celery_app.tasks
    assert "opportunity.check_expired.all" in celery_app.tasks
    assert "opportunity.create" in celery_app.tasks
    assert "opportunity.check_deleted" in celery_app.tasks
    assert "notification.slack.send" in celery_app.tasks

    sweep = celery_app.conf.beat_schedule["check-expired-opportunities"]
    assert sweep["task"] == "opportunity.check_expired.all"
    assert sweep["kwargs"] == {"limit": 100}


class FakeRedis:
    def __init__(self, members):
        self.members = set(members)
        self.closed = False

    async def sismember(self, key, value):
        return value in self.members

    async def aclose(self):
        self.closed = True


def test_check_deleted_closes_redis_connection(worker_session, moderation_engine, monkeypatch):
    client = FakeRedis({"C_OPPS"})
    monkeypatch.setattr(channels.redis, "from_url", lambda *args, **kwargs: client)
    seen = []

    async def check_for_deleted_opportunity(db, channel_id, message_id, deleted_at, opportunity_channels):
        seen.append(await opportunity_channels.contains(channel_id))

    moderation_engine.check_for_deleted_opportunity = check_for_deleted_opportunity

    opportunity_tasks.check_deleted("C_OPPS", "1700000000.000100", "2030-01-01T00:00:00+00:00")

    assert seen == [True]
    assert client.closed
