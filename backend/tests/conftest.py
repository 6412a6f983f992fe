"""Shared fixtures: an in-memory database and fakes for the external services."""

import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from board.models import Admin, Base, OpportunityTag, SlackMessage, Student
from board.services.company_resolver import NameCompanyResolver
from board.services.enrichment import OpportunityPipeline
from board.services.moderation import ModerationEngine
from tests.fakes import FakeCompletionClient, FakeFetcher, RecordingAnalytics, RecordingJobQueue


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


async def _add_student(db, first_name, slack_id=None):
    student = Student(
        id=uuid.uuid4(),
        email=f"{first_name.lower()}-{uuid.uuid4().hex[:6]}@example.com",
        first_name=first_name,
        last_name="Tester",
        slack_id=slack_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(student)
    await db.commit()
    return student


@pytest_asyncio.fixture
async def student(db):
    return await _add_student(db, "Poster", slack_id="U_POSTER")


@pytest_asyncio.fixture
async def other_student(db):
    return await _add_student(db, "Reader")


@pytest_asyncio.fixture
async def third_student(db):
    return await _add_student(db, "Critic")


@pytest_asyncio.fixture
async def admin(db):
    member = await _add_student(db, "Admin")
    db.add(Admin(member_id=member.id, created_at=datetime.now(timezone.utc)))
    await db.commit()
    return member


@pytest_asyncio.fixture
async def tags(db):
    now = datetime.now(timezone.utc)
    catalog = [
        OpportunityTag(id="swe", name="SWE", color="blue-100", created_at=now),
        OpportunityTag(id="internship", name="Internship", color="green-100", created_at=now),
        OpportunityTag(id="event", name="Event", color="pink-100", created_at=now),
    ]
    db.add_all(catalog)
    await db.commit()
    return {tag.name: tag for tag in catalog}


@pytest_asyncio.fixture
async def slack_message(db, student):
    message = SlackMessage(
        channel_id="C_OPPS",
        id="1700000000.000100",
        student_id=student.id,
        user_id="U_POSTER",
        text="Cool internship! <https://jobs.test/intern|Apply here>",
        created_at=datetime.now(timezone.utc),
    )
    db.add(message)
    await db.commit()
    return message


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def ai():
    return FakeCompletionClient()


@pytest.fixture
def jobs():
    return RecordingJobQueue()


@pytest.fixture
def analytics():
    return RecordingAnalytics()


@pytest.fixture
def pipeline(fetcher, ai, jobs, analytics):
    return OpportunityPipeline(
        fetcher=fetcher,
        ai=ai,
        jobs=jobs,
        companies=NameCompanyResolver(),
        analytics=analytics,
    )


@pytest.fixture
def moderation(fetcher, jobs):
    return ModerationEngine(fetcher=fetcher, jobs=jobs)
