"""Tests for the opportunity HTTP endpoints."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from board import main
from board.main import app
from board.models.base import get_db
from board.services import opportunity_store as store
from board.services.enrichment import get_pipeline
from board.services.jobs import CHECK_EXPIRED, get_job_queue
from board.services.moderation import get_moderation_engine


@pytest_asyncio.fixture
async def client(db, pipeline, moderation, jobs):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_moderation_engine] = lambda: moderation
    app.dependency_overrides[get_job_queue] = lambda: jobs

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def as_member(member):
    return {"X-Member-Id": str(member.id)}


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_requires_member(client):
    resp = await client.get("/api/v1/opportunities")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_add_and_read(client, student):
    resp = await client.post("/api/v1/opportunities", json={"link": "  https://x.test/job  "}, headers=as_member(student))
    assert resp.status_code == 201
    opportunity_id = resp.json()["id"]

    resp = await client.get(f"/api/v1/opportunities/{opportunity_id}", headers=as_member(student))
    assert resp.status_code == 200
    body = resp.json()
    assert body["link"] == "https://x.test/job"
    assert body["has_write_permission"] is True

    resp = await client.post("/api/v1/opportunities", json={"link": "HTTPS://X.TEST/JOB"}, headers=as_member(student))
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Someone already posted this link."


@pytest.mark.asyncio
async def test_add_rejects_bad_links(client, student):
    for link in ["x.test/job", "ftp://x.test/file", ""]:
        resp = await client.post("/api/v1/opportunities", json={"link": link}, headers=as_member(student))
        assert resp.status_code == 422


@pytest.mark.asyncio
async def test_unknown_opportunity(client, student):
    resp = await client.get("/api/v1/opportunities/00000000-0000-0000-0000-000000000000", headers=as_member(student))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_edit_requires_write_permission(client, db, student, other_student, tags):
    opportunity_id = await store.create_placeholder(db, "https://x.test/edit", student.id)
    await db.commit()
    body = {"description": "Updated", "expires_at": "2031-01-31", "tags": "swe", "title": "New title"}

    resp = await client.patch(f"/api/v1/opportunities/{opportunity_id}", json=body, headers=as_member(other_student))
    assert resp.status_code == 403

    resp = await client.patch(f"/api/v1/opportunities/{opportunity_id}", json=body, headers=as_member(student))
    assert resp.status_code == 200

    resp = await client.get(f"/api/v1/opportunities/{opportunity_id}", headers=as_member(student))
    assert resp.json()["title"] == "New title"
    assert [tag["id"] for tag in resp.json()["tags"]] == ["swe"]


@pytest.mark.asyncio
async def test_delete_requires_write_permission(client, db, student, other_student):
    opportunity_id = await store.create_placeholder(db, "https://x.test/delete", student.id)
    await db.commit()

    resp = await client.delete(f"/api/v1/opportunities/{opportunity_id}", headers=as_member(other_student))
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/opportunities/{opportunity_id}", headers=as_member(student))
    assert resp.status_code == 200

    resp = await client.get(f"/api/v1/opportunities/{opportunity_id}", headers=as_member(student))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_bookmark_and_report(client, db, student, other_student):
    opportunity_id = await store.create_placeholder(db, "https://x.test/a", student.id)
    await db.commit()

    resp = await client.post(f"/api/v1/opportunities/{opportunity_id}/bookmark", headers=as_member(other_student))
    assert resp.json() == {"bookmarked": True}

    resp = await client.post(
        f"/api/v1/opportunities/{opportunity_id}/report",
        json={"reason": "Link is broken"},
        headers=as_member(other_student),
    )
    assert resp.json() == {"removed": False}


@pytest.mark.asyncio
async def test_manual_refine(client, db, ai, student, tags):
    opportunity_id = await store.create_placeholder(db, "https://x.test/refine", student.id)
    await db.commit()
    ai.answer_with(company=None, description="A great role.", expiresAt=None, tags=["SWE"], title="Engineer")

    resp = await client.post(
        f"/api/v1/opportunities/{opportunity_id}/refine",
        json={"content": "Pasted page content"},
        headers=as_member(student),
    )
    assert resp.status_code == 200

    resp = await client.get(f"/api/v1/opportunities/{opportunity_id}", headers=as_member(student))
    assert resp.json()["title"] == "Engineer"


@pytest.mark.asyncio
async def test_tags_admin_only(client, student, admin, tags):
    body = {"id": "quant", "name": "Quant", "color": "amber-100"}

    resp = await client.post("/api/v1/opportunities/tags", json=body, headers=as_member(student))
    assert resp.status_code == 403

    resp = await client.post("/api/v1/opportunities/tags", json=body, headers=as_member(admin))
    assert resp.status_code == 201

    resp = await client.get("/api/v1/opportunities/tags")
    assert [tag["name"] for tag in resp.json()] == ["Event", "Internship", "Quant", "SWE"]


@pytest.mark.asyncio
async def test_check_expired_is_queued(client, jobs, db, admin, student):
    opportunity_id = await store.create_placeholder(db, "https://x.test/check", student.id)
    await db.commit()

    resp = await client.post(f"/api/v1/opportunities/{opportunity_id}/check-expired", headers=as_member(admin))

    assert resp.status_code == 202
    assert jobs.named(CHECK_EXPIRED) == [{"opportunity_id": str(opportunity_id), "force": True}]


class FakeRedis:
    def __init__(self, channel_count):
        self.channel_count = channel_count
        self.closed = False

    async def scard(self, key):
        return self.channel_count

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_detailed_health(client, engine, db, student, monkeypatch):
    await store.create_placeholder(db, "https://x.test/open", student.id)
    expired = await store.create_placeholder(db, "https://x.test/closed", student.id)
    await store.mark_expired(db, expired)
    await db.commit()

    redis_client = FakeRedis(channel_count=0)
    monkeypatch.setattr(main, "AsyncSessionLocal", async_sessionmaker(engine, class_=AsyncSession))
    monkeypatch.setattr(main.redis, "from_url", lambda *args, **kwargs: redis_client)
    monkeypatch.setattr(main, "_check_workers", lambda: {"ok": True, "workers": ["celery@board"]})

    resp = await client.get("/health/detailed")

    body = resp.json()
    assert body["checks"]["database"] == {"ok": True, "open_opportunities": 1}
    assert body["checks"]["redis"] == {"ok": False, "opportunity_channels": 0}
    assert body["checks"]["celery_workers"]["ok"] is True
    assert body["status"] == "degraded"
    assert redis_client.closed
