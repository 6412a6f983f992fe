"""Tests for the opportunity store's writes and composed reads."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from board.models import Company, Opportunity, OpportunityBookmark
from board.services import opportunity_store as store


def test_add_one_month():
    assert store.add_one_month(datetime(2030, 1, 15)) == datetime(2030, 2, 15)
    assert store.add_one_month(datetime(2030, 1, 31)) == datetime(2030, 2, 28)
    assert store.add_one_month(datetime(2030, 12, 10)) == datetime(2031, 1, 10)


class TestCreatePlaceholder:
    @pytest.mark.asyncio
    async def test_slack_upsert_returns_existing_id(self, db, student, slack_message):
        first = await store.create_placeholder(
            db, "https://jobs.test/intern", student.id,
            slack_channel_id="C_OPPS", slack_message_id=slack_message.id,
        )
        await db.commit()
        second = await store.create_placeholder(
            db, "https://jobs.test/intern-2", student.id,
            slack_channel_id="C_OPPS", slack_message_id=slack_message.id,
        )
        await db.commit()

        assert second == first
        rows = await db.execute(select(func.count()).select_from(Opportunity))
        assert rows.scalar() == 1

    @pytest.mark.asyncio
    async def test_find_by_link_ignores_case(self, db, student):
        opportunity_id = await store.create_placeholder(db, "https://Jobs.test/Role_1", student.id)
        await db.commit()

        assert (await store.find_by_link(db, "https://jobs.test/role_1")).id == opportunity_id
        # "_" is matched literally
        assert await store.find_by_link(db, "https://jobs.test/roleX1") is None


class TestBookmarks:
    @pytest.mark.asyncio
    async def test_toggle(self, db, student, other_student):
        opportunity_id = await store.create_placeholder(db, "https://x.test/a", student.id)

        assert await store.toggle_bookmark(db, opportunity_id, other_student.id) == "created"
        assert await store.toggle_bookmark(db, opportunity_id, other_student.id) == "deleted"
        assert await store.toggle_bookmark(db, opportunity_id, other_student.id) == "created"
        await db.commit()

        rows = await db.execute(select(func.count()).select_from(OpportunityBookmark))
        assert rows.scalar() == 1


class TestPermissions:
    @pytest.mark.asyncio
    async def test_poster_and_admin_can_write(self, db, student, other_student, admin):
        opportunity_id = await store.create_placeholder(db, "https://x.test/a", student.id)
        await db.commit()

        assert await store.has_write_permission(db, opportunity_id, student.id)
        assert await store.has_write_permission(db, opportunity_id, admin.id)
        assert not await store.has_write_permission(db, opportunity_id, other_student.id)

    @pytest.mark.asyncio
    async def test_is_active_admin(self, db, student, admin):
        assert await store.is_active_admin(db, admin.id)
        assert not await store.is_active_admin(db, student.id)


class TestQueries:
    @pytest.mark.asyncio
    async def test_opportunity_details(self, db, student, other_student, tags, slack_message):
        acme = Company(id=uuid.uuid4(), name="Acme", image_url="https://cdn.test/acme.png", created_at=datetime.now(timezone.utc))
        db.add(acme)
        await db.flush()
        opportunity_id = await store.create_placeholder(
            db, "https://jobs.test/intern", student.id,
            slack_channel_id="C_OPPS", slack_message_id=slack_message.id,
        )
        await store.update_fields(db, opportunity_id, company_id=acme.id, title="Intern", description="Summer role")
        await store.add_tag_associations(db, opportunity_id, ["swe", "internship"])
        await store.toggle_bookmark(db, opportunity_id, other_student.id)
        await db.commit()

        as_reader = await store.get_opportunity_details(db, opportunity_id, other_student.id)
        as_poster = await store.get_opportunity_details(db, opportunity_id, student.id)

        assert as_reader.title == "Intern"
        assert as_reader.company_name == "Acme"
        assert as_reader.company_logo == "https://cdn.test/acme.png"
        assert as_reader.poster_first_name == "Poster"
        assert as_reader.slack_message_text == slack_message.text
        assert as_reader.slack_message_channel_id == "C_OPPS"
        assert as_reader.bookmarks == 1
        assert as_reader.bookmarked is True
        assert as_reader.has_write_permission is False
        assert [tag.name for tag in as_reader.tags] == ["Internship", "SWE"]

        assert as_poster.bookmarked is False
        assert as_poster.has_write_permission is True

    @pytest.mark.asyncio
    async def test_details_without_poster(self, db, other_student):
        opportunity_id = await store.create_placeholder(db, "https://x.test/orphan", None)
        await db.commit()

        details = await store.get_opportunity_details(db, opportunity_id, other_student.id)

        assert details.poster_first_name is None
        assert details.company_name is None
        assert details.has_write_permission is False
        assert details.tags == []

    @pytest.mark.asyncio
    async def test_details_of_unknown_opportunity(self, db, student):
        assert await store.get_opportunity_details(db, uuid.uuid4(), student.id) is None

    @pytest.mark.asyncio
    async def test_summary(self, db, student):
        opportunity_id = await store.create_placeholder(db, "https://x.test/a", student.id)
        await db.commit()

        summary = await store.get_opportunity(db, opportunity_id)

        assert summary.title == "Opportunity"
        assert summary.description == "N/A"
        assert summary.company_name is None

    @pytest.mark.asyncio
    async def test_list_hides_expired_and_filters_by_tag(self, db, student, other_student, tags):
        now = datetime.now(timezone.utc)
        older = await store.create_placeholder(db, "https://x.test/older", student.id)
        await store.update_fields(db, older, created_at=now - timedelta(days=2))
        newer = await store.create_placeholder(db, "https://x.test/newer", student.id)
        await store.add_tag_associations(db, newer, ["event"])
        expired = await store.create_placeholder(db, "https://x.test/expired", student.id)
        await store.mark_expired(db, expired)
        await store.toggle_bookmark(db, older, other_student.id)
        await db.commit()

        listing = await store.list_opportunities(db, other_student.id)
        assert [item.id for item in listing] == [newer, older]
        assert listing[1].bookmarks == 1
        assert listing[1].bookmarked is True

        tagged = await store.list_opportunities(db, other_student.id, tag_id="event")
        assert [item.id for item in tagged] == [newer]
        assert [tag.id for tag in tagged[0].tags] == ["event"]

        everything = await store.list_opportunities(db, other_student.id, include_expired=True)
        assert len(everything) == 3
