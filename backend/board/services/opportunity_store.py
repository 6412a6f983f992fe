"""Reads and writes for opportunities and their join tables.

Every statement that touches ``opportunities``, ``opportunity_tag_associations``,
``opportunity_bookmarks`` or ``opportunity_reports`` lives here. Functions
never commit: the calling operation owns the transaction.
"""

import calendar
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Literal

from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from board.models.company import Company
from board.models.member import Admin, Student
from board.models.opportunity import (
    Opportunity,
    OpportunityBookmark,
    OpportunityReport,
    OpportunityTagAssociation,
)
from board.models.slack_message import SlackMessage
from board.models.tag import OpportunityTag
from board.schemas.opportunity import OpportunityDetails, OpportunityListItem, OpportunitySummary
from board.schemas.tag import OpportunityTagRead

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Opportunity"
PLACEHOLDER_DESCRIPTION = "N/A"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_one_month(value: datetime) -> datetime:
    """Same day next month, clamped to the last day of a shorter month."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _insert(db: AsyncSession, table):
    """Dialect-specific INSERT, for ON CONFLICT support."""
    if db.bind is not None and db.bind.dialect.name == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)


# --- Permissions ---


def active_admin_clause(member_id: uuid.UUID):
    return exists(
        select(Admin.member_id).where(
            Admin.member_id == member_id,
            Admin.deleted_at.is_(None),
        )
    )


def write_permission_clause(member_id: uuid.UUID):
    """Poster of the opportunity, or an active admin."""
    return or_(Opportunity.posted_by == member_id, active_admin_clause(member_id))


async def is_active_admin(db: AsyncSession, member_id: uuid.UUID) -> bool:
    result = await db.execute(select(active_admin_clause(member_id)))
    return bool(result.scalar())


async def has_write_permission(db: AsyncSession, opportunity_id: uuid.UUID, member_id: uuid.UUID) -> bool:
    """Whether the member can edit/delete the opportunity (poster or admin)."""
    result = await db.execute(
        select(Opportunity.id).where(
            Opportunity.id == opportunity_id,
            write_permission_clause(member_id),
        )
    )
    return result.scalar_one_or_none() is not None


# --- Opportunity rows ---


async def find_by_link(db: AsyncSession, link: str) -> Opportunity | None:
    """Case-insensitive lookup on the link."""
    result = await db.execute(
        select(Opportunity).where(func.lower(Opportunity.link) == link.lower()).limit(1)
    )
    return result.scalar_one_or_none()


async def get_by_id(db: AsyncSession, opportunity_id: uuid.UUID) -> Opportunity | None:
    result = await db.execute(select(Opportunity).where(Opportunity.id == opportunity_id))
    return result.scalar_one_or_none()


async def create_placeholder(
    db: AsyncSession,
    link: str,
    posted_by: uuid.UUID | None,
    slack_channel_id: str | None = None,
    slack_message_id: str | None = None,
) -> uuid.UUID:
    """Insert a blank opportunity that a member can edit right away.

    When created from a Slack message, the (channel, message) pair is the
    natural key: a second insert for the same message returns the id of the
    row that already exists.
    """
    now = utcnow()
    values = {
        "id": uuid.uuid4(),
        "created_at": now,
        "description": PLACEHOLDER_DESCRIPTION,
        "expires_at": add_one_month(now),
        "link": link,
        "posted_by": posted_by,
        "slack_channel_id": slack_channel_id,
        "slack_message_id": slack_message_id,
        "title": PLACEHOLDER_TITLE,
    }

    if not (slack_channel_id and slack_message_id):
        await db.execute(_insert(db, Opportunity).values(**values))
        return values["id"]

    result = await db.execute(
        _insert(db, Opportunity)
        .values(**values)
        .on_conflict_do_nothing(index_elements=["slack_channel_id", "slack_message_id"])
        .returning(Opportunity.id)
    )
    opportunity_id = result.scalar_one_or_none()
    if opportunity_id:
        return opportunity_id

    existing = await db.execute(
        select(Opportunity.id).where(
            Opportunity.slack_channel_id == slack_channel_id,
            Opportunity.slack_message_id == slack_message_id,
        )
    )
    return existing.scalar_one()


async def hard_delete(db: AsyncSession, opportunity_id: uuid.UUID) -> int:
    """Delete the row; tags, bookmarks and reports go with it (ON DELETE CASCADE)."""
    result = await db.execute(delete(Opportunity).where(Opportunity.id == opportunity_id))
    return result.rowcount


async def find_by_slack_message(db: AsyncSession, channel_id: str, message_id: str) -> uuid.UUID | None:
    result = await db.execute(
        select(Opportunity.id).where(
            Opportunity.slack_channel_id == channel_id,
            Opportunity.slack_message_id == message_id,
        )
    )
    return result.scalar_one_or_none()


async def update_fields(db: AsyncSession, opportunity_id: uuid.UUID, **values) -> int:
    result = await db.execute(
        update(Opportunity).where(Opportunity.id == opportunity_id).values(**values)
    )
    return result.rowcount


async def mark_refined(db: AsyncSession, opportunity_id: uuid.UUID) -> bool:
    """Set ``refined_at`` unless it is already set. Returns True if it was set now."""
    result = await db.execute(
        update(Opportunity)
        .where(Opportunity.id == opportunity_id, Opportunity.refined_at.is_(None))
        .values(refined_at=utcnow())
    )
    return result.rowcount > 0


async def mark_expired(db: AsyncSession, opportunity_id: uuid.UUID) -> int:
    return await update_fields(db, opportunity_id, expires_at=utcnow())


async def select_for_expiration_check(
    db: AsyncSession,
    opportunity_id: uuid.UUID,
    force: bool,
    cooldown: timedelta,
) -> Opportunity | None:
    """The opportunity, if it is still open and due for a check."""
    now = utcnow()
    query = select(Opportunity).where(
        Opportunity.id == opportunity_id,
        Opportunity.expires_at > now,
    )
    if not force:
        query = query.where(
            or_(
                Opportunity.last_expiration_check.is_(None),
                Opportunity.last_expiration_check <= now - cooldown,
            )
        )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_unchecked_ids(db: AsyncSession, limit: int) -> list[uuid.UUID]:
    """Open opportunities never checked for expiration, oldest first."""
    result = await db.execute(
        select(Opportunity.id)
        .where(
            Opportunity.expires_at > utcnow(),
            Opportunity.last_expiration_check.is_(None),
        )
        .order_by(Opportunity.created_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


# --- Tags ---


async def add_tag_associations(db: AsyncSession, opportunity_id: uuid.UUID, tag_ids: Iterable[str]) -> None:
    """Associate tags; existing associations are left alone."""
    rows = [{"opportunity_id": opportunity_id, "tag_id": tag_id} for tag_id in dict.fromkeys(tag_ids)]
    if not rows:
        return
    await db.execute(_insert(db, OpportunityTagAssociation).values(rows).on_conflict_do_nothing())


async def remove_tag_associations_except(db: AsyncSession, opportunity_id: uuid.UUID, keep: list[str]) -> None:
    await db.execute(
        delete(OpportunityTagAssociation).where(
            OpportunityTagAssociation.opportunity_id == opportunity_id,
            OpportunityTagAssociation.tag_id.not_in(keep),
        )
    )


async def list_tags_for(db: AsyncSession, opportunity_id: uuid.UUID) -> list[OpportunityTagRead]:
    result = await db.execute(
        select(OpportunityTag)
        .join(OpportunityTagAssociation, OpportunityTagAssociation.tag_id == OpportunityTag.id)
        .where(OpportunityTagAssociation.opportunity_id == opportunity_id)
        .order_by(OpportunityTag.name.asc())
    )
    return [OpportunityTagRead.model_validate(tag) for tag in result.scalars().all()]


# --- Bookmarks ---


async def toggle_bookmark(
    db: AsyncSession, opportunity_id: uuid.UUID, member_id: uuid.UUID,
) -> Literal["created", "deleted"]:
    """Remove the member's bookmark if there is one, otherwise add it."""
    deleted = await db.execute(
        delete(OpportunityBookmark).where(
            OpportunityBookmark.opportunity_id == opportunity_id,
            OpportunityBookmark.student_id == member_id,
        )
    )
    if deleted.rowcount:
        return "deleted"

    # A concurrent toggle may have inserted the same pair first.
    await db.execute(
        _insert(db, OpportunityBookmark)
        .values(opportunity_id=opportunity_id, student_id=member_id, created_at=utcnow())
        .on_conflict_do_nothing()
    )
    return "created"


# --- Reports ---


async def record_report(
    db: AsyncSession, opportunity_id: uuid.UUID, reporter_id: uuid.UUID, reason: str,
) -> None:
    """One report per reporter; repeats are ignored."""
    await db.execute(
        _insert(db, OpportunityReport)
        .values(opportunity_id=opportunity_id, reporter_id=reporter_id, reason=reason, created_at=utcnow())
        .on_conflict_do_nothing()
    )


async def count_reports(db: AsyncSession, opportunity_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(OpportunityReport).where(
            OpportunityReport.opportunity_id == opportunity_id,
        )
    )
    return result.scalar() or 0


# --- Query surface ---


def _bookmark_count(opportunity_id_column):
    return (
        select(func.count())
        .select_from(OpportunityBookmark)
        .where(OpportunityBookmark.opportunity_id == opportunity_id_column)
        .scalar_subquery()
    )


def _bookmarked_by(opportunity_id_column, member_id: uuid.UUID):
    return exists(
        select(OpportunityBookmark.opportunity_id).where(
            OpportunityBookmark.opportunity_id == opportunity_id_column,
            OpportunityBookmark.student_id == member_id,
        )
    )


async def get_opportunity(db: AsyncSession, opportunity_id: uuid.UUID) -> OpportunitySummary | None:
    result = await db.execute(
        select(
            Company.name.label("company_name"),
            Opportunity.description,
            Opportunity.title,
        )
        .select_from(Opportunity)
        .outerjoin(Company, Company.id == Opportunity.company_id)
        .where(Opportunity.id == opportunity_id)
    )
    row = result.first()
    return OpportunitySummary.model_validate(row._mapping) if row else None


async def get_opportunity_details(
    db: AsyncSession, opportunity_id: uuid.UUID, member_id: uuid.UUID,
) -> OpportunityDetails | None:
    """Opportunity page data, from the point of view of ``member_id``."""
    result = await db.execute(
        select(
            Opportunity.id,
            Opportunity.title,
            Opportunity.description,
            Opportunity.link,
            Opportunity.created_at,
            Opportunity.expires_at,
            Company.id.label("company_id"),
            Company.image_url.label("company_logo"),
            Company.name.label("company_name"),
            Student.first_name.label("poster_first_name"),
            Student.last_name.label("poster_last_name"),
            Student.profile_picture.label("poster_profile_picture"),
            SlackMessage.channel_id.label("slack_message_channel_id"),
            SlackMessage.id.label("slack_message_id"),
            SlackMessage.created_at.label("slack_message_posted_at"),
            SlackMessage.text.label("slack_message_text"),
            _bookmark_count(Opportunity.id).label("bookmarks"),
            _bookmarked_by(Opportunity.id, member_id).label("bookmarked"),
            func.coalesce(write_permission_clause(member_id), False).label("has_write_permission"),
        )
        .select_from(Opportunity)
        .outerjoin(Company, Company.id == Opportunity.company_id)
        .outerjoin(Student, Student.id == Opportunity.posted_by)
        .outerjoin(
            SlackMessage,
            (SlackMessage.channel_id == Opportunity.slack_channel_id)
            & (SlackMessage.id == Opportunity.slack_message_id),
        )
        .where(Opportunity.id == opportunity_id)
    )
    row = result.first()
    if not row:
        return None

    tags = await list_tags_for(db, opportunity_id)
    return OpportunityDetails(**row._mapping, tags=tags)


async def list_opportunities(
    db: AsyncSession,
    member_id: uuid.UUID,
    tag_id: str | None = None,
    include_expired: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[OpportunityListItem]:
    """Board listing, newest first."""
    query = (
        select(
            Opportunity,
            _bookmark_count(Opportunity.id).label("bookmarks"),
            _bookmarked_by(Opportunity.id, member_id).label("bookmarked"),
        )
        .options(selectinload(Opportunity.company), selectinload(Opportunity.tags))
    )
    if not include_expired:
        query = query.where(Opportunity.expires_at > utcnow())
    if tag_id:
        query = query.where(
            exists(
                select(OpportunityTagAssociation.opportunity_id).where(
                    OpportunityTagAssociation.opportunity_id == Opportunity.id,
                    OpportunityTagAssociation.tag_id == tag_id,
                )
            )
        )

    query = query.order_by(Opportunity.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)

    items = []
    for opportunity, bookmarks, bookmarked in result.all():
        company = opportunity.company
        items.append(
            OpportunityListItem(
                id=opportunity.id,
                title=opportunity.title,
                description=opportunity.description,
                link=opportunity.link,
                company_id=opportunity.company_id,
                company_name=company.name if company else None,
                company_logo=company.image_url if company else None,
                created_at=opportunity.created_at,
                expires_at=opportunity.expires_at,
                bookmarks=bookmarks,
                bookmarked=bool(bookmarked),
                tags=[OpportunityTagRead.model_validate(tag) for tag in opportunity.tags],
            )
        )
    return items
