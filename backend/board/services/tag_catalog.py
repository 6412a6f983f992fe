"""Opportunity tag catalog.

Tags are a closed set curated by admins. Extracted tag names are matched
against the catalog; names that don't exist are dropped, never created.
"""

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from board.models.tag import OpportunityTag
from board.result import Result, fail, success
from board.schemas.tag import CreateOpportunityTagInput, OpportunityTagRead
from board.services.opportunity_store import utcnow

logger = logging.getLogger(__name__)


async def list_tags(db: AsyncSession) -> list[OpportunityTagRead]:
    """All catalog tags, sorted by name."""
    result = await db.execute(select(OpportunityTag).order_by(OpportunityTag.name.asc()))
    return [OpportunityTagRead.model_validate(tag) for tag in result.scalars().all()]


async def resolve_tag_ids(db: AsyncSession, names: Iterable[str]) -> list[str]:
    """Ids of the catalog tags whose names are in ``names``."""
    names = list(names)
    if not names:
        return []
    result = await db.execute(
        select(OpportunityTag.id).where(OpportunityTag.name.in_(names)).order_by(OpportunityTag.name)
    )
    return list(result.scalars().all())


async def create_tag(db: AsyncSession, data: CreateOpportunityTagInput) -> Result:
    """Add a tag to the catalog. Names are unique regardless of case."""
    existing = await db.execute(
        select(OpportunityTag.id).where(func.lower(OpportunityTag.name) == data.name.lower())
    )
    if existing.scalar_one_or_none():
        return fail(409, "A tag with that name already exists.")

    try:
        db.add(OpportunityTag(id=data.id, name=data.name, color=data.color, created_at=utcnow()))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return fail(409, "A tag with that name already exists.")

    logger.info(f"Created opportunity tag {data.name!r} ({data.color})")
    return success({"id": data.id})
