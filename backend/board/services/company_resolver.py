"""Find-or-create a company by name.

Runs inside the caller's transaction; never commits.
"""

import logging
import uuid
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from board.models.company import Company

logger = logging.getLogger(__name__)


class CompanyResolver(Protocol):
    async def resolve_or_create(self, db: AsyncSession, name: str) -> uuid.UUID: ...


class NameCompanyResolver:
    """Matches companies on their name, case-insensitively."""

    async def resolve_or_create(self, db: AsyncSession, name: str) -> uuid.UUID:
        name = name.strip()
        result = await db.execute(
            select(Company.id)
            .where(func.lower(Company.name) == name.lower())
            .order_by(Company.created_at)
            .limit(1)
        )
        company_id = result.scalar_one_or_none()
        if company_id:
            return company_id

        company = Company(id=uuid.uuid4(), name=name)
        db.add(company)
        await db.flush()
        logger.info(f"Created company {name!r}")
        return company.id
