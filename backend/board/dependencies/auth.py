"""Member identity dependencies for FastAPI routes.

Sessions are handled upstream; requests reach this service with the
authenticated member's id in the ``X-Member-Id`` header.
"""

from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from board.models.base import get_db
from board.services.opportunity_store import is_active_admin


async def get_member_id(x_member_id: str | None = Header(None)) -> UUID:
    """Return the requesting member's id or raise 401."""
    if not x_member_id:
        raise HTTPException(status_code=401, detail="Login required")
    try:
        return UUID(x_member_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid member id")


async def require_admin(
    member_id: UUID = Depends(get_member_id),
    db: AsyncSession = Depends(get_db),
) -> UUID:
    """Return the member's id if they are an active admin, or raise 403."""
    if not await is_active_admin(db, member_id):
        raise HTTPException(status_code=403, detail="Admin access required")
    return member_id
