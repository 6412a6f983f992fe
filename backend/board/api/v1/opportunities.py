"""Opportunity board API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from board.dependencies.auth import get_member_id, require_admin
from board.models.base import get_db
from board.result import Result
from board.schemas.opportunity import (
    AddOpportunityInput,
    AddOpportunityRequest,
    AddOpportunityResponse,
    BookmarkResponse,
    EditOpportunityInput,
    ManualRefineInput,
    OpportunityDetails,
    OpportunityListItem,
    RefineOpportunityInput,
    ReportOpportunityInput,
    ReportOpportunityResponse,
)
from board.schemas.tag import CreateOpportunityTagInput, OpportunityTagRead
from board.services import opportunity_store as store
from board.services import tag_catalog
from board.services.enrichment import OpportunityPipeline, get_pipeline
from board.services.jobs import CHECK_EXPIRED, JobQueue, get_job_queue
from board.services.moderation import ModerationEngine, get_moderation_engine

router = APIRouter(prefix="/opportunities", tags=["opportunities"])


def _unwrap(result: Result):
    """Return the result's data, or raise it as an HTTP error."""
    if not result.ok:
        raise HTTPException(status_code=result.code or 500, detail=result.error)
    return result.data


async def _require_write_permission(db: AsyncSession, opportunity_id: UUID, member_id: UUID) -> None:
    if not await store.get_by_id(db, opportunity_id):
        raise HTTPException(status_code=404, detail="Opportunity not found")
    if not await store.has_write_permission(db, opportunity_id, member_id):
        raise HTTPException(status_code=403, detail="You do not have permission to edit this opportunity.")


@router.get("", response_model=list[OpportunityListItem])
async def list_opportunities(
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    tag: str | None = Query(None, description="Filter by tag id"),
    include_expired: bool = Query(False, description="Include expired opportunities"),
):
    """List opportunities on the board, newest first."""
    return await store.list_opportunities(
        db, member_id, tag_id=tag, include_expired=include_expired, limit=limit, offset=skip,
    )


@router.post("", response_model=AddOpportunityResponse, status_code=status.HTTP_201_CREATED)
async def add_opportunity(
    body: AddOpportunityRequest,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    pipeline: OpportunityPipeline = Depends(get_pipeline),
):
    """Add an opportunity by link. Details are filled in from the page when possible."""
    data = AddOpportunityInput(link=body.link, posted_by=member_id)
    return _unwrap(await pipeline.add_opportunity(db, data))


@router.get("/tags", response_model=list[OpportunityTagRead])
async def list_tags(db: AsyncSession = Depends(get_db)):
    return await tag_catalog.list_tags(db)


@router.post("/tags", status_code=status.HTTP_201_CREATED)
async def create_tag(
    body: CreateOpportunityTagInput,
    db: AsyncSession = Depends(get_db),
    admin_id: UUID = Depends(require_admin),
):
    """Add a tag to the catalog (admins only)."""
    return _unwrap(await tag_catalog.create_tag(db, body))


@router.get("/{opportunity_id}", response_model=OpportunityDetails)
async def get_opportunity(
    opportunity_id: UUID,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
):
    details = await store.get_opportunity_details(db, opportunity_id, member_id)
    if not details:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return details


@router.patch("/{opportunity_id}")
async def edit_opportunity(
    opportunity_id: UUID,
    body: EditOpportunityInput,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    pipeline: OpportunityPipeline = Depends(get_pipeline),
):
    """Edit an opportunity (poster or admin)."""
    await _require_write_permission(db, opportunity_id, member_id)
    return _unwrap(await pipeline.edit_opportunity(db, opportunity_id, body))


@router.delete("/{opportunity_id}")
async def delete_opportunity(
    opportunity_id: UUID,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    moderation: ModerationEngine = Depends(get_moderation_engine),
):
    return _unwrap(await moderation.delete_opportunity(db, opportunity_id, member_id=member_id))


@router.post("/{opportunity_id}/bookmark", response_model=BookmarkResponse)
async def bookmark_opportunity(
    opportunity_id: UUID,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    pipeline: OpportunityPipeline = Depends(get_pipeline),
):
    """Bookmark the opportunity, or remove the bookmark if there is one."""
    return _unwrap(await pipeline.bookmark_opportunity(db, opportunity_id, member_id))


@router.post("/{opportunity_id}/report", response_model=ReportOpportunityResponse)
async def report_opportunity(
    opportunity_id: UUID,
    body: ReportOpportunityInput,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    moderation: ModerationEngine = Depends(get_moderation_engine),
):
    return _unwrap(await moderation.report_opportunity(db, opportunity_id, member_id, body.reason))


@router.post("/{opportunity_id}/refine")
async def refine_opportunity(
    opportunity_id: UUID,
    body: ManualRefineInput,
    db: AsyncSession = Depends(get_db),
    member_id: UUID = Depends(get_member_id),
    pipeline: OpportunityPipeline = Depends(get_pipeline),
):
    """Refine an opportunity from page content pasted by the member."""
    await _require_write_permission(db, opportunity_id, member_id)
    data = RefineOpportunityInput(content=body.content, opportunity_id=opportunity_id)
    return _unwrap(await pipeline.refine_opportunity(db, data))


@router.post("/{opportunity_id}/check-expired", status_code=status.HTTP_202_ACCEPTED)
async def check_expired(
    opportunity_id: UUID,
    admin_id: UUID = Depends(require_admin),
    jobs: JobQueue = Depends(get_job_queue),
):
    """Queue a forced expiration check (admins only)."""
    jobs.enqueue(CHECK_EXPIRED, {"opportunity_id": str(opportunity_id), "force": True})
    return {"queued": True}
