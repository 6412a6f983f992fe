"""Pydantic schemas package."""

from board.schemas.tag import (
    ACCENT_COLORS,
    AccentColor,
    CreateOpportunityTagInput,
    OpportunityTagRead,
)
from board.schemas.opportunity import (
    AddOpportunityInput,
    AddOpportunityRequest,
    AddOpportunityResponse,
    BookmarkResponse,
    EditOpportunityInput,
    ManualRefineInput,
    OpportunityDetails,
    OpportunityListItem,
    OpportunitySummary,
    RefineOpportunityInput,
    RefineOpportunityResponse,
    ReportOpportunityInput,
    ReportOpportunityResponse,
)

__all__ = [
    # Tag
    "ACCENT_COLORS",
    "AccentColor",
    "CreateOpportunityTagInput",
    "OpportunityTagRead",
    # Opportunity
    "AddOpportunityInput",
    "AddOpportunityRequest",
    "AddOpportunityResponse",
    "BookmarkResponse",
    "EditOpportunityInput",
    "ManualRefineInput",
    "OpportunityDetails",
    "OpportunityListItem",
    "OpportunitySummary",
    "RefineOpportunityInput",
    "RefineOpportunityResponse",
    "ReportOpportunityInput",
    "ReportOpportunityResponse",
]
