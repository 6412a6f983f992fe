"""Pydantic schemas for Opportunity model."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from board.schemas.tag import OpportunityTagRead

_http_url = TypeAdapter(AnyHttpUrl)


# --- Inputs ---


class AddOpportunityRequest(BaseModel):
    """A link submitted from the board."""

    model_config = ConfigDict(str_strip_whitespace=True)

    link: str = Field(min_length=1)

    @field_validator("link")
    @classmethod
    def validate_link(cls, value: str) -> str:
        if not value.lower().startswith("http"):
            raise ValueError('URL must start with "http".')
        # Validate, but keep the link exactly as submitted.
        _http_url.validate_python(value)
        return value


class AddOpportunityInput(AddOpportunityRequest):
    """A submitted link, and the member who posted it."""

    posted_by: UUID


class EditOpportunityInput(BaseModel):
    """Fields a poster (or admin) can change by hand."""

    model_config = ConfigDict(str_strip_whitespace=True)

    company_id: UUID | None = None
    company_name: str | None = None
    description: str = Field(min_length=1, max_length=500)
    expires_at: date
    tags: list[str] = Field(min_length=1)
    title: str = Field(min_length=1)

    @field_validator("company_id", "company_name", mode="before")
    @classmethod
    def empty_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value):
        """Tags arrive from forms as a comma-separated id list."""
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value


class RefineOpportunityInput(BaseModel):
    """Webpage content to extract opportunity details from."""

    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=10_000)
    opportunity_id: UUID


class ManualRefineInput(BaseModel):
    """Content pasted by a member when the page could not be scraped."""

    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=10_000)


class ReportOpportunityInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(min_length=1, max_length=1000)


class RefineOpportunityResponse(BaseModel):
    """Shape the AI must answer with. Any field may be null."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    company: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    expires_at: date | None = Field(default=None, alias="expiresAt")
    tags: list[str] | None = Field(default=None, min_length=1, max_length=5)
    title: str | None = Field(default=None, min_length=1, max_length=100)

    @field_validator("tags")
    @classmethod
    def tags_not_blank(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and any(not tag.strip() for tag in value):
            raise ValueError("Tags must not be blank.")
        return value


# --- Outputs ---


class OpportunitySummary(BaseModel):
    """Minimal opportunity info (used for share previews and notifications)."""

    model_config = ConfigDict(from_attributes=True)

    company_name: str | None = None
    description: str
    title: str


class OpportunityListItem(BaseModel):
    """Board listing row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    link: str
    company_id: UUID | None = None
    company_name: str | None = None
    company_logo: str | None = None
    created_at: datetime
    expires_at: datetime
    bookmarks: int = 0
    bookmarked: bool = False
    tags: list[OpportunityTagRead] = []


class OpportunityDetails(BaseModel):
    """Everything the opportunity page needs, for a given viewer."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    link: str
    created_at: datetime
    expires_at: datetime

    company_id: UUID | None = None
    company_logo: str | None = None
    company_name: str | None = None

    poster_first_name: str | None = None
    poster_last_name: str | None = None
    poster_profile_picture: str | None = None

    slack_message_channel_id: str | None = None
    slack_message_id: str | None = None
    slack_message_posted_at: datetime | None = None
    slack_message_text: str | None = None

    bookmarks: int = 0
    bookmarked: bool = False
    has_write_permission: bool = False
    tags: list[OpportunityTagRead] = []


class AddOpportunityResponse(BaseModel):
    id: UUID


class ReportOpportunityResponse(BaseModel):
    removed: bool


class BookmarkResponse(BaseModel):
    bookmarked: bool
