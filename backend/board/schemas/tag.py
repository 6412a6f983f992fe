"""Pydantic schemas for OpportunityTag model."""

from typing import Final, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

AccentColor = Literal[
    "amber-100",
    "blue-100",
    "cyan-100",
    "green-100",
    "lime-100",
    "orange-100",
    "pink-100",
    "purple-100",
    "red-100",
]

ACCENT_COLORS: Final[tuple[str, ...]] = get_args(AccentColor)


class CreateOpportunityTagInput(BaseModel):
    """Input for creating a catalog tag."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    color: AccentColor


class OpportunityTagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str
