"""Models package: import every model so relationships and foreign keys resolve."""

from board.models.base import Base
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

__all__ = [
    "Base",
    "Company",
    "Admin",
    "Student",
    "Opportunity",
    "OpportunityBookmark",
    "OpportunityReport",
    "OpportunityTagAssociation",
    "OpportunityTag",
    "SlackMessage",
]
