"""Opportunity tag model: the closed catalog of board labels."""

from sqlalchemy import Column, Index, String, func

from board.models.base import Base, CreatedAtMixin


class OpportunityTag(CreatedAtMixin, Base):
    __tablename__ = "opportunity_tags"

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False)  # one of ACCENT_COLORS


Index("uq_opportunity_tags_name_lower", func.lower(OpportunityTag.name), unique=True)
