"""Opportunity model: core board table, plus its join tables."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import relationship

from board.models.base import Base, CreatedAtMixin, UUIDMixin


class Opportunity(UUIDMixin, CreatedAtMixin, Base):
    __tablename__ = "opportunities"

    link = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)

    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="SET NULL"), index=True)
    posted_by = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="SET NULL"), index=True)

    # Lifecycle
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    last_expiration_check = Column(DateTime(timezone=True))
    refined_at = Column(DateTime(timezone=True))  # set once, on first successful refinement

    # Origin (when created from a Slack message)
    slack_channel_id = Column(String(50))
    slack_message_id = Column(String(50))

    # Relationships
    company = relationship("Company")
    tags = relationship("OpportunityTag", secondary="opportunity_tag_associations", order_by="OpportunityTag.name")

    __table_args__ = (
        UniqueConstraint("slack_channel_id", "slack_message_id", name="uq_opportunities_slack_message"),
        Index("idx_opportunities_expiration_check", "expires_at", "last_expiration_check"),
    )


# One opportunity per link, regardless of case.
Index("uq_opportunities_link_lower", func.lower(Opportunity.link), unique=True)


class OpportunityTagAssociation(Base):
    __tablename__ = "opportunity_tag_associations"

    opportunity_id = Column(
        Uuid(as_uuid=True), ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True,
    )
    tag_id = Column(String(50), ForeignKey("opportunity_tags.id", ondelete="CASCADE"), primary_key=True)


class OpportunityBookmark(CreatedAtMixin, Base):
    __tablename__ = "opportunity_bookmarks"

    opportunity_id = Column(
        Uuid(as_uuid=True), ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True,
    )
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)


class OpportunityReport(CreatedAtMixin, Base):
    __tablename__ = "opportunity_reports"

    opportunity_id = Column(
        Uuid(as_uuid=True), ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True,
    )
    reporter_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)
    reason = Column(Text, nullable=False)
