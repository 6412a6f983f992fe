"""Slack message model: messages ingested from the community workspace."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from board.models.base import Base, CreatedAtMixin


class SlackMessage(CreatedAtMixin, Base):
    __tablename__ = "slack_messages"

    channel_id = Column(String(50), primary_key=True)
    id = Column(String(50), primary_key=True)  # Slack message timestamp

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="SET NULL"), index=True)
    user_id = Column(String(50), nullable=False)  # Slack user who posted the message
    text = Column(Text)
    deleted_at = Column(DateTime(timezone=True))
