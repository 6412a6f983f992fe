"""Opportunities board schema.

Creates:
- companies, students, admins, slack_messages: tables the board reads and joins
- opportunity_tags: the closed tag catalog
- opportunities: board entries, one per link (case-insensitive)
- opportunity_tag_associations, opportunity_bookmarks, opportunity_reports

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. companies
    op.create_table(
        "companies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("image_url", sa.String(500)),
        sa.Column("domain", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_companies_name_lower", "companies", [sa.text("lower(name)")])

    # 2. students
    op.create_table(
        "students",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("profile_picture", sa.String(500)),
        sa.Column("slack_id", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_students_email", "students", ["email"], unique=True)
    op.create_index("ix_students_slack_id", "students", ["slack_id"])

    # 3. admins
    op.create_table(
        "admins",
        sa.Column("member_id", UUID(as_uuid=True), sa.ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # 4. slack_messages
    op.create_table(
        "slack_messages",
        sa.Column("channel_id", sa.String(50), primary_key=True),
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("student_id", UUID(as_uuid=True), sa.ForeignKey("students.id", ondelete="SET NULL")),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column("text", sa.Text),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_slack_messages_student_id", "slack_messages", ["student_id"])

    # 5. opportunity_tags
    op.create_table(
        "opportunity_tags",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("uq_opportunity_tags_name_lower", "opportunity_tags", [sa.text("lower(name)")], unique=True)

    # 6. opportunities
    op.create_table(
        "opportunities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("link", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("company_id", UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="SET NULL")),
        sa.Column("posted_by", UUID(as_uuid=True), sa.ForeignKey("students.id", ondelete="SET NULL")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_expiration_check", sa.DateTime(timezone=True)),
        sa.Column("refined_at", sa.DateTime(timezone=True)),
        sa.Column("slack_channel_id", sa.String(50)),
        sa.Column("slack_message_id", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("slack_channel_id", "slack_message_id", name="uq_opportunities_slack_message"),
    )
    op.create_index("uq_opportunities_link_lower", "opportunities", [sa.text("lower(link)")], unique=True)
    op.create_index("ix_opportunities_company_id", "opportunities", ["company_id"])
    op.create_index("ix_opportunities_posted_by", "opportunities", ["posted_by"])
    op.create_index("ix_opportunities_expires_at", "opportunities", ["expires_at"])
    op.create_index("idx_opportunities_expiration_check", "opportunities", ["expires_at", "last_expiration_check"])

    # 7. opportunity_tag_associations
    op.create_table(
        "opportunity_tag_associations",
        sa.Column("opportunity_id", UUID(as_uuid=True), sa.ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.String(50), sa.ForeignKey("opportunity_tags.id", ondelete="CASCADE"), primary_key=True),
    )

    # 8. opportunity_bookmarks
    op.create_table(
        "opportunity_bookmarks",
        sa.Column("opportunity_id", UUID(as_uuid=True), sa.ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", UUID(as_uuid=True), sa.ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # 9. opportunity_reports
    op.create_table(
        "opportunity_reports",
        sa.Column("opportunity_id", UUID(as_uuid=True), sa.ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("reporter_id", UUID(as_uuid=True), sa.ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("opportunity_reports")
    op.drop_table("opportunity_bookmarks")
    op.drop_table("opportunity_tag_associations")
    op.drop_table("opportunities")
    op.drop_table("opportunity_tags")
    op.drop_table("slack_messages")
    op.drop_table("admins")
    op.drop_table("students")
    op.drop_table("companies")
