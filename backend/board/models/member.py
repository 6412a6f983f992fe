"""Member models: students (posters, bookmarkers, reporters) and admins."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from board.models.base import Base, CreatedAtMixin, UUIDMixin


class Student(UUIDMixin, CreatedAtMixin, Base):
    __tablename__ = "students"

    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    profile_picture = Column(String(500))
    slack_id = Column(String(50), index=True)


class Admin(CreatedAtMixin, Base):
    __tablename__ = "admins"

    member_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)
    deleted_at = Column(DateTime(timezone=True))  # NULL while the admin is active
