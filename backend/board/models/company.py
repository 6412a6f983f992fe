"""Company model: employers referenced by opportunities."""

from sqlalchemy import Column, Index, String, func

from board.models.base import Base, CreatedAtMixin, UUIDMixin


class Company(UUIDMixin, CreatedAtMixin, Base):
    __tablename__ = "companies"

    name = Column(String(255), nullable=False)
    image_url = Column(String(500))
    domain = Column(String(255))


Index("idx_companies_name_lower", func.lower(Company.name))
