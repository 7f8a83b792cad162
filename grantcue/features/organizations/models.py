"""
Organization models.

Organizations are the tenant boundary: every role assignment, and therefore
every effective permission set, is scoped to exactly one organization.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Table, Column, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantcue.core.database.base import Base, TimestampMixin, generate_ulid


# Association table for many-to-many relationship between users and organizations
organization_members = Table(
    "organization_members",
    Base.metadata,
    Column("user_id", String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("organization_id", String(26), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime(timezone=True), nullable=False, default=datetime.now),
)


class Organization(Base, TimestampMixin):
    """
    Organization model representing a grant-seeking team.
    """
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    members: Mapped[list["User"]] = relationship(  # type: ignore
        "User",
        secondary=organization_members,
        back_populates="organizations",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"
