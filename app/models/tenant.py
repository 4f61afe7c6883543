"""Tenant model for multi-tenant isolation."""

from sqlalchemy import String, Integer, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.ledger_entry import LedgerEntry


class Tenant(Base, TimestampMixin):
    """
    Organization owning its own users and ledger entries.

    Exactly one tenant is expected to carry is_center=True (the headquarters).
    It cannot be deleted, and neither can a tenant that still has users.
    """

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    is_center: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Contact fields
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    website: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logo: Mapped[str | None] = mapped_column(Text, nullable=True)  # blob key

    # Relationships
    users: Mapped[list["User"]] = relationship("User", back_populates="tenant")
    entries: Mapped[list["LedgerEntry"]] = relationship("LedgerEntry", back_populates="tenant")

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug='{self.slug}')>"
