from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, ForeignKey, DateTime, Text, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from app.core.clock import utcnow
from app.models.base import Base

if TYPE_CHECKING:
    from app.models.tenant import Tenant
    from app.models.user import User
    from app.models.attachment import Attachment


class EntryKind(str, PyEnum):
    """Ledger entry kind"""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class LedgerEntry(Base):
    """
    One income or expense record, optionally itemized.

    deleted_at marks the entry as archived; archived entries are excluded
    from every aggregation and only SUPER_ADMIN can bring them back.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    kind: Mapped[EntryKind] = mapped_column(
        Enum(EntryKind, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    transaction_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="entries")
    author: Mapped["User"] = relationship("User", back_populates="entries")
    items: Mapped[list["LineItem"]] = relationship(
        "LineItem",
        back_populates="entry",
        cascade="all, delete-orphan",  # Items live and die with their entry
        order_by="LineItem.id",
    )
    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment",
        back_populates="entry",
        order_by="Attachment.id",
    )

    __table_args__ = (
        Index("ix_ledger_entries_tenant_transaction_at", "tenant_id", "transaction_at"),
    )

    @property
    def is_archived(self) -> bool:
        return self.deleted_at is not None


class LineItem(Base):
    """Line of an itemized entry; subtotal = quantity * unit_price."""

    __tablename__ = "line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ledger_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2), nullable=False, default=Decimal("1")
    )
    unit_price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)

    entry: Mapped["LedgerEntry"] = relationship("LedgerEntry", back_populates="items")
