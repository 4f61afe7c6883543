from datetime import datetime
from sqlalchemy import String, Integer, Text, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from app.core.clock import utcnow
from app.models.base import Base

if TYPE_CHECKING:
    from app.models.ledger_entry import LedgerEntry


class Attachment(Base):
    """
    Receipt file reference. The file itself lives in the blob store under blob_key.

    Archiving the parent entry leaves the blob in place.
    """

    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ledger_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    blob_key: Mapped[str] = mapped_column(Text, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    entry: Mapped["LedgerEntry"] = relationship("LedgerEntry", back_populates="attachments")
