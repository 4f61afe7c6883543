from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from app.models.ledger_entry import EntryKind
from app.schemas.common_schemas import TenantBrief, UserBrief


class LineItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    quantity: Decimal = Field(default=Decimal("1"), gt=0, max_digits=10, decimal_places=2)
    unit_price: Decimal = Field(..., ge=0, max_digits=20, decimal_places=2)


class EntryCreate(BaseModel):
    """
    Schema for creating a ledger entry.

    With items, total_amount may be omitted (it is derived) but if given it
    must equal the sum of item subtotals. Without items it is required.
    tenant_id is honored for SUPER_ADMIN only.
    """

    kind: EntryKind
    description: str = Field(..., min_length=3, max_length=1000)
    total_amount: Optional[Decimal] = Field(None, ge=0, max_digits=20, decimal_places=2)
    transaction_at: Optional[datetime] = None
    tenant_id: Optional[int] = Field(None, gt=0)
    items: list[LineItemCreate] = Field(default_factory=list)


class EntryUpdate(BaseModel):
    """Partial update; items, when given, replace the existing items"""

    kind: Optional[EntryKind] = None
    description: Optional[str] = Field(None, min_length=3, max_length=1000)
    total_amount: Optional[Decimal] = Field(None, ge=0, max_digits=20, decimal_places=2)
    transaction_at: Optional[datetime] = None
    items: Optional[list[LineItemCreate]] = None


class LineItemResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    quantity: float
    unit_price: float
    subtotal: float


class AttachmentResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    filename: str
    mime_type: Optional[str]
    uploaded_at: datetime
    url: str


class EntryResponse(BaseModel):
    """Entry as shown in lists and feeds"""

    model_config = {"from_attributes": True}

    id: int
    kind: EntryKind
    description: str
    total_amount: float
    transaction_at: datetime
    created_at: datetime
    deleted_at: Optional[datetime] = None
    author: UserBrief
    tenant: TenantBrief
    attachment_url: Optional[str] = None


class EntryDetailResponse(EntryResponse):
    items: list[LineItemResponse]
    attachments: list[AttachmentResponse]
