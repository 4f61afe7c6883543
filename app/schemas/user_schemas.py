from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.role import Role
from app.schemas.common_schemas import EMAIL_PATTERN, TenantBrief


class UserCreate(BaseModel):
    """
    Register a user.

    tenant_id is honored for SUPER_ADMIN only; other admins always create
    users in their own tenant.
    """

    name: str = Field(..., min_length=2, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    role: Role = Field(default=Role.STAFF)
    tenant_id: Optional[int] = Field(None, gt=0)


class UserUpdate(BaseModel):
    """Partial update; only provided fields change"""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    role: Optional[Role] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)


class UserResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    tenant_id: int
    name: str
    email: str
    role: Role
    created_at: datetime
    tenant: Optional[TenantBrief] = None
