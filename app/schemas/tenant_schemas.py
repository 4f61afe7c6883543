from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class TenantCreate(BaseModel):
    """Create a tenant (SUPER_ADMIN only)"""

    name: str = Field(..., min_length=2, max_length=100)
    slug: str = Field(..., min_length=2, max_length=50, pattern=SLUG_PATTERN)
    is_center: bool = False
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=100)

    @field_validator("slug", mode="before")
    @classmethod
    def lowercase_slug(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class TenantUpdate(BaseModel):
    """Partial tenant update (SUPER_ADMIN only)"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    slug: Optional[str] = Field(None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    is_center: Optional[bool] = None
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=100)

    @field_validator("slug", mode="before")
    @classmethod
    def lowercase_slug(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class TenantResponse(BaseModel):
    """Tenant details; logo_url is a presigned download URL"""

    model_config = {"from_attributes": True}

    id: int
    name: str
    slug: str
    is_center: bool
    address: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    website: Optional[str]
    logo_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TenantDetailResponse(TenantResponse):
    user_count: int
