from typing import Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class PaginationMeta(BaseModel):
    """Pagination block attached to list responses"""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every JSON endpoint"""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    meta: Optional[PaginationMeta] = None


class ErrorResponse(BaseModel):
    """Failure envelope produced by the exception handlers"""

    success: bool = False
    error: str


class TenantBrief(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    slug: str


class UserBrief(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
