from pydantic import BaseModel, Field

from app.schemas.common_schemas import EMAIL_PATTERN
from app.schemas.user_schemas import UserResponse


class LoginRequest(BaseModel):
    """Credentials for POST /api/auth/login"""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
