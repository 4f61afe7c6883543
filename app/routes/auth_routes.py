from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_identity
from app.models.identity import Identity
from app.schemas.auth_schemas import ChangePasswordRequest, LoginRequest, LoginResponse
from app.schemas.common_schemas import ApiResponse
from app.schemas.user_schemas import UserCreate, UserResponse
from app.services.auth_service import AuthService
from app.services.user_service import UserService

router = APIRouter()


@router.post("/login", response_model=ApiResponse[LoginResponse])
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchange email and password for a bearer token.

    - Unknown email and wrong password return the same 401
    """
    token, user = AuthService(db).login(credentials.email, credentials.password)
    return ApiResponse(
        data=LoginResponse(token=token, user=UserResponse.model_validate(user)),
        message="Login successful",
    )


@router.get("/me", response_model=ApiResponse[UserResponse])
def me(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Profile of the authenticated user"""
    user = AuthService(db).current_user(identity)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.post("/change-password", response_model=ApiResponse[None])
def change_password(
    request: ChangePasswordRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    AuthService(db).change_password(identity, request.current_password, request.new_password)
    return ApiResponse(message="Password changed successfully")


@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(
    user_data: UserCreate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """
    Register a new user.

    - **Requires ADMIN_LINI or SUPER_ADMIN**
    - ADMIN_LINI always registers into their own tenant
    - Only SUPER_ADMIN may create another SUPER_ADMIN
    """
    user = UserService(db).register_user(identity, user_data)
    return ApiResponse(data=UserResponse.model_validate(user), message="User registered successfully")
