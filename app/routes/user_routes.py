from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_identity
from app.models.identity import Identity
from app.models.role import Role
from app.schemas.common_schemas import ApiResponse
from app.schemas.user_schemas import UserResponse, UserUpdate
from app.services.user_service import UserService
from app.utils.pagination import build_meta, parse_pagination

router = APIRouter()


@router.get("", response_model=ApiResponse[list[UserResponse]])
def list_users(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None, description="Name or email (partial match)"),
    role: Optional[Role] = Query(None),
    tenant_id: Optional[int] = Query(None, description="Honored for SUPER_ADMIN only"),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """
    List users.

    - Non SUPER_ADMIN callers only ever see their own tenant
    """
    page_request = parse_pagination(page, limit)
    users, total = UserService(db).list_users(
        identity, page_request, tenant_id=tenant_id, search=search, role=role
    )
    return ApiResponse(
        data=[UserResponse.model_validate(user) for user in users],
        meta=build_meta(total, page_request),
    )


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Returns 404 if the user doesn't exist or belongs to another tenant"""
    user = UserService(db).get_user(identity, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(
    user_id: int,
    user_data: UserUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """
    Update name, role or password.

    - **Requires ADMIN_LINI or SUPER_ADMIN**
    """
    user = UserService(db).update_user(identity, user_id, user_data)
    return ApiResponse(data=UserResponse.model_validate(user), message="User updated successfully")


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """
    Delete a user.

    - **Requires ADMIN_LINI or SUPER_ADMIN**
    - Cannot delete yourself or a user who authored ledger entries
    """
    UserService(db).delete_user(identity, user_id)
    return ApiResponse(message="User deleted successfully")
