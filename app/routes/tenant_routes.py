from typing import Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_blob_store, get_clock, get_identity
from app.core.clock import Clock
from app.models.identity import Identity
from app.models.role import Role
from app.schemas.common_schemas import ApiResponse
from app.schemas.tenant_schemas import (
    TenantCreate,
    TenantDetailResponse,
    TenantResponse,
    TenantUpdate,
)
from app.schemas.user_schemas import UserResponse
from app.services.tenant_service import TenantService
from app.storage.blob_store import BlobStore
from app.utils.pagination import build_meta, parse_pagination

router = APIRouter()


def get_tenant_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    blob_store: BlobStore = Depends(get_blob_store),
) -> TenantService:
    return TenantService(db, clock, blob_store)


@router.get("", response_model=ApiResponse[list[TenantResponse]])
def list_tenants(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None, description="Name (partial match)"),
    is_center: Optional[bool] = Query(None),
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    """
    List tenants.

    - SUPER_ADMIN sees every tenant, ordered by name
    - Everyone else sees only their own tenant
    """
    page_request = parse_pagination(page, limit)
    tenants, total = service.list_tenants(identity, page_request, search=search, is_center=is_center)
    return ApiResponse(
        data=[service.to_response(tenant) for tenant in tenants],
        meta=build_meta(total, page_request),
    )


@router.post("", response_model=ApiResponse[TenantResponse], status_code=status.HTTP_201_CREATED)
def create_tenant(
    tenant_data: TenantCreate,
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    """
    Create a tenant.

    - **Requires SUPER_ADMIN**
    - 409 if the slug is already taken
    """
    tenant = service.create_tenant(identity, tenant_data)
    return ApiResponse(data=service.to_response(tenant), message="Tenant created successfully")


@router.get("/{tenant_id}", response_model=ApiResponse[TenantDetailResponse])
def get_tenant(
    tenant_id: int,
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    """Returns 404 for a tenant the caller cannot access"""
    return ApiResponse(data=service.get_tenant(identity, tenant_id))


@router.get("/{tenant_id}/users", response_model=ApiResponse[list[UserResponse]])
def list_tenant_users(
    tenant_id: int,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None),
    role: Optional[Role] = Query(None),
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    page_request = parse_pagination(page, limit)
    users, total = service.list_tenant_users(identity, tenant_id, page_request, search=search, role=role)
    return ApiResponse(
        data=[UserResponse.model_validate(user) for user in users],
        meta=build_meta(total, page_request),
    )


@router.put("/{tenant_id}", response_model=ApiResponse[TenantResponse])
def update_tenant(
    tenant_id: int,
    tenant_data: TenantUpdate,
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    """
    Update tenant details.

    - **Requires SUPER_ADMIN**
    - Only provided fields are updated
    """
    tenant = service.update_tenant(identity, tenant_id, tenant_data)
    return ApiResponse(data=service.to_response(tenant), message="Tenant updated successfully")


@router.delete("/{tenant_id}", response_model=ApiResponse[None])
def delete_tenant(
    tenant_id: int,
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    """
    Delete a tenant.

    - **Requires SUPER_ADMIN**
    - The headquarters tenant and tenants with users or entries cannot be deleted
    """
    service.delete_tenant(identity, tenant_id)
    return ApiResponse(message="Tenant deleted successfully")


@router.post("/{tenant_id}/logo", response_model=ApiResponse[TenantResponse])
async def upload_logo(
    tenant_id: int,
    file: UploadFile = File(...),
    identity: Identity = Depends(get_identity),
    service: TenantService = Depends(get_tenant_service),
):
    """
    Upload or replace the tenant logo.

    - **Requires SUPER_ADMIN**
    - JPEG, PNG or WebP, max 5MB
    """
    data = await file.read()
    tenant = service.upload_logo(identity, tenant_id, file.filename or "logo", file.content_type, data)
    return ApiResponse(data=service.to_response(tenant), message="Logo uploaded successfully")
