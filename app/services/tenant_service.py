import logging
from typing import Optional
from sqlalchemy.orm import Session

from app.config import settings
from app.core import access_policy
from app.core.access_policy import Action
from app.core.clock import Clock
from app.core.exceptions import ConflictException, InvalidStateException, NotFoundException
from app.models.identity import Identity
from app.models.role import Role
from app.models.tenant import Tenant
from app.models.user import User
from app.repositories.tenant_repository import TenantRepository
from app.repositories.user_repository import UserRepository
from app.schemas.tenant_schemas import (
    TenantCreate,
    TenantDetailResponse,
    TenantResponse,
    TenantUpdate,
)
from app.services.attachment_service import LOGO_MIME_TYPES, validate_upload
from app.storage.blob_store import BlobStore, generate_blob_key
from app.utils.pagination import PageRequest

logger = logging.getLogger(__name__)


class TenantService:
    """Service layer for tenant management business logic"""

    def __init__(self, db: Session, clock: Clock, blob_store: BlobStore):
        self.db = db
        self.clock = clock
        self.blob_store = blob_store
        self.tenant_repo = TenantRepository(db)
        self.user_repo = UserRepository(db)

    def _visible_tenant(self, identity: Identity, tenant_id: int) -> Tenant:
        """Tenant by id; foreign tenants look exactly like missing ones"""
        if not access_policy.can_access_tenant(identity, tenant_id):
            raise NotFoundException("Tenant")
        tenant = self.tenant_repo.get_by_id(tenant_id)
        if not tenant:
            raise NotFoundException("Tenant")
        return tenant

    def _ensure_slug_free(self, slug: str, current_id: Optional[int] = None) -> None:
        existing = self.tenant_repo.get_by_slug(slug)
        if existing and existing.id != current_id:
            raise ConflictException("Tenant slug already exists")

    def to_response(self, tenant: Tenant) -> TenantResponse:
        response = TenantResponse.model_validate(tenant)
        if tenant.logo:
            response.logo_url = self.blob_store.presign(tenant.logo)
        return response

    def list_tenants(
        self,
        identity: Identity,
        page: PageRequest,
        search: Optional[str] = None,
        is_center: Optional[bool] = None,
    ) -> tuple[list[Tenant], int]:
        """
        SUPER_ADMIN lists every tenant (ordered by name); everyone else sees
        only their own tenant.
        """
        if access_policy.is_global_admin(identity):
            return self.tenant_repo.get_with_filters(
                search=search, is_center=is_center, limit=page.limit, offset=page.offset
            )
        own = self.tenant_repo.get_by_id(identity.tenant_id)
        return ([own], 1) if own else ([], 0)

    def get_tenant(self, identity: Identity, tenant_id: int) -> TenantDetailResponse:
        tenant = self._visible_tenant(identity, tenant_id)
        return TenantDetailResponse(
            **self.to_response(tenant).model_dump(),
            user_count=self.tenant_repo.count_users(tenant.id),
        )

    def list_tenant_users(
        self,
        identity: Identity,
        tenant_id: int,
        page: PageRequest,
        search: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> tuple[list[User], int]:
        tenant = self._visible_tenant(identity, tenant_id)
        return self.user_repo.get_with_filters(
            tenant_id=tenant.id, search=search, role=role, limit=page.limit, offset=page.offset
        )

    def create_tenant(self, identity: Identity, data: TenantCreate) -> Tenant:
        """
        Raises:
            ForbiddenException: If the identity is not SUPER_ADMIN
            ConflictException: If the slug is taken
        """
        access_policy.require(identity, Action.MANAGE_TENANTS)
        self._ensure_slug_free(data.slug)

        tenant = self.tenant_repo.create(Tenant(**data.model_dump()))
        logger.info("Tenant %s (%s) created by user %s", tenant.id, tenant.slug, identity.user_id)
        return tenant

    def update_tenant(self, identity: Identity, tenant_id: int, data: TenantUpdate) -> Tenant:
        access_policy.require(identity, Action.MANAGE_TENANTS)
        tenant = self._visible_tenant(identity, tenant_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("slug") and changes["slug"] != tenant.slug:
            self._ensure_slug_free(changes["slug"], current_id=tenant.id)
        for field, value in changes.items():
            if value is None and field in ("name", "slug", "is_center"):
                continue
            setattr(tenant, field, value)

        tenant = self.tenant_repo.update(tenant)
        logger.info("Tenant %s updated by user %s", tenant.id, identity.user_id)
        return tenant

    def delete_tenant(self, identity: Identity, tenant_id: int) -> None:
        """
        Raises:
            ForbiddenException: If the identity is not SUPER_ADMIN
            InvalidStateException: If the tenant is the headquarters or still
                owns users or ledger entries
        """
        access_policy.require(identity, Action.MANAGE_TENANTS)
        tenant = self._visible_tenant(identity, tenant_id)

        if tenant.is_center:
            raise InvalidStateException("Cannot delete the headquarters tenant")
        if self.tenant_repo.count_users(tenant.id) > 0:
            raise InvalidStateException(
                "Cannot delete a tenant that still has users. Please remove all users first."
            )
        if self.tenant_repo.count_entries(tenant.id) > 0:
            raise InvalidStateException("Cannot delete a tenant that still has ledger entries")

        if tenant.logo:
            self.blob_store.delete(tenant.logo)
        self.tenant_repo.delete(tenant)
        logger.info("Tenant %s (%s) deleted by user %s", tenant_id, tenant.slug, identity.user_id)

    def upload_logo(
        self,
        identity: Identity,
        tenant_id: int,
        filename: str,
        content_type: str | None,
        data: bytes,
    ) -> Tenant:
        """Replace the tenant logo; the previous blob is removed first"""
        access_policy.require(identity, Action.MANAGE_TENANTS)
        tenant = self._visible_tenant(identity, tenant_id)
        validate_upload(content_type, len(data), LOGO_MIME_TYPES, settings.MAX_LOGO_BYTES)

        if tenant.logo:
            self.blob_store.delete(tenant.logo)
            tenant.logo = None

        key = generate_blob_key(tenant.slug, filename, self.clock.now())
        self.blob_store.put(key, data, content_type)
        tenant.logo = key
        try:
            tenant = self.tenant_repo.update(tenant)
        except Exception:
            self.db.rollback()
            logger.warning("Orphaned blob %s: logo update failed for tenant %s", key, tenant_id)
            raise
        logger.info("Logo of tenant %s replaced by user %s", tenant.id, identity.user_id)
        return tenant
