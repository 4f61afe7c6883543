"""Repository for Tenant model operations."""

from typing import Optional
from sqlalchemy.orm import Session

from app.models.tenant import Tenant
from app.models.user import User
from app.models.ledger_entry import LedgerEntry


class TenantRepository:
    """Repository for Tenant model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, tenant_id: int) -> Tenant | None:
        """
        Get tenant by ID.

        Args:
            tenant_id: Tenant ID

        Returns:
            Tenant object or None if not found
        """
        return self.db.query(Tenant).filter(Tenant.id == tenant_id).first()

    def get_by_slug(self, slug: str) -> Tenant | None:
        return self.db.query(Tenant).filter(Tenant.slug == slug).first()

    def get_all(self) -> list[Tenant]:
        """All tenants ordered by id"""
        return self.db.query(Tenant).order_by(Tenant.id).all()

    def get_with_filters(
        self,
        search: Optional[str] = None,
        is_center: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Tenant], int]:
        """
        Get tenants ordered by name.

        Args:
            search: Case-insensitive substring of the name
            is_center: Filter on the headquarters flag
            limit: Page size
            offset: Pagination offset

        Returns:
            Tuple of (tenants, total count)
        """
        query = self.db.query(Tenant)
        if search:
            query = query.filter(Tenant.name.ilike(f"%{search}%"))
        if is_center is not None:
            query = query.filter(Tenant.is_center == is_center)

        total = query.count()
        tenants = query.order_by(Tenant.name, Tenant.id).limit(limit).offset(offset).all()
        return tenants, total

    def count(self) -> int:
        return self.db.query(Tenant).count()

    def count_users(self, tenant_id: int) -> int:
        return self.db.query(User).filter(User.tenant_id == tenant_id).count()

    def count_entries(self, tenant_id: int) -> int:
        """Ledger entries owned by the tenant, archived ones included"""
        return self.db.query(LedgerEntry).filter(LedgerEntry.tenant_id == tenant_id).count()

    def create(self, tenant: Tenant) -> Tenant:
        """
        Create a new tenant.

        Args:
            tenant: Tenant object to create

        Returns:
            Created Tenant object with ID populated
        """
        self.db.add(tenant)
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def update(self, tenant: Tenant) -> Tenant:
        """
        Update an existing tenant.

        Args:
            tenant: Tenant object with updated fields

        Returns:
            Updated Tenant object
        """
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def delete(self, tenant: Tenant) -> None:
        """
        Delete a tenant.

        Callers must first make sure no users or ledger entries reference it.

        Args:
            tenant: Tenant object to delete
        """
        self.db.delete(tenant)
        self.db.commit()
