from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from app.models.role import Role
from app.models.user import User


class UserRepository:
    """Repository for User model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int, tenant_id: Optional[int] = None) -> User | None:
        """
        Get user by ID.

        Args:
            user_id: User ID
            tenant_id: Restrict to this tenant, None for any tenant

        Returns:
            User or None if not found or outside the tenant
        """
        query = self.db.query(User).options(joinedload(User.tenant)).filter(User.id == user_id)
        if tenant_id is not None:
            query = query.filter(User.tenant_id == tenant_id)
        return query.first()

    def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)"""
        return (
            self.db.query(User)
            .options(joinedload(User.tenant))
            .filter(User.email == email.strip().lower())
            .first()
        )

    def get_with_filters(
        self,
        tenant_id: Optional[int],
        search: Optional[str] = None,
        role: Optional[Role] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[User], int]:
        """
        Get users, newest first.

        Args:
            tenant_id: Effective tenant filter (None = all tenants)
            search: Case-insensitive substring of name or email
            role: Filter by role
            limit: Page size
            offset: Pagination offset

        Returns:
            Tuple of (users, total count)
        """
        query = self.db.query(User)
        if tenant_id is not None:
            query = query.filter(User.tenant_id == tenant_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if role is not None:
            query = query.filter(User.role == role)

        total = query.count()
        users = (
            query.options(joinedload(User.tenant))
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return users, total

    def count(self, tenant_id: Optional[int]) -> int:
        query = self.db.query(User)
        if tenant_id is not None:
            query = query.filter(User.tenant_id == tenant_id)
        return query.count()

    def create(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User) -> User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User) -> None:
        self.db.delete(user)
        self.db.commit()
