import logging
from typing import Optional
from sqlalchemy.orm import Session

from app.core import access_policy
from app.core.access_policy import Action
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from app.core.security import hash_password
from app.models.identity import Identity
from app.models.role import Role
from app.models.user import User
from app.repositories.ledger_repository import LedgerRepository
from app.repositories.tenant_repository import TenantRepository
from app.repositories.user_repository import UserRepository
from app.schemas.user_schemas import UserCreate, UserUpdate
from app.utils.pagination import PageRequest

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user management business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.ledger_repo = LedgerRepository(db)

    def _check_role_grant(self, identity: Identity, role: Role) -> None:
        if not access_policy.can_assign_role(identity, role):
            raise ForbiddenException(required_role=Role.SUPER_ADMIN.value)

    def _managed_user(self, identity: Identity, user_id: int) -> User:
        """
        User the identity may manage.

        Raises:
            ForbiddenException: If the identity is not a privileged role
            NotFoundException: If the user is missing or in a foreign tenant
        """
        access_policy.require(identity, Action.MANAGE_USERS)
        user = self.get_user(identity, user_id)
        if not access_policy.can_manage_users(identity, user.tenant_id):
            raise NotFoundException("User")
        return user

    def register_user(self, identity: Identity, data: UserCreate) -> User:
        """
        Create a user.

        Non-global admins always create users in their own tenant, whatever
        tenant_id the payload names.

        Raises:
            ForbiddenException: If the identity may not manage users or grant the role
            NotFoundException: If a SUPER_ADMIN names a tenant that does not exist
            ConflictException: If the email is already registered
        """
        access_policy.require(identity, Action.MANAGE_USERS)
        self._check_role_grant(identity, data.role)

        target_tenant_id = access_policy.resolve_target_tenant(identity, data.tenant_id)
        if not self.tenant_repo.get_by_id(target_tenant_id):
            raise NotFoundException("Target tenant")

        email = data.email.strip().lower()
        if self.user_repo.get_by_email(email):
            raise ConflictException("Email is already registered")

        user = self.user_repo.create(
            User(
                tenant_id=target_tenant_id,
                name=data.name,
                email=email,
                password_hash=hash_password(data.password),
                role=data.role,
            )
        )
        logger.info(
            "User %s (%s) registered in tenant %s by user %s",
            user.id, user.role.value, user.tenant_id, identity.user_id,
        )
        return user

    def list_users(
        self,
        identity: Identity,
        page: PageRequest,
        tenant_id: Optional[int] = None,
        search: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> tuple[list[User], int]:
        return self.user_repo.get_with_filters(
            tenant_id=access_policy.effective_tenant_filter(identity, tenant_id),
            search=search,
            role=role,
            limit=page.limit,
            offset=page.offset,
        )

    def get_user(self, identity: Identity, user_id: int) -> User:
        tenant_filter = None if access_policy.is_global_admin(identity) else identity.tenant_id
        user = self.user_repo.get_by_id(user_id, tenant_filter)
        if not user:
            raise NotFoundException("User")
        return user

    def update_user(self, identity: Identity, user_id: int, data: UserUpdate) -> User:
        user = self._managed_user(identity, user_id)

        if data.role is not None and data.role != user.role:
            self._check_role_grant(identity, data.role)
            # only SUPER_ADMIN may change a SUPER_ADMIN's role
            if user.role is Role.SUPER_ADMIN:
                self._check_role_grant(identity, Role.SUPER_ADMIN)
            user.role = data.role
        if data.name is not None:
            user.name = data.name
        if data.password is not None:
            user.password_hash = hash_password(data.password)

        user = self.user_repo.update(user)
        logger.info("User %s updated by user %s", user.id, identity.user_id)
        return user

    def delete_user(self, identity: Identity, user_id: int) -> None:
        """
        Raises:
            InvalidStateException: If deleting oneself or a user that authored entries
        """
        user = self._managed_user(identity, user_id)
        if user.id == identity.user_id:
            raise InvalidStateException("Cannot delete yourself")
        if user.role is Role.SUPER_ADMIN:
            self._check_role_grant(identity, Role.SUPER_ADMIN)
        if self.ledger_repo.count_by_author(user.id) > 0:
            raise InvalidStateException("Cannot delete a user who has authored ledger entries")

        self.user_repo.delete(user)
        logger.info("User %s deleted by user %s", user_id, identity.user_id)
