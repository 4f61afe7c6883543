import logging
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException, UnauthorizedException, ValidationException
from app.core.security import create_access_token, hash_password, verify_password
from app.models.identity import Identity
from app.models.user import User
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Login and self-service account operations"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def login(self, email: str, password: str) -> tuple[str, User]:
        """
        Exchange credentials for an access token.

        Unknown email and wrong password fail with the same message.

        Returns:
            Tuple of (token, user)
        """
        user = self.user_repo.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise UnauthorizedException(INVALID_CREDENTIALS)

        token = create_access_token(
            user_id=user.id, tenant_id=user.tenant_id, role=user.role, email=user.email
        )
        logger.info("User %s logged in", user.id)
        return token, user

    def current_user(self, identity: Identity) -> User:
        user = self.user_repo.get_by_id(identity.user_id)
        if not user:
            raise NotFoundException("User")
        return user

    def change_password(self, identity: Identity, current_password: str, new_password: str) -> None:
        """
        Raises:
            ValidationException: If current_password does not match
        """
        user = self.current_user(identity)
        if not verify_password(current_password, user.password_hash):
            raise ValidationException("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        self.user_repo.update(user)
        logger.info("User %s changed their password", user.id)
