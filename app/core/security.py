import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, UTC

from jose import JWTError, jwt
from app.config import settings
from app.core.exceptions import UnauthorizedException
from app.models.identity import Identity
from app.models.role import Role

PBKDF2_HASH_FUNC = "sha256"
SALT_LENGTH = 16


def create_access_token(
    user_id: int,
    tenant_id: int,
    role: Role,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed JWT carrying the caller's identity.

    Claims: sub (user id), tenant_id, role, email, iat, exp.
    """
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": str(user_id),
        "tenant_id": tenant_id,
        "role": role.value,
        "email": email,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Identity:
    """
    Decode and validate JWT token into an Identity.

    Every failure (bad signature, expired, malformed, missing or invalid
    claims) raises the same UnauthorizedException so callers cannot tell
    the causes apart.

    Raises:
        UnauthorizedException: If the token cannot be resolved
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedException()

    # jose only checks exp when present
    if payload.get("exp") is None:
        raise UnauthorizedException()

    try:
        return Identity(
            user_id=int(payload["sub"]),
            tenant_id=int(payload["tenant_id"]),
            role=Role(payload["role"]),
            email=str(payload["email"]),
        )
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedException()


def hash_password(password: str) -> str:
    """Generate a PBKDF2-SHA256 password hash."""
    if not password:
        raise ValueError("Password cannot be empty")
    salt = secrets.token_hex(SALT_LENGTH)
    dk = hashlib.pbkdf2_hmac(
        PBKDF2_HASH_FUNC,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        settings.PASSWORD_HASH_ITERATIONS,
    )
    return f"pbkdf2:sha256:{settings.PASSWORD_HASH_ITERATIONS}${salt}${dk.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a PBKDF2-SHA256 hash."""
    if not password or not password_hash:
        return False
    if not password_hash.startswith("pbkdf2:sha256:"):
        return False
    parts = password_hash.split("$")
    if len(parts) != 3:
        return False
    header, salt, stored_hash = parts
    try:
        iterations = int(header.split(":")[-1])
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac(
        PBKDF2_HASH_FUNC,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    return hmac.compare_digest(dk.hex(), stored_hash)
