from functools import lru_cache
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.clock import Clock, SystemClock
from app.core.exceptions import UnauthorizedException
from app.core.security import decode_access_token
from app.models.identity import Identity
from app.storage.blob_store import BlobStore, build_blob_store

# auto_error=False so a missing header goes through the same 401 path as a bad token
security = HTTPBearer(auto_error=False)


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity:
    """
    FastAPI dependency resolving the bearer token into an Identity.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT signature and expiry using SECRET_KEY
    3. Read user id, tenant id, role and email from the claims

    No database access happens here, so an unauthenticated request is
    rejected before any ledger data is touched.

    Raises:
        UnauthorizedException: Missing, malformed, expired or forged token
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException()
    return decode_access_token(credentials.credentials)


def get_clock() -> Clock:
    return SystemClock()


@lru_cache
def get_blob_store() -> BlobStore:
    return build_blob_store()
