"""Resolved caller identity."""

from dataclasses import dataclass
from app.models.role import Role


@dataclass(frozen=True)
class Identity:
    """
    Who is calling, as decoded from the bearer token.

    Attributes:
        user_id: The authenticated user's id
        tenant_id: The user's home tenant
        role: The user's role
        email: The user's email at token issuance
    """

    user_id: int
    tenant_id: int
    role: Role
    email: str

    def __repr__(self) -> str:
        return f"<Identity(user_id={self.user_id}, tenant_id={self.tenant_id}, role={self.role.value})>"
