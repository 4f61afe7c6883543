"""Role enum for role-based access control."""

from enum import Enum as PyEnum


class Role(str, PyEnum):
    """
    User roles.

    Role Hierarchy (highest to lowest):
    1. SUPER_ADMIN - Headquarters administrator; sees and manages every tenant
    2. ADMIN_LINI - Line administrator; manages users and entries of own tenant
    3. STAFF - Records entries; may edit/archive only own entries for 24 hours

    SUPER_ADMIN still belongs to a home tenant but is not bound to it for reads.
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN_LINI = "ADMIN_LINI"
    STAFF = "STAFF"

    @property
    def is_privileged(self) -> bool:
        return self in (Role.SUPER_ADMIN, Role.ADMIN_LINI)

    @property
    def is_global(self) -> bool:
        return self is Role.SUPER_ADMIN
