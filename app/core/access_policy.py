"""
Access policy for the ledger.

Every rule here is a pure function of the caller's Identity, the requested
action and the target (tenant id, entry ownership, entry age). Nothing in
this module touches the database, so services call it before any query.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Protocol

from app.core.exceptions import ForbiddenException
from app.models.identity import Identity
from app.models.role import Role

STAFF_EDIT_WINDOW_HOURS = 24


class Action(str, PyEnum):
    """Operations gated by role."""

    READ_LEDGER = "read_ledger"
    CREATE_ENTRY = "create_entry"
    MUTATE_ENTRY = "mutate_entry"
    RESTORE_ENTRY = "restore_entry"
    VIEW_ARCHIVED = "view_archived"
    VIEW_COMPARISON = "view_comparison"
    MANAGE_TENANTS = "manage_tenants"
    MANAGE_USERS = "manage_users"
    GRANT_SUPER_ADMIN = "grant_super_admin"


class ResourceScope(str, PyEnum):
    """How far an identity's reach extends across tenants."""

    OWN_TENANT = "own_tenant"
    ALL_TENANTS = "all_tenants"


_EVERYONE = frozenset(Role)
_PRIVILEGED = frozenset({Role.SUPER_ADMIN, Role.ADMIN_LINI})
_GLOBAL = frozenset({Role.SUPER_ADMIN})

ROLE_PERMISSIONS: dict[Action, frozenset[Role]] = {
    Action.READ_LEDGER: _EVERYONE,
    Action.CREATE_ENTRY: _EVERYONE,
    Action.MUTATE_ENTRY: _EVERYONE,  # STAFF further limited by ownership and age
    Action.RESTORE_ENTRY: _GLOBAL,
    Action.VIEW_ARCHIVED: _GLOBAL,
    Action.VIEW_COMPARISON: _GLOBAL,
    Action.MANAGE_TENANTS: _GLOBAL,
    Action.MANAGE_USERS: _PRIVILEGED,
    Action.GRANT_SUPER_ADMIN: _GLOBAL,
}


class OwnedEntry(Protocol):
    """The parts of a ledger entry the policy looks at."""

    tenant_id: int
    user_id: int
    created_at: datetime


@dataclass(frozen=True)
class EntryRef:
    """Plain entry reference for callers that do not hold an ORM row."""

    tenant_id: int
    user_id: int
    created_at: datetime


def tenant_scope(identity: Identity) -> ResourceScope:
    return ResourceScope.ALL_TENANTS if identity.role.is_global else ResourceScope.OWN_TENANT


def is_allowed(identity: Identity, action: Action) -> bool:
    return identity.role in ROLE_PERMISSIONS[action]


def require(identity: Identity, action: Action) -> None:
    """
    Raise ForbiddenException unless the identity's role may perform action.

    The message names the lowest role that would have been allowed.
    """
    allowed = ROLE_PERMISSIONS[action]
    if identity.role in allowed:
        return
    required = Role.ADMIN_LINI if Role.ADMIN_LINI in allowed else Role.SUPER_ADMIN
    raise ForbiddenException(required_role=required.value)


def is_privileged(identity: Identity) -> bool:
    return identity.role.is_privileged


def is_global_admin(identity: Identity) -> bool:
    return identity.role.is_global


def can_access_tenant(identity: Identity, target_tenant_id: int | None) -> bool:
    if tenant_scope(identity) is ResourceScope.ALL_TENANTS:
        return True
    return target_tenant_id is not None and identity.tenant_id == target_tenant_id


def effective_tenant_filter(identity: Identity, requested_tenant_id: int | None) -> int | None:
    """
    Tenant id actually applied to a query.

    SUPER_ADMIN gets the requested id back verbatim, and None means the global
    view. Every other role is pinned to its own tenant; whatever it asked for
    (another tenant, a tenant that does not exist, nothing) is ignored, never
    rejected.
    """
    if tenant_scope(identity) is ResourceScope.ALL_TENANTS:
        return requested_tenant_id
    return identity.tenant_id


def resolve_target_tenant(identity: Identity, requested_tenant_id: int | None) -> int:
    """
    Tenant a newly written row (user, entry) lands in.

    Same override as effective_tenant_filter, except that an empty request
    falls back to the caller's home tenant instead of the global view.
    """
    if is_global_admin(identity) and requested_tenant_id is not None:
        return requested_tenant_id
    return identity.tenant_id


def hours_since(created_at: datetime, now: datetime) -> float:
    return (now - created_at).total_seconds() / 3600


def is_within_edit_window(entry: OwnedEntry, now: datetime) -> bool:
    """True until more than STAFF_EDIT_WINDOW_HOURS have passed since creation."""
    return not hours_since(entry.created_at, now) > STAFF_EDIT_WINDOW_HOURS


def can_mutate_entry(identity: Identity, entry: OwnedEntry, now: datetime) -> bool:
    if not can_access_tenant(identity, entry.tenant_id):
        return False
    if identity.role.is_privileged:
        return True
    return entry.user_id == identity.user_id and is_within_edit_window(entry, now)


def can_restore_entry(identity: Identity) -> bool:
    return is_allowed(identity, Action.RESTORE_ENTRY)


def can_view_archived(identity: Identity) -> bool:
    return is_allowed(identity, Action.VIEW_ARCHIVED)


def can_manage_tenants(identity: Identity) -> bool:
    return is_allowed(identity, Action.MANAGE_TENANTS)


def can_manage_users(identity: Identity, target_tenant_id: int | None) -> bool:
    return is_allowed(identity, Action.MANAGE_USERS) and can_access_tenant(
        identity, target_tenant_id
    )


def can_assign_role(identity: Identity, role: Role) -> bool:
    if role is Role.SUPER_ADMIN:
        return is_allowed(identity, Action.GRANT_SUPER_ADMIN)
    return is_allowed(identity, Action.MANAGE_USERS)
