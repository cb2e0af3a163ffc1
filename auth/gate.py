"""
auth/gate.py -- Authorization decisions, independent of any web framework.

Two kinds of rule live here:

  Permission gate: require_permissions() applies the AND rule from
      auth/permissions.py to the caller's role. Failing it is Forbidden
      (authenticated, but never allowed), which the API keeps distinct from
      Unauthorized (re-authenticate and retry).

  Identity rules: the seeded super-admin (principal 1) and the system roles
      (1 "admin", 2 "user") are immutable for every caller, whatever bits the
      caller holds. Rating ownership is checked against the stored record:
      only the owner may update; the owner or an admin-role caller may delete.

is_super_admin_role() is the single place deciding "this role is the admin
role". It is deliberately an identity check on the role id, not a bitmask
check: a custom role holding every bit is still not the admin role.

Layer rule: no imports from api/ or ratings/ (ratings are passed in duck-typed).
"""

from __future__ import annotations

from typing import Protocol

from auth.models import ADMIN_ROLE_ID, SUPER_ADMIN_USER_ID, USER_ROLE_ID, User
from auth.permissions import NO_PERMISSIONS, has_permissions
from core.errors import Forbidden, ReadOnly

_SYSTEM_ROLE_IDS = frozenset({ADMIN_ROLE_ID, USER_ROLE_ID})


class Owned(Protocol):
    user_id: int


def granted_permissions(user: User) -> int:
    """The caller's permission bits; a principal without a loaded role has none."""
    return user.role.permissions if user.role is not None else NO_PERMISSIONS


def require_permissions(user: User, required: int) -> None:
    """Raise Forbidden unless user's role grants every bit in required."""
    if not has_permissions(granted_permissions(user), required):
        raise Forbidden(f"user {user.id} lacks permissions {int(required):#x}")


def is_super_admin_role(role_id: int) -> bool:
    return role_id == ADMIN_ROLE_ID


def is_super_admin(user: User) -> bool:
    return is_super_admin_role(user.role_id)


def ensure_user_mutable(user_id: int) -> None:
    if user_id == SUPER_ADMIN_USER_ID:
        raise ReadOnly("the super-admin account cannot be modified or deleted")


def ensure_role_mutable(role_id: int) -> None:
    if role_id in _SYSTEM_ROLE_IDS:
        raise ReadOnly(f"system role {role_id} cannot be modified or deleted")


def ensure_owner(record: Owned, caller: User) -> None:
    """Update rule: only the exact owner, no admin override."""
    if record.user_id != caller.id:
        raise ReadOnly(f"user {caller.id} does not own this record")


def ensure_owner_or_admin(record: Owned, caller: User) -> None:
    """Delete rule: the owner, or any caller holding the admin role."""
    if record.user_id != caller.id and not is_super_admin(caller):
        raise ReadOnly(f"user {caller.id} can neither own nor administer this record")
