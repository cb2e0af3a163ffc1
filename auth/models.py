"""
auth/models.py -- Domain dataclasses for principals, roles and token pairs.

Pattern: Data class (pure data container, zero logic). Services and stores do
the work; routes map these to the Pydantic models in api/models.py.

The fixed system records are named here so every layer checks the same
sentinel rather than a bare literal.

Layer rule: no imports from api/ or ratings/.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.permissions import NO_PERMISSIONS

# Principal 1 is the seeded super-admin; roles 1 and 2 are the seeded system roles.
SUPER_ADMIN_USER_ID = 1
ADMIN_ROLE_ID = 1
USER_ROLE_ID = 2

ADMIN_ROLE_LABEL = "admin"
USER_ROLE_LABEL = "user"


@dataclass
class Role:
    """A label for a set of permissions, attached to principals."""

    label: str = ""
    permissions: int = NO_PERMISSIONS
    id: int = 0


@dataclass
class User:
    """An account able to authenticate: a person or another application.

    email is the login identifier and is unique once normalized. password is
    the bcrypt hash when read from the store, the plaintext while a create or
    update request is being validated, and always "" in service results.

    role is only populated by store reads that join the roles table.
    """

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    password: str = ""
    role_id: int = USER_ROLE_ID
    active: bool = True
    settings: str = ""
    id: int = 0
    role: Role | None = None


@dataclass
class TokenPair:
    """The credentials handed out by the token endpoint."""

    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime, seconds
    token_type: str = "bearer"


@dataclass
class TokenClaims:
    """The validated content of an access or refresh token."""

    user_id: int
    role_id: int
    is_refresh: bool
