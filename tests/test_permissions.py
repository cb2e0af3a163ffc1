"""Unit tests for auth/permissions.py and the permission gate in auth/gate.py.

Covers:
- encode/decode round trip for every subset of the defined flags
- names are emitted in bit order; unknown names are rejected
- AND semantics of has_permissions / require_permissions
- the admin value (-1) grants every bit
"""

from __future__ import annotations

from itertools import combinations

import pytest

from auth.gate import require_permissions
from auth.models import Role, User
from auth.permissions import (
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    Permission,
    UnknownPermission,
    decode_permissions,
    encode_permissions,
    has_permissions,
)
from core.errors import Forbidden

ALL_FLAGS = list(Permission)


def _subsets():
    for size in range(len(ALL_FLAGS) + 1):
        yield from combinations(ALL_FLAGS, size)


@pytest.mark.parametrize("subset", list(_subsets()), ids=lambda s: "+".join(f.name for f in s) or "none")
def test_round_trip_every_subset(subset) -> None:
    mask = 0
    for flag in subset:
        mask |= flag
    assert decode_permissions(encode_permissions(mask)) == mask


def test_encode_emits_bit_order() -> None:
    mask = Permission.WRITE_RATINGS | Permission.READ_USERS | Permission.READ_RATINGS
    assert encode_permissions(mask) == ["readUsers", "readRatings", "writeRatings"]


def test_encode_admin_lists_every_name() -> None:
    assert encode_permissions(ALL_PERMISSIONS) == ["readUsers", "writeUsers", "readRatings", "writeRatings"]


def test_encode_none_is_empty_list() -> None:
    assert encode_permissions(NO_PERMISSIONS) == []


def test_decode_ignores_duplicates() -> None:
    assert decode_permissions(["readUsers", "readUsers"]) == Permission.READ_USERS


def test_decode_unknown_name_raises() -> None:
    with pytest.raises(UnknownPermission):
        decode_permissions(["readUsers", "deleteEverything"])


def test_unknown_permission_is_value_error() -> None:
    assert issubclass(UnknownPermission, ValueError)


@pytest.mark.parametrize(
    "granted, required, expected",
    [
        (Permission.READ_USERS | Permission.WRITE_USERS, Permission.READ_USERS, True),
        (Permission.READ_USERS, Permission.READ_USERS | Permission.WRITE_USERS, False),
        (Permission.READ_RATINGS, Permission.READ_USERS, False),
        (NO_PERMISSIONS, NO_PERMISSIONS, True),
        (ALL_PERMISSIONS, Permission.WRITE_USERS | Permission.WRITE_RATINGS, True),
        (NO_PERMISSIONS, Permission.READ_USERS, False),
    ],
)
def test_has_permissions_and_semantics(granted, required, expected) -> None:
    assert has_permissions(granted, required) is expected


def _caller(permissions: int | None) -> User:
    role = Role(id=7, label="custom", permissions=permissions) if permissions is not None else None
    return User(id=5, role_id=7, role=role)


def test_require_permissions_passes_with_superset() -> None:
    require_permissions(_caller(Permission.READ_USERS | Permission.WRITE_USERS), Permission.READ_USERS)


def test_require_permissions_raises_forbidden_when_missing_a_bit() -> None:
    with pytest.raises(Forbidden):
        require_permissions(_caller(Permission.READ_USERS), Permission.READ_USERS | Permission.WRITE_USERS)


def test_require_permissions_without_role_has_nothing() -> None:
    with pytest.raises(Forbidden):
        require_permissions(_caller(None), Permission.READ_USERS)
    require_permissions(_caller(None), NO_PERMISSIONS)
