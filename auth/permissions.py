"""
auth/permissions.py -- Role permission bitmask and its wire encoding.

A role's permissions are one integer where each bit grants one capability.
On the wire (JSON) the same value travels as the list of granted names:

    ["readUsers", "readRatings"]  <->  Permission.READ_USERS | Permission.READ_RATINGS

Checks use AND semantics: a caller passes only if every requested bit is set
in its role. Extra bits are irrelevant. Routes that declare no requirement are
open to any authenticated caller.

The admin role stores ALL_PERMISSIONS (-1): every bit set in a signed 64-bit
column, so permissions added later are granted without a data migration.

Layer rule: no imports from api/ or ratings/.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntFlag
from types import MappingProxyType


class Permission(IntFlag):
    READ_USERS = 1 << 0
    WRITE_USERS = 1 << 1
    READ_RATINGS = 1 << 2
    WRITE_RATINGS = 1 << 3


ALL_PERMISSIONS = -1
NO_PERMISSIONS = 0


class UnknownPermission(ValueError):
    """Raised when decoding a permission name that is not recognised."""


# Read-only lookup tables, built once at import. Order of _TO_NAME is bit order,
# which fixes the order of encode_permissions() output.
_FROM_NAME = MappingProxyType(
    {
        "readUsers": Permission.READ_USERS,
        "writeUsers": Permission.WRITE_USERS,
        "readRatings": Permission.READ_RATINGS,
        "writeRatings": Permission.WRITE_RATINGS,
    }
)
_TO_NAME = MappingProxyType({bit: name for name, bit in sorted(_FROM_NAME.items(), key=lambda kv: kv[1])})


def encode_permissions(mask: int) -> list[str]:
    """Return the names of the recognised bits set in mask, lowest bit first."""
    return [name for bit, name in _TO_NAME.items() if mask & bit]


def decode_permissions(names: Iterable[str]) -> int:
    """OR together the bits for each name. Raises UnknownPermission on any unknown name."""
    mask = NO_PERMISSIONS
    for name in names:
        try:
            mask |= _FROM_NAME[name]
        except KeyError:
            raise UnknownPermission(f"permission does not exist: {name!r}") from None
    return int(mask)


def has_permissions(granted: int, required: int) -> bool:
    """True when every bit of required is present in granted."""
    required = int(required)
    return int(granted) & required == required
