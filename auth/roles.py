"""
auth/roles.py -- Role validation.

Labels are normalized before they are stored: lowercased, trimmed, and inner
runs of whitespace collapsed to one space ("  Rating  Editors " becomes
"rating editors"). The system labels "admin" and "user" can never be reused,
and the system roles themselves (ids 1 and 2) are read-only.

Layer rule: no imports from api/ or ratings/.
"""

from __future__ import annotations

import logging

from auth.gate import ensure_role_mutable
from auth.models import ADMIN_ROLE_LABEL, USER_ROLE_LABEL, Role
from auth.store import RoleStore
from core.errors import Duplicate, Required, TooShort
from core.validation import Step, run_validators

logger = logging.getLogger("ratingsapp.auth")

MIN_LABEL_LENGTH = 4

_RESERVED_LABELS = frozenset({ADMIN_ROLE_LABEL, USER_ROLE_LABEL})


def normalize_label(label: str) -> str:
    return " ".join(label.lower().split())


def _id_set_to_zero() -> Step:
    def check(role: Role) -> None:
        role.id = 0

    return Step("", check)


def _id_not_system_role() -> Step:
    def check(role: Role) -> None:
        ensure_role_mutable(role.id)

    return Step("", check)


def _label_not_reserved() -> Step:
    def check(role: Role) -> None:
        if role.label in _RESERVED_LABELS:
            raise Duplicate()

    return Step("label", check)


def _label_required() -> Step:
    def check(role: Role) -> None:
        if not role.label:
            raise Required()

    return Step("label", check)


def _label_normalize() -> Step:
    def check(role: Role) -> None:
        role.label = normalize_label(role.label)

    return Step("label", check)


def _label_length() -> Step:
    def check(role: Role) -> None:
        if role.label and len(role.label) < MIN_LABEL_LENGTH:
            raise TooShort()

    return Step("label", check)


class RoleService:
    """Validating facade over RoleStore."""

    def __init__(self, store: RoleStore) -> None:
        self.store = store

    def create(self, role: Role) -> None:
        run_validators(
            role,
            [
                _id_set_to_zero(),
                _label_required(),
                _label_not_reserved(),
                _label_normalize(),
                _label_length(),
            ],
        )
        self.store.create(role)
        logger.info("Created role %d (%s)", role.id, role.label)

    def update(self, role: Role) -> None:
        """Raises ReadOnly for the system roles, whatever the request carries."""
        run_validators(
            role,
            [
                _id_not_system_role(),
                _label_not_reserved(),
                _label_required(),
                _label_normalize(),
                _label_length(),
            ],
        )
        self.store.update(role)
        logger.info("Updated role %d", role.id)

    def delete(self, role_id: int) -> None:
        run_validators(Role(id=role_id), [_id_not_system_role()])
        self.store.delete(role_id)
        logger.info("Deleted role %d", role_id)

    def by_id(self, role_id: int) -> Role:
        return self.store.by_id(role_id)

    def by_ids(self, *role_ids: int) -> list[Role]:
        return self.store.by_ids(*role_ids)
