"""Tests for auth/roles.py -- role label rules and the system roles."""

from __future__ import annotations

import pytest

from auth.models import ADMIN_ROLE_ID, USER_ROLE_ID, Role
from auth.permissions import ALL_PERMISSIONS, NO_PERMISSIONS, Permission
from auth.roles import normalize_label
from core.errors import InUse, NotFound, ReadOnly, ValidationError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Editors", "editors"),
        ("  Rating   Editors ", "rating editors"),
        ("a\tb\nc", "a b c"),
        ("", ""),
    ],
)
def test_normalize_label(raw: str, expected: str) -> None:
    assert normalize_label(raw) == expected


def test_system_roles_are_seeded(services) -> None:
    admin, user = services.roles.by_ids(ADMIN_ROLE_ID, USER_ROLE_ID)
    assert (admin.label, admin.permissions) == ("admin", ALL_PERMISSIONS)
    assert (user.label, user.permissions) == ("user", NO_PERMISSIONS)


class TestCreate:
    def test_create_normalizes_and_ignores_supplied_id(self, services) -> None:
        role = Role(label="  Rating   Editors ", permissions=Permission.READ_RATINGS, id=1)
        services.roles.create(role)
        assert role.id > USER_ROLE_ID
        stored = services.roles.by_id(role.id)
        assert stored.label == "rating editors"
        assert stored.permissions == Permission.READ_RATINGS

    @pytest.mark.parametrize(
        "label, code",
        [
            ("", "required"),
            ("abc", "too_short"),
            ("  a  b ", "too_short"),
            ("admin", "is_duplicate"),
            ("user", "is_duplicate"),
        ],
    )
    def test_label_rules(self, services, label: str, code: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            services.roles.create(Role(label=label))
        assert exc_info.value.public_fields() == {"label": code}

    def test_duplicate_label_after_normalization(self, services, make_role) -> None:
        make_role("editors")
        with pytest.raises(ValidationError) as exc_info:
            services.roles.create(Role(label="  EDITORS"))
        assert exc_info.value.public_fields() == {"label": "is_duplicate"}


class TestUpdate:
    @pytest.mark.parametrize("role_id", [ADMIN_ROLE_ID, USER_ROLE_ID])
    def test_system_roles_are_read_only(self, services, role_id: int) -> None:
        with pytest.raises(ReadOnly):
            services.roles.update(Role(id=role_id, label="renamed role", permissions=ALL_PERMISSIONS))

    def test_update_label_and_permissions(self, services, make_role) -> None:
        role = make_role("editors")
        role.label = "Senior  Editors"
        role.permissions = Permission.READ_USERS | Permission.WRITE_USERS
        services.roles.update(role)
        stored = services.roles.by_id(role.id)
        assert stored.label == "senior editors"
        assert stored.permissions == Permission.READ_USERS | Permission.WRITE_USERS

    def test_cannot_take_a_reserved_label(self, services, make_role) -> None:
        role = make_role()
        role.label = "admin"
        with pytest.raises(ValidationError) as exc_info:
            services.roles.update(role)
        assert exc_info.value.public_fields() == {"label": "is_duplicate"}

    def test_unknown_role(self, services) -> None:
        with pytest.raises(NotFound):
            services.roles.update(Role(id=4242, label="ghosts"))


class TestDelete:
    def test_delete(self, services, make_role) -> None:
        role = make_role()
        services.roles.delete(role.id)
        with pytest.raises(NotFound):
            services.roles.by_id(role.id)

    @pytest.mark.parametrize("role_id", [ADMIN_ROLE_ID, USER_ROLE_ID])
    def test_system_roles_cannot_be_deleted(self, services, role_id: int) -> None:
        with pytest.raises(ReadOnly):
            services.roles.delete(role_id)

    def test_role_assigned_to_a_principal_is_in_use(self, services, make_role, make_user) -> None:
        role = make_role()
        make_user(role_id=role.id)
        with pytest.raises(InUse):
            services.roles.delete(role.id)

    def test_unknown_role(self, services) -> None:
        with pytest.raises(NotFound):
            services.roles.delete(4242)
