"""
auth/store.py -- SQLAlchemy Core persistence layer for principals and roles.

Pattern: Repository + Data Mapper. RoleStore and UserStore are the
repositories; _row_to_role / _row_to_user are the mappers. Services and
routes never touch SQL directly.

Contract shared by every store in the project:
  create(obj)     -- inserts, sets obj.id
  update(obj)     -- rewrites every column of obj.id; NotFound if absent
  delete(id)      -- NotFound if absent
  by_id(id)       -- NotFound if absent
  by_ids(*ids)    -- all rows when no id is given; unknown ids are skipped

Constraint violations are translated into the same ValidationError
vocabulary the services use ("email": is_duplicate, "roleId":
reference_not_found, ...), so a caller sees one error shape whether the
service pre-check or the database caught the problem.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or ratings/.
"""

from __future__ import annotations

import logging

from sqlalchemy import Table, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import (
    ADMIN_ROLE_ID,
    ADMIN_ROLE_LABEL,
    SUPER_ADMIN_USER_ID,
    USER_ROLE_ID,
    USER_ROLE_LABEL,
    Role,
    User,
)
from auth.permissions import ALL_PERMISSIONS, NO_PERMISSIONS
from core.db import integrity_message, roles, users
from core.errors import (
    Duplicate,
    IdTaken,
    InUse,
    NotFound,
    RefNotFound,
    ValidationError,
)

logger = logging.getLogger("ratingsapp.store")


def _restart_sequence(engine: Engine, table: Table) -> None:
    """Move a PostgreSQL serial past rows inserted with explicit ids.

    SQLite already continues from max(id), so this only runs on PostgreSQL.
    """
    if engine.dialect.name != "postgresql":
        return
    highest = select(func.max(table.c.id)).scalar_subquery()
    with engine.connect() as conn:
        conn.execute(select(func.setval(func.pg_get_serial_sequence(table.name, "id"), highest)))
        conn.commit()


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class RoleStore:
    """Repository for Role entities.

    Usage:
        store = RoleStore(make_engine("sqlite:///:memory:"))
        store.ensure_defaults()
        role = store.by_id(1)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ensure_defaults(self) -> None:
        """Seed the two system roles if they are not present.

        Idempotent -- safe to call on every startup. Existing rows are left
        untouched; their immutability is enforced by the role service.
        """
        defaults = (
            (ADMIN_ROLE_ID, ADMIN_ROLE_LABEL, ALL_PERMISSIONS),
            (USER_ROLE_ID, USER_ROLE_LABEL, NO_PERMISSIONS),
        )
        with self.engine.connect() as conn:
            for role_id, label, permissions in defaults:
                exists = conn.execute(select(roles.c.id).where(roles.c.id == role_id)).first()
                if exists is None:
                    conn.execute(roles.insert().values(id=role_id, label=label, permissions=permissions))
                    logger.info("Seeded system role %d (%s)", role_id, label)
            conn.commit()
        _restart_sequence(self.engine, roles)

    def create(self, role: Role) -> None:
        values = {"label": role.label, "permissions": int(role.permissions)}
        if role.id:
            values["id"] = role.id
        try:
            with self.engine.connect() as conn:
                result = conn.execute(roles.insert().values(**values))
                conn.commit()
        except IntegrityError as exc:
            msg = integrity_message(exc)
            if "roles.id" in msg or "roles_pkey" in msg:
                raise ValidationError({"id": IdTaken()}) from exc
            if "label" in msg:
                raise ValidationError({"label": Duplicate()}) from exc
            raise
        role.id = result.inserted_primary_key[0]

    def update(self, role: Role) -> None:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    roles.update()
                    .where(roles.c.id == role.id)
                    .values(label=role.label, permissions=int(role.permissions))
                )
                conn.commit()
        except IntegrityError as exc:
            if "label" in integrity_message(exc):
                raise ValidationError({"label": Duplicate()}) from exc
            raise
        if result.rowcount == 0:
            raise NotFound(f"role {role.id} not found")

    def delete(self, role_id: int) -> None:
        """Delete a role. Raises InUse while any principal still references it."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(roles.delete().where(roles.c.id == role_id))
                conn.commit()
        except IntegrityError as exc:
            if "foreign key" in integrity_message(exc):
                raise InUse(f"role {role_id} is assigned to users") from exc
            raise
        if result.rowcount == 0:
            raise NotFound(f"role {role_id} not found")

    def by_id(self, role_id: int) -> Role:
        with self.engine.connect() as conn:
            row = conn.execute(roles.select().where(roles.c.id == role_id)).fetchone()
        if row is None:
            raise NotFound(f"role {role_id} not found")
        return _row_to_role(row)

    def by_ids(self, *role_ids: int) -> list[Role]:
        query = roles.select().order_by(roles.c.id)
        if role_ids:
            query = query.where(roles.c.id.in_(role_ids))
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_role(r) for r in rows]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

_user_with_role = select(
    users,
    roles.c.label.label("role_label"),
    roles.c.permissions.label("role_permissions"),
).select_from(users.outerjoin(roles, users.c.role_id == roles.c.id))


class UserStore:
    """Repository for User entities.

    Reads return the stored bcrypt hash in User.password and the joined Role
    in User.role. Clearing the hash before anything leaves the process is the
    user service's job.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ensure_admin(self, email: str, password_hash: str) -> None:
        """Seed principal 1, the super-admin, if it is not present.

        Requires the system roles to exist (RoleStore.ensure_defaults()).
        """
        with self.engine.connect() as conn:
            exists = conn.execute(select(users.c.id).where(users.c.id == SUPER_ADMIN_USER_ID)).first()
            if exists is None:
                conn.execute(
                    users.insert().values(
                        id=SUPER_ADMIN_USER_ID,
                        active=True,
                        email=email,
                        first_name="admin",
                        last_name="",
                        password=password_hash,
                        role_id=ADMIN_ROLE_ID,
                        settings="",
                    )
                )
                logger.info("Seeded super-admin account %s", email)
            conn.commit()
        _restart_sequence(self.engine, users)

    def create(self, user: User) -> None:
        values = _user_values(user)
        if user.id:
            values["id"] = user.id
        try:
            with self.engine.connect() as conn:
                result = conn.execute(users.insert().values(**values))
                conn.commit()
        except IntegrityError as exc:
            field_error = _user_field_error(exc)
            if field_error is None:
                raise
            raise field_error from exc
        user.id = result.inserted_primary_key[0]

    def update(self, user: User) -> None:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(users.update().where(users.c.id == user.id).values(**_user_values(user)))
                conn.commit()
        except IntegrityError as exc:
            field_error = _user_field_error(exc)
            if field_error is None:
                raise
            raise field_error from exc
        if result.rowcount == 0:
            raise NotFound(f"user {user.id} not found")

    def delete(self, user_id: int) -> None:
        """Delete a principal. Raises InUse while ratings still reference it."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(users.delete().where(users.c.id == user_id))
                conn.commit()
        except IntegrityError as exc:
            if "foreign key" in integrity_message(exc):
                raise InUse(f"user {user_id} still owns ratings") from exc
            raise
        if result.rowcount == 0:
            raise NotFound(f"user {user_id} not found")

    def by_id(self, user_id: int) -> User:
        with self.engine.connect() as conn:
            row = conn.execute(_user_with_role.where(users.c.id == user_id)).fetchone()
        if row is None:
            raise NotFound(f"user {user_id} not found")
        return _row_to_user(row)

    def by_email(self, email: str) -> User:
        """Look up a principal by exact (already normalized) email."""
        with self.engine.connect() as conn:
            row = conn.execute(_user_with_role.where(users.c.email == email)).fetchone()
        if row is None:
            raise NotFound("user not found by email")
        return _row_to_user(row)

    def by_ids(self, *user_ids: int) -> list[User]:
        query = _user_with_role.order_by(users.c.id)
        if user_ids:
            query = query.where(users.c.id.in_(user_ids))
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(r) for r in rows]


# ---------------------------------------------------------------------------
# Helpers and row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _user_values(user: User) -> dict:
    return {
        "active": user.active,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "password": user.password,
        "role_id": user.role_id,
        "settings": user.settings,
    }


def _user_field_error(exc: IntegrityError) -> ValidationError | None:
    msg = integrity_message(exc)
    if "users.id" in msg or "users_pkey" in msg:
        return ValidationError({"id": IdTaken()})
    if "email" in msg:
        return ValidationError({"email": Duplicate()})
    if "foreign key" in msg:
        return ValidationError({"roleId": RefNotFound()})
    return None


def _row_to_role(row) -> Role:
    return Role(id=row.id, label=row.label, permissions=row.permissions)


def _row_to_user(row) -> User:
    role = None
    if row.role_label is not None:
        role = Role(id=row.role_id, label=row.role_label, permissions=row.role_permissions)
    return User(
        id=row.id,
        active=bool(row.active),
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        password=row.password,
        role_id=row.role_id,
        settings=row.settings,
        role=role,
    )
