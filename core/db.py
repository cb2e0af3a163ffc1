"""
core/db.py -- Shared SQLAlchemy Core schema and engine factory.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in auth/models.py and
ratings/models.py remain the authoritative domain representation. Swapping
SQLite for PostgreSQL is a connection string change, not a rewrite.

All three tables live on one MetaData because they reference each other:
users.role_id -> roles.id and ratings.user_id -> users.id, both RESTRICT.
The stores (auth/store.py, ratings/store.py) import the Table objects from
here; route code never touches SQL directly.

Uniqueness (users.email, roles.label, ratings(user_id, target)) is enforced
here, by the database. Service-level pre-checks exist only to produce
friendlier field errors and are not race-free.

Layer rule: core/ is the kernel. No imports from api/, auth/ or ratings/.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import SingletonThreadPool

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

# Ids and targets are signed 64-bit everywhere. SQLite keeps INTEGER for the
# primary keys, the only type it turns into an autoincrementing rowid.
MAX_ID = 2**63 - 1
_Id = BigInteger().with_variant(Integer, "sqlite")

roles = Table(
    "roles",
    metadata,
    Column("id", _Id, primary_key=True, autoincrement=True),
    Column("label", String(255), nullable=False, unique=True),
    # Signed bitmask; the admin role stores -1 (every bit set).
    Column("permissions", BigInteger, nullable=False, server_default="0"),
)

users = Table(
    "users",
    metadata,
    Column("id", _Id, primary_key=True, autoincrement=True),
    Column("active", Boolean, nullable=False, server_default="1"),
    Column("email", String(255), nullable=False, unique=True),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255), nullable=False, server_default=""),
    Column("password", String(255), nullable=False),  # bcrypt hash
    Column(
        "role_id",
        _Id,
        ForeignKey("roles.id", ondelete="RESTRICT", onupdate="RESTRICT"),
        nullable=False,
    ),
    Column("settings", Text, nullable=False, server_default=""),
)

ratings = Table(
    "ratings",
    metadata,
    Column("id", _Id, primary_key=True, autoincrement=True),
    Column("active", Boolean, nullable=False, server_default="1"),
    Column("anonymous", Boolean, nullable=False, server_default="1"),
    Column("comment", Text, nullable=False, server_default=""),
    Column("date", BigInteger, nullable=False),  # epoch seconds
    Column("extra", Text, nullable=False, server_default="{}"),  # JSON document
    Column("score", Integer, nullable=False),
    Column("target", BigInteger, nullable=False),
    Column(
        "user_id",
        _Id,
        ForeignKey("users.id", ondelete="RESTRICT", onupdate="RESTRICT"),
        nullable=False,
    ),
    UniqueConstraint("user_id", "target", name="uq_ratings_user_id_target"),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL mode and foreign key enforcement on every new SQLite connection.

    SQLite PRAGMAs are per-connection and not inherited from the pool, and
    foreign keys are off by default -- without this the RESTRICT references
    above would be silently ignored.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url and make sure the schema exists.

    In-memory SQLite (":memory:" or a "mode=memory" URI) gets one connection
    per thread; a named shared-cache URI keeps every thread on the same data.
    """
    url = make_url(db_url)
    sqlite = url.get_backend_name() == "sqlite"
    kwargs: dict = {}
    if sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:") or url.query.get("mode") == "memory":
            kwargs["poolclass"] = SingletonThreadPool
    engine = create_engine(url, **kwargs)
    if sqlite:
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine


def integrity_message(exc: IntegrityError) -> str:
    """Return the driver's message for an IntegrityError, lowercased.

    SQLite reports "UNIQUE constraint failed: users.email" and a bare
    "FOREIGN KEY constraint failed"; PostgreSQL names the constraint
    ("users_email_key", "foreign key constraint ..."). Stores match on
    fragments of this string to translate the failure into a field error.
    """
    return str(exc.orig).lower()
