"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE column constraint. create() relies on the
  IntegrityError from the INSERT, never on a SELECT-then-INSERT pre-check,
  so two concurrent signups with the same email cannot both succeed.

  role is constrained by a CHECK so no write path can store a value outside
  the four known roles.

Write-path rules (create and save):
  - first_name / last_name are derived from full_name when either is empty.
  - user.password (plaintext) is hashed into hashed_password only when set,
    then cleared. An existing hashed_password is never re-hashed.
  - updated_at is refreshed on every write.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail, ValidationFailed
from auth.models import ROLES, User, split_full_name
from auth.passwords import hash_password
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_role_values = ", ".join(f"'{r}'" for r in ROLES)

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(254), nullable=False, unique=True),
    Column("full_name", String(100), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="Demo User"),
    Column("avatar", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("last_login", String(32)),  # ISO 8601 timestamp of last successful login
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint(f"role IN ({_role_values})", name="ck_users_role"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _prepare_for_write(user: User) -> None:
    """Apply the derivation and hashing rules shared by create() and save()."""
    user.full_name = user.full_name.strip()
    if not user.first_name or not user.last_name:
        user.first_name, user.last_name = split_full_name(user.full_name)
    if user.password is not None:
        user.hashed_password = hash_password(user.password)
        user.password = None
    if not user.hashed_password:
        raise ValidationFailed("Password is required")
    if user.role not in ROLES:
        raise ValidationFailed("Invalid role specified")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user = store.create(User(email="a@b.co", full_name="Ann Lee", password="s3cret!"))
        same = store.find_by_email(" A@B.CO ")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by email after trim + lowercase. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by role then email."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.role, _users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (count or 0) > 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        Raises DuplicateEmail if the normalized email already exists. The
        check is the UNIQUE constraint itself, so it holds under concurrent
        inserts. The password is hashed before the connection is opened so the
        bcrypt cost does not extend the write transaction.
        """
        user.email = normalize_email(user.email)
        _prepare_for_write(user)
        now = _now_iso()
        user.id = user.id or uuid.uuid4().hex
        user.created_at = user.created_at or now
        user.updated_at = now
        try:
            with self.engine.begin() as conn:
                conn.execute(_users.insert().values(**_user_columns(user)))
        except IntegrityError as exc:
            # ck_users_role cannot fire here (_prepare_for_write checked role),
            # so any integrity failure is the email or id uniqueness.
            raise DuplicateEmail() from exc
        return user

    def save(self, user: User) -> User:
        """Persist the mutable fields of an existing user.

        Always refreshes updated_at. Raises DuplicateEmail if an email change
        collides with another account.
        """
        if user.id is None:
            raise ValueError("save() requires a persisted user; use create()")
        user.email = normalize_email(user.email)
        _prepare_for_write(user)
        user.updated_at = _now_iso()
        columns = _user_columns(user)
        del columns["id"], columns["created_at"]
        try:
            with self.engine.begin() as conn:
                conn.execute(_users.update().where(_users.c.id == user.id).values(**columns))
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return user

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _user_columns(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "hashed_password": user.hashed_password,
        "role": user.role,
        "avatar": user.avatar,
        "is_active": user.is_active,
        "last_login": user.last_login,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        first_name=row.first_name,
        last_name=row.last_name,
        hashed_password=row.hashed_password,
        role=row.role,
        avatar=row.avatar,
        is_active=bool(row.is_active),
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
