"""
auth/store.py -- SQLAlchemy Core persistence layer for credential records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route and flow code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is enforced by the UNIQUE constraint on users.email. The
  registration flow does a find_by_email() pre-check to return a fast 409, but
  the constraint is the only guarantee under concurrent registrations:
  create_user() turns the IntegrityError into DuplicateEmail.

  create_user() takes the plaintext password and hashes it before the insert,
  so a plaintext password never reaches the SQL layer.

Errors:
  Every SQLAlchemyError other than the uniqueness violation is re-raised as
  StorageError with the driver exception chained. Callers see typed errors
  only; the API layer logs the chain and returns a generic 500.

DB path: auth/passgate.db by default; any SQLAlchemy URL via DATABASE_URL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateEmail, StorageError
from auth.models import User
from auth.passwords import DEFAULT_ROUNDS, hash_password

logger = logging.getLogger("passgate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # always lowercased
    Column("password_hash", String(255), nullable=False),  # bcrypt, never plaintext
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
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


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///auth.db", bcrypt_rounds=12)
        store.create_table()
        user_id = store.create_user("a@b.com", "Abcdef1!", "Ada", "Byron")
        user = store.find_by_id(user_id)
        store.close()
    """

    def __init__(self, db_url: str, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.bcrypt_rounds = bcrypt_rounds
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)

    @contextmanager
    def _connect(self, action: str) -> Iterator[Connection]:
        """Yield a connection, converting driver failures into StorageError."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Storage failure during %s: %s", action, exc.__class__.__name__)
            raise StorageError() from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def check_connection(self) -> None:
        """Run SELECT 1. Raises StorageError if the database is unreachable."""
        with self._connect("connection check") as conn:
            conn.execute(text("SELECT 1"))

    def create_table(self) -> None:
        """Create the users table if it does not exist. Safe to call on every startup."""
        try:
            _metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            logger.error("Could not create users table: %s", exc.__class__.__name__)
            raise StorageError() from exc

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, email: str, password_plain: str, first_name: str, last_name: str) -> int:
        """Hash the password, insert a new user, and return its assigned ID.

        Raises DuplicateEmail if the email is already registered (detected by
        the UNIQUE constraint, not a pre-check) and StorageError for any other
        database failure.
        """
        password_hash = hash_password(password_plain, self.bcrypt_rounds)
        now = _now_iso()
        try:
            with self._connect("create_user") as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=normalize_email(email),
                        password_hash=password_hash,
                        first_name=first_name,
                        last_name=last_name,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return result.inserted_primary_key[0]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive), including the password hash.

        Only the login and registration flows call this. Never hand the result
        to a serializer without dropping password_hash first.
        """
        with self._connect("find_by_email") as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. The returned record has password_hash=None."""
        with self._connect("find_by_id") as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            return None
        return replace(_row_to_user(row), password_hash=None)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        first_name=row.first_name,
        last_name=row.last_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
