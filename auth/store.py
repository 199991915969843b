"""
auth/store.py -- SQLAlchemy Core persistence layer for identities.

Pattern: Repository + Data Mapper (same as catalog/store.py).
IdentityStore is the repository; _row_to_identity is the mapper.
Gateway and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  hashed_password is the only credential column; plaintext never reaches
  this module.

Uniqueness:
  The UNIQUE index on users.email is the single arbiter of "already
  exists". The gateway's pre-check gives a friendly answer in the common
  case; a concurrent insert that slips past it still fails here and is
  translated into EmailTakenError.

Layer rule: no imports from api/, catalog/, or client/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Identity
from core.config import get_settings
from core.errors import EmailTakenError

logger = logging.getLogger("negocehub.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text),  # NULL for provider-managed identities
    Column("is_seller", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_PROFILE_FIELDS = {"name", "email"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode; set per-connection because PRAGMAs are not pooled."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _row_to_identity(row) -> Identity:
    m = row._mapping
    return Identity(
        id=m["id"],
        name=m["name"],
        email=m["email"],
        hashed_password=m["hashed_password"],
        is_seller=bool(m["is_seller"]),
        created_at=m["created_at"],
        updated_at=m["updated_at"],
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class IdentityStore:
    """Repository for Identity records.

    Usage:
        store = IdentityStore()
        identity_id = store.create_identity(Identity(name="Alice", email="a@x.com", hashed_password=h))
        identity = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_identity(self, identity: Identity) -> str:
        """Insert a new identity and return its id.

        Uses identity.id when the caller supplies one (provider-assigned ids),
        otherwise generates a UUID4. Raises EmailTakenError if the email is
        already registered.
        """
        identity_id = identity.id or str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=identity_id,
                        name=identity.name,
                        email=normalize_email(identity.email),
                        hashed_password=identity.hashed_password,
                        is_seller=identity.is_seller,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise EmailTakenError() from exc
        logger.info("Identity created id=%s", identity_id)
        return identity_id

    def get_by_id(self, identity_id: str) -> Identity | None:
        """Look up an identity by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == identity_id)).fetchone()
        return _row_to_identity(row) if row is not None else None

    def get_by_email(self, email: str) -> Identity | None:
        """Look up an identity by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_identity(row) if row is not None else None

    def update_profile(self, identity_id: str, **fields) -> bool:
        """Update name and/or email on an existing identity.

        Unknown field names raise ValueError -- only profile fields are
        writable here; the password hash and seller flag are not.
        Raises EmailTakenError if the new email belongs to someone else.

        Returns True if a row was updated, False if identity_id was not found.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        fields["updated_at"] = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == identity_id).values(**fields))
                conn.commit()
        except IntegrityError as exc:
            raise EmailTakenError("Email already in use") from exc
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        """Dispose of the connection pool."""
        self.engine.dispose()
