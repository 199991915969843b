"""
auth/tokens.py -- Password hashing and JWT issuance/verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the identity id (sub), issued-at and expiry. Expiry is fixed at
       issuance; there is no refresh and no revocation list, so validity is
       decided by signature and exp alone. Verification returns None on any
       failure -- the auth dependency turns that into a 401.

  Passwords: bcrypt with a fresh salt per hash. The _DUMMY_HASH constant
       enables timing equalization in authenticate_identity() so response
       time does not reveal whether an email is registered.

  SECRET_KEY: sourced from core.config.get_settings(), validated at startup.

Layer rule: no imports from api/, catalog/, or client/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import Identity
    from auth.store import IdentityStore

logger = logging.getLogger("negocehub.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def _secret_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Each call draws a new salt, so hashing the same password twice yields
    two different strings that both verify. Cost comes from
    Settings.bcrypt_rounds. Only the first 72 bytes of the UTF-8 encoding
    count, which is all bcrypt ever reads.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(_secret_bytes(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(_secret_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Malformed or non-bcrypt hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("negocehub_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(identity_id: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT bound to an identity.

    Args:
        identity_id:    Identity primary key, stored as the sub claim.
        expire_seconds: Lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds.

    Encoding errors are deliberately not caught: a token that cannot be
    signed fails the request with a 500.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity_id,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


# ---------------------------------------------------------------------------
# Identity authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_identity(store: IdentityStore, email: str, password: str) -> Identity | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the email exists:
    - Unknown email or provider-managed identity: bcrypt runs against _DUMMY_HASH
    - Wrong password: bcrypt runs against the real hash

    Returns the Identity on success, None on any failure. Callers must not
    tell the two failure cases apart.
    """
    identity = store.get_by_email(email)
    if identity is None or identity.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, identity.hashed_password):
        return None
    return identity
