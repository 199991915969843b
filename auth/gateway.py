"""
auth/gateway.py -- Register/login/profile use cases for the custom-auth path.

The gateway is stateless: every call stands alone, touching only the
IdentityStore and the token issuer. Input has already been shape-checked
by the Pydantic request models at the HTTP boundary, so the gateway starts
at the business rules:

  register: email taken?  -> ConflictError
            hash, insert (is_seller=False), issue token
  login:    authenticate_identity() -> InvalidCredentialsError (one message
            for unknown email and wrong password), issue token

SQLAlchemy failures are logged here with their traceback and re-raised as
BackingStoreError, whose message is generic -- the caller never sees the
driver's text.

Layer rule: no imports from api/, catalog/, or client/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from auth.models import Identity
from auth.store import IdentityStore, normalize_email
from auth.tokens import authenticate_identity, create_access_token, hash_password
from core.errors import ConflictError, InvalidCredentialsError, NotFoundError, backing_store

logger = logging.getLogger("negocehub.auth.gateway")


class AuthGateway:
    """Stateless request handlers for the password + JWT pathway.

    issue_token is injectable so tests can exercise signing failures; it
    defaults to auth.tokens.create_access_token.
    """

    def __init__(self, store: IdentityStore, issue_token: Callable[[str], str] = create_access_token) -> None:
        self._store = store
        self._issue_token = issue_token

    def register(self, name: str, email: str, password: str) -> str:
        """Create an identity and return a bearer token for it."""
        with backing_store("register", logger):
            if self._store.get_by_email(email) is not None:
                raise ConflictError("User already exists")
            identity = Identity(
                name=name.strip(),
                email=normalize_email(email),
                hashed_password=hash_password(password),
                is_seller=False,
            )
            try:
                identity_id = self._store.create_identity(identity)
            except ConflictError:
                # Lost a race with a concurrent registration for the same email
                raise ConflictError("User already exists") from None
        return self._issue_token(identity_id)

    def login(self, email: str, password: str) -> str:
        """Verify credentials and return a bearer token."""
        with backing_store("login", logger):
            identity = authenticate_identity(self._store, email, password)
        if identity is None:
            logger.info("Rejected login attempt")
            raise InvalidCredentialsError()
        return self._issue_token(identity.id)

    def get_profile(self, identity_id: str) -> Identity:
        with backing_store("get_profile", logger):
            identity = self._store.get_by_id(identity_id)
        if identity is None:
            raise NotFoundError("User not found")
        return identity

    def update_profile(self, identity_id: str, name: str | None = None, email: str | None = None) -> Identity:
        """Apply a partial name/email update and return the fresh record.

        Only supplied fields change. Switching to an email owned by another
        identity raises ConflictError; re-submitting your own is a no-op.
        """
        current = self.get_profile(identity_id)
        fields: dict[str, str] = {}
        if name:
            fields["name"] = name.strip()
        if email:
            new_email = normalize_email(email)
            if new_email != current.email:
                with backing_store("update_profile", logger):
                    if self._store.get_by_email(new_email) is not None:
                        raise ConflictError("Email already in use")
                fields["email"] = new_email
        if not fields:
            return current
        with backing_store("update_profile", logger):
            try:
                updated = self._store.update_profile(identity_id, **fields)
            except ConflictError:
                raise ConflictError("Email already in use") from None
        if not updated:
            raise NotFoundError("User not found")
        return self.get_profile(identity_id)
