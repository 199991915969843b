"""
core/errors.py -- Domain exception taxonomy shared by the server and client.

Every class carries a machine-readable code, a user-facing message, and the
HTTP status the API layer maps it to. Stores and services raise these; only
api/main.py turns them into responses.

  InputValidationError     malformed input, fixable by the user        400
  ConflictError            duplicate email                             400
  InvalidCredentialsError  unknown email OR wrong password (one message) 400
  NotFoundError            missing record, or a record you do not own  404
  BackingStoreError        opaque persistence failure                  500
  ProviderError            identity provider failure (client side)
  ProvisioningError        profile insert failed after sign-up (client side)

backing_store() is the one place a SQLAlchemyError becomes a BackingStoreError.

Layer rule: core/ is the kernel. No imports from api/, auth/, catalog/, or client/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError


class MarketplaceError(Exception):
    """Base class for every error the application raises on purpose."""

    code = "error"
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(MarketplaceError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ConflictError(MarketplaceError):
    code = "conflict"
    status_code = 400
    default_message = "User already exists"


class EmailTakenError(ConflictError):
    """Raised by IdentityStore when the unique email index rejects a write."""


class InvalidCredentialsError(MarketplaceError):
    # Same message for unknown email and wrong password.
    code = "invalid_credentials"
    status_code = 400
    default_message = "Invalid credentials"


class NotFoundError(MarketplaceError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class BackingStoreError(MarketplaceError):
    code = "internal_error"
    status_code = 500
    default_message = "Server error"


class ProviderError(MarketplaceError):
    code = "provider_error"
    status_code = 502
    default_message = "Identity provider request failed"


class ProvisioningError(ProviderError):
    """Profile row could not be created for an identity the provider already holds."""

    code = "provisioning_error"
    default_message = "Account created but profile could not be saved"

    def __init__(self, identity_id: str, message: str | None = None) -> None:
        super().__init__(message)
        self.identity_id = identity_id


@contextmanager
def backing_store(operation: str, log: logging.Logger) -> Iterator[None]:
    """Log a SQLAlchemyError with its traceback and re-raise it as BackingStoreError.

    The driver's message stays in the log; the caller only sees "Server error".
    """
    try:
        yield
    except SQLAlchemyError as exc:
        log.exception("Backing store failure during %s", operation)
        raise BackingStoreError() from exc
