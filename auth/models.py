"""
auth/models.py -- Domain dataclass for registered identities.

Pattern: Data class (pure data container, zero logic). Mirrors
catalog/models.py -- dataclasses own domain shape; stores and the gateway do
the work.

Layer rule: no imports from api/, catalog/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Identity:
    """One registered person, independent of how they log in.

    email is unique across all identities and is stored normalized
    (stripped, lower-cased) so uniqueness is case-insensitive.

    hashed_password is None for identities whose credentials live with the
    external identity provider (the client session path provisions these
    rows through the profile synchronizer).

    id is None before the record is written; the store assigns a UUID unless
    the caller already has one from the identity provider.
    """

    name: str
    email: str
    id: str | None = None
    hashed_password: str | None = None
    is_seller: bool = False
    created_at: str | None = None
    updated_at: str | None = None
