"""
client/profiles.py -- Creates the application profile row for a new identity.

The identity provider keeps its own user record; the marketplace keeps a
separate row in its users table, keyed by the same id, holding the display
name and the seller flag. provision() writes that row once, right after
sign-up.

Not idempotent: a second call for the same id hits the table's primary key
and fails. Callers must not blindly retry a registration.
"""

from __future__ import annotations

import logging

from client.provider import ProfileTable
from core.errors import ProvisioningError

logger = logging.getLogger("negocehub.client.profiles")


class ProfileSynchronizer:
    def __init__(self, table: ProfileTable) -> None:
        self._table = table

    async def provision(self, identity_id: str, name: str, email: str) -> None:
        """Insert the profile row for identity_id.

        Any failure from the table is wrapped in ProvisioningError, which
        carries identity_id so the caller can report the orphaned identity.
        """
        record = {"id": identity_id, "name": name, "email": email.strip().lower(), "is_seller": False}
        try:
            await self._table.insert(record)
        except Exception as exc:
            logger.error("Profile provisioning failed for identity %s: %s", identity_id, exc)
            raise ProvisioningError(identity_id) from exc
        logger.info("Profile provisioned for identity %s", identity_id)
