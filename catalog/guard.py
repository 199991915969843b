"""
catalog/guard.py -- Resource ownership guard for product mutations.

The rule is a single comparison: an actor may update or delete a product
only if the actor is the product's owner. It lives in its own object, and
returns an explicit Decision, so every mutation path asks the question out
loud instead of relying on how some query happens to be scoped.
"""

from __future__ import annotations

import logging
from enum import Enum

from catalog.models import Product

logger = logging.getLogger("negocehub.catalog.guard")


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class OwnershipGuard:
    """Answers "may this actor mutate this product?"."""

    def check(self, actor_id: str, product: Product) -> Decision:
        if actor_id and product.owner_id is not None and actor_id == product.owner_id:
            return Decision.ALLOW
        logger.warning("Ownership denied: actor=%s product=%s", actor_id, product.id)
        return Decision.DENY
