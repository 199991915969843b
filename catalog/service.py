"""
catalog/service.py -- Owner-scoped catalog operations.

Every mutation follows the same three steps:
  1. load the product (missing -> NotFoundError)
  2. ask OwnershipGuard for a Decision (DENY -> NotFoundError, same message)
  3. call the store with owner_id folded into the WHERE clause

Step 3 repeats step 2's constraint at the query level, so a refactor that
drops the guard call still cannot mutate another owner's row.

A denial and a missing record produce the same NotFoundError: a caller
cannot learn whether a product it does not own exists.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import Optional

from catalog.guard import Decision, OwnershipGuard
from catalog.models import Product
from catalog.store import CatalogStore
from core.errors import InputValidationError, NotFoundError, backing_store

logger = logging.getLogger("negocehub.catalog")

_NOT_FOUND = "Product not found"


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """backing_store() plus the store's ValueError input checks as InputValidationError."""
    try:
        with backing_store(operation, logger):
            yield
    except ValueError as exc:
        raise InputValidationError(str(exc)) from exc


class CatalogService:
    def __init__(self, store: CatalogStore, guard: Optional[OwnershipGuard] = None) -> None:
        self._store = store
        self._guard = guard or OwnershipGuard()

    def list_all(self) -> list[Product]:
        with _store_errors("list_all"):
            return self._store.list_all()

    def list_mine(self, actor_id: str) -> list[Product]:
        with _store_errors("list_mine"):
            return self._store.list_by_owner(actor_id)

    def get(self, product_id: int) -> Product:
        with _store_errors("get"):
            product = self._store.get(product_id)
        if product is None:
            raise NotFoundError(_NOT_FOUND)
        return product

    def create(
        self,
        actor_id: str,
        name: str,
        price: Decimal,
        stock: int,
        description: str = "",
        image_url: Optional[str] = None,
    ) -> Product:
        """Create a product owned by the acting identity and return it."""
        product = Product(name=name, price=price, stock=stock, description=description, image_url=image_url)
        with _store_errors("create"):
            product_id = self._store.create(product, owner_id=actor_id)
        return self.get(product_id)

    def update(self, actor_id: str, product_id: int, fields: dict) -> Product:
        """Apply a partial update to a product the actor owns and return it."""
        self._authorize(actor_id, product_id)
        if fields:
            with _store_errors("update"):
                updated = self._store.update(product_id, fields, owner_id=actor_id)
            if not updated:
                # Deleted between the guard check and the write
                raise NotFoundError(_NOT_FOUND)
        return self.get(product_id)

    def delete(self, actor_id: str, product_id: int) -> None:
        self._authorize(actor_id, product_id)
        with _store_errors("delete"):
            deleted = self._store.delete(product_id, owner_id=actor_id)
        if not deleted:
            raise NotFoundError(_NOT_FOUND)
        logger.info("Product deleted id=%s owner=%s", product_id, actor_id)

    def _authorize(self, actor_id: str, product_id: int) -> Product:
        product = self.get(product_id)
        if self._guard.check(actor_id, product) is Decision.DENY:
            raise NotFoundError(_NOT_FOUND)
        return product
