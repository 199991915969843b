"""
catalog/models.py -- Domain dataclass for catalog products.

Pure data container with zero logic. Ownership rules live in
catalog/guard.py; persistence in catalog/store.py.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class Product:
    """An item a seller offers.

    owner_id is the id of the identity that created the product. It is set
    once by CatalogStore.create() and no update path accepts it.

    price is a non-negative Decimal (two decimal places in storage); stock is
    a non-negative integer. image_url is an opaque reference, never fetched.

    id is None before the record is written to the database.
    """

    name: str
    price: Decimal
    stock: int
    description: str = ""
    image_url: Optional[str] = None
    owner_id: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: Optional[str] = None
