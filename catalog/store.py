"""
catalog/store.py -- SQLAlchemy-backed persistence layer for catalog products.

Uses SQLAlchemy Core (not ORM) so the dataclass in catalog/models.py remains
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. CatalogStore is the repository;
_row_to_product is the mapper. Route handlers never touch SQL directly.

Ownership: the store itself makes no ownership decision. update() and
delete() accept an optional owner_id that is folded into the WHERE clause,
so a caller that passes it can only ever touch its own rows. The explicit
allow/deny decision is catalog/guard.py's job, applied by catalog/service.py.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CatalogStore()                               # database_url from settings
    store = CatalogStore("postgresql://user:pw@host/db") # PostgreSQL
    product_id = store.create(Product(name="Mug", price=Decimal("9.50"), stock=3), owner_id)
    store.list_by_owner(owner_id)
    store.update(product_id, {"stock": 2}, owner_id=owner_id)
    store.close()
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, Numeric, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from catalog.models import Product
from core.config import get_settings

logger = logging.getLogger("negocehub.catalog.store")

# Columns a product update may touch. owner_id, id and created_at are absent on purpose.
UPDATABLE_FIELDS = frozenset({"name", "description", "price", "stock", "image_url"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("seller_id", String(36), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("price", Numeric(12, 2), nullable=False),
    Column("stock", Integer, nullable=False, server_default="0"),
    Column("image_url", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_product(row) -> Product:
    m = row._mapping
    return Product(
        id=m["id"],
        owner_id=m["seller_id"],
        name=m["name"],
        description=m["description"] or "",
        price=Decimal(m["price"]),
        stock=m["stock"],
        image_url=m["image_url"],
        created_at=m["created_at"],
        updated_at=m["updated_at"],
    )


def _check_amounts(fields: dict) -> None:
    """Reject negative price/stock before they reach the database."""
    if "price" in fields and Decimal(fields["price"]) < 0:
        raise ValueError("price must be non-negative")
    if "stock" in fields and int(fields["stock"]) < 0:
        raise ValueError("stock must be non-negative")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CatalogStore:
    """Repository for Product records (the catalog access layer)."""

    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_all(self) -> list[Product]:
        """Return every product, newest first. Buyer view; no scoping."""
        with self.engine.connect() as conn:
            rows = conn.execute(_products.select().order_by(_products.c.id.desc())).fetchall()
        return [_row_to_product(r) for r in rows]

    def list_by_owner(self, owner_id: str) -> list[Product]:
        """Return the products owned by owner_id, newest first. Seller view."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _products.select().where(_products.c.seller_id == owner_id).order_by(_products.c.id.desc())
            ).fetchall()
        return [_row_to_product(r) for r in rows]

    def get(self, product_id: int) -> Optional[Product]:
        """Return a single product, or None if it does not exist."""
        with self.engine.connect() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
        return _row_to_product(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, product: Product, owner_id: str) -> int:
        """Insert a product owned by owner_id and return its new id.

        product.owner_id is ignored; ownership always comes from the
        explicit argument so a caller cannot forge it through the payload.
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        _check_amounts({"price": product.price, "stock": product.stock})
        with self.engine.connect() as conn:
            result = conn.execute(
                _products.insert().values(
                    seller_id=owner_id,
                    name=product.name,
                    description=product.description or "",
                    price=Decimal(product.price),
                    stock=int(product.stock),
                    image_url=product.image_url,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            product_id = result.inserted_primary_key[0]
        logger.info("Product created id=%s owner=%s", product_id, owner_id)
        return product_id

    def update(self, product_id: int, fields: dict, owner_id: Optional[str] = None) -> bool:
        """Update mutable fields on a product.

        When owner_id is given the UPDATE only matches a row owned by it.
        Unknown field names raise ValueError.

        Returns True if a row was updated, False if no row matched.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown product fields: {sorted(unknown)}")
        _check_amounts(fields)
        values = dict(fields)
        values["updated_at"] = _now_iso()
        stmt = _products.update().where(_products.c.id == product_id)
        if owner_id is not None:
            stmt = stmt.where(_products.c.seller_id == owner_id)
        with self.engine.connect() as conn:
            result = conn.execute(stmt.values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete(self, product_id: int, owner_id: Optional[str] = None) -> bool:
        """Delete a product. Returns True if a row was deleted.

        When owner_id is given the DELETE only matches a row owned by it.
        """
        stmt = _products.delete().where(_products.c.id == product_id)
        if owner_id is not None:
            stmt = stmt.where(_products.c.seller_id == owner_id)
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        """Dispose of the connection pool."""
        self.engine.dispose()
