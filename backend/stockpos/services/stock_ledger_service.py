# Overview: Service-layer operations for the stock ledger; the only writer of Product.stock.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update
"""
Stock Ledger Invariants (authoritative)

- Product.stock is mutated only by apply_delta().
- apply_delta() is a pure accounting primitive: it neither commits nor logs.
  Callers pair every successful delta with exactly one Movement append in the
  same DB transaction, and hold the product's lock (concurrency.product_locks).
- The ledger does not enforce a stock floor. Sales pre-validate sufficiency;
  manual stock-out consults ALLOW_NEGATIVE_MANUAL_STOCK.
"""


class LedgerError(Exception):
    """Raised for stock ledger errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StockNotFound(LedgerError):
    """Ledger read/write on an unknown product."""


class InsufficientStock(LedgerError):
    """A stock-out would take on-hand below zero where the policy forbids it."""


def load_product(product_id: int, *, lock: bool = False) -> Product:
    """
    Fetch a product for ledger work.

    With lock=True the row is selected FOR UPDATE and the identity map is
    refreshed, so the returned stock is the committed value at lock time and not
    a copy cached earlier in this session.
    """
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    product = query.first()
    if product is None:
        raise StockNotFound("Product not found", details={"product_id": product_id})
    return product


def apply_delta(product_id: int, quantity_delta: int) -> int:
    """Apply a signed stock delta and return the new on-hand quantity."""
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int):
        raise LedgerError("quantity_delta must be an integer")

    product = load_product(product_id, lock=True)
    product.stock = product.stock + quantity_delta
    db.session.flush()
    return product.stock


def get_stock(product_id: int) -> int:
    return load_product(product_id).stock


def list_low_stock(limit: int | None = None) -> list[Product]:
    """Active products at or below their min_stock threshold, lowest stock first."""
    query = db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock <= Product.min_stock,
    ).order_by(Product.stock.asc(), Product.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
