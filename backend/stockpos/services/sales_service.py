"""
Sales Service - atomic sale commit against the stock ledger

WHY: A sale is the one operation that touches stock, the movement log and the
sale store together. Everything is validated under per-product locks first, so
the mutating phase cannot fail halfway and leave a partial sale behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Sale, SaleItem, SalePayment
from ..models.inventory import DIRECTION_OUT
from ..models.sales import VALID_DOCUMENT_TYPES
from ..permissions import COMMIT_SALE
from ..time_utils import to_utc_z
from .concurrency import product_locks, run_with_retry
from .identifier_service import uuid_sale_id
from .movement_service import append_movement, next_occurred_at
from .payment_service import (
    PaymentMethodEntry,
    format_cents,
    parse_payment_methods,
    require_reconciled,
)
from .permission_service import require_actor, require_permission
from .stock_ledger_service import StockNotFound, apply_delta, load_product

logger = logging.getLogger(__name__)

SALE_ID_ATTEMPTS = 5


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFound(SaleError):
    pass


class ProductInactive(SaleError):
    pass


class OutOfStock(SaleError):
    pass


class SaleNotFound(SaleError):
    pass


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_cart(raw: Iterable) -> list[CartItem]:
    """Normalize cart input (CartItem objects or {"product_id", "quantity"} dicts)."""
    if raw is None or isinstance(raw, (str, bytes, dict)):
        raise SaleError("items must be a list")

    cart = []
    for index, item in enumerate(raw):
        if isinstance(item, CartItem):
            product_id, quantity = item.product_id, item.quantity
        elif isinstance(item, dict):
            product_id, quantity = item.get("product_id"), item.get("quantity")
        else:
            raise SaleError("cart items must be objects", details={"index": index})

        if not _is_int(product_id):
            raise SaleError("product_id must be an integer", details={"index": index})
        if not _is_int(quantity) or quantity <= 0:
            raise SaleError(
                "quantity must be a positive integer",
                details={"index": index, "product_id": product_id, "quantity": quantity},
            )
        cart.append(CartItem(product_id=product_id, quantity=quantity))

    if not cart:
        raise SaleError("Cannot commit sale with no items")
    return cart


def _load_and_validate(cart: Sequence[CartItem]) -> dict:
    """
    Resolve every product (row-locked) and check stock for the whole cart.

    Quantities are aggregated per product, so a product listed on two lines is
    checked against its combined quantity. All-or-nothing: raises before any
    mutation happens.
    """
    requested: dict[int, int] = {}
    for line in cart:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    products = {}
    for product_id in sorted(requested):
        try:
            product = load_product(product_id, lock=True)
        except StockNotFound:
            raise ProductNotFound("Product not found", details={"product_id": product_id})
        if not product.is_active:
            raise ProductInactive(
                "Product is inactive",
                details={"product_id": product_id, "product_name": product.name},
            )
        products[product_id] = product

    insufficient = []
    for product_id, qty in requested.items():
        on_hand = products[product_id].stock
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": products[product_id].name,
                "requested_quantity": qty,
                "on_hand": on_hand,
                "shortfall": qty - on_hand,
            })

    if insufficient:
        first = insufficient[0]
        raise OutOfStock(
            f"Insufficient stock for {first['product_name']}",
            details={
                "product_id": first["product_id"],
                "shortfall": first["shortfall"],
                "items": insufficient,
            },
        )

    return products


def _new_sale_id(factory: Callable[[], str]) -> str:
    for _ in range(SALE_ID_ATTEMPTS):
        candidate = str(factory())
        if db.session.get(Sale, candidate) is None:
            return candidate
        logger.warning("Sale id collision on %s, regenerating", candidate)
    raise SaleError("Could not generate a unique sale id")


def _find_by_idempotency_key(idempotency_key: str) -> Sale | None:
    return db.session.query(Sale).filter_by(idempotency_key=idempotency_key).first()


def _replay(existing: Sale, actor_id: int) -> Sale:
    if existing.actor_user_id != actor_id:
        raise SaleError(
            "idempotency_key already used for a different checkout",
            details={"sale_id": existing.id},
        )
    logger.info("Replaying sale %s for idempotency key %s", existing.id, existing.idempotency_key)
    return existing


def commit_sale(
    *,
    items: Iterable,
    document_type: str,
    actor_id: int,
    payment_methods: Iterable | None = None,
    is_credit: bool = False,
    observations: str | None = None,
    idempotency_key: str | None = None,
    id_factory: Callable[[], str] | None = None,
) -> Sale:
    """
    Turn a cart into a committed sale.

    STEPS (one DB transaction, under the locks of every product involved):
    1. Replay: an existing sale with the same idempotency_key is returned as-is.
    2. Validate: products exist, are active, and have stock for the whole cart.
    3. Reconcile: price lines from current product prices, total them, and
       reconcile the payment entries (PaymentMismatch when invalid).
    4. Commit: per line, apply a -quantity ledger delta and append one "out"
       movement with reason "Sale #<id>".
    5. Persist the Sale with name/price snapshots and return it.

    Steps 1-3 raise with zero side effects. Step 4 cannot fail on stock after
    step 2; any unexpected error rolls the whole transaction back.
    """
    actor = require_actor(actor_id)
    require_permission(actor, COMMIT_SALE)

    if document_type not in VALID_DOCUMENT_TYPES:
        raise SaleError(f"Invalid document type: {document_type}. Must be one of {list(VALID_DOCUMENT_TYPES)}")

    cart = parse_cart(items)
    methods = [
        entry if isinstance(entry, PaymentMethodEntry) else parse_payment_methods([entry])[0]
        for entry in (payment_methods or [])
    ]
    factory = id_factory or current_app.config.get("SALE_ID_FACTORY") or uuid_sale_id

    if idempotency_key:
        existing = _find_by_idempotency_key(idempotency_key)
        if existing is not None:
            return _replay(existing, actor.id)

    def _op():
        with product_locks.hold(line.product_id for line in cart):
            try:
                if idempotency_key:
                    existing = _find_by_idempotency_key(idempotency_key)
                    if existing is not None:
                        return _replay(existing, actor.id)

                products = _load_and_validate(cart)

                sale_items = []
                for position, line in enumerate(cart, start=1):
                    product = products[line.product_id]
                    sale_items.append(SaleItem(
                        position=position,
                        product_id=product.id,
                        product_name=product.name,
                        quantity=line.quantity,
                        unit_price_cents=product.price_cents,
                        subtotal_cents=product.price_cents * line.quantity,
                    ))
                total_cents = sum(item.subtotal_cents for item in sale_items)

                reconciliation = require_reconciled(total_cents, methods, is_credit)

                sale_id = _new_sale_id(factory)
                # Sale and its movements share one stamp from the movement-log clock
                occurred_at = next_occurred_at()
                reason = f"Sale #{sale_id}"

                for line in cart:
                    apply_delta(line.product_id, -line.quantity)
                    append_movement(
                        product=products[line.product_id],
                        direction=DIRECTION_OUT,
                        quantity=line.quantity,
                        actor=actor,
                        reason=reason,
                        sale_id=sale_id,
                        occurred_at=occurred_at,
                    )

                sale = Sale(
                    id=sale_id,
                    occurred_at=occurred_at,
                    document_type=document_type,
                    actor_user_id=actor.id,
                    actor_name=actor.name,
                    total_cents=total_cents,
                    paid_cents=reconciliation.paid_cents,
                    pending_amount_cents=reconciliation.pending_cents if is_credit else 0,
                    is_credit=bool(is_credit),
                    observations=observations,
                    idempotency_key=idempotency_key or None,
                    items=sale_items,
                    payments=[
                        SalePayment(
                            position=position,
                            entry_id=entry.entry_id or f"{sale_id}-{position}",
                            kind=entry.kind,
                            amount_cents=entry.amount_cents,
                        )
                        for position, entry in enumerate(methods, start=1)
                    ],
                )
                db.session.add(sale)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                if idempotency_key:
                    existing = _find_by_idempotency_key(idempotency_key)
                    if existing is not None:
                        return _replay(existing, actor.id)
                raise
            except Exception:
                db.session.rollback()
                raise

        logger.info(
            "Sale %s committed: lines=%s total_cents=%s credit=%s actor=%s",
            sale_id, len(cart), total_cents, bool(is_credit), actor.id,
        )
        return sale

    return run_with_retry(_op)


# =============================================================================
# SALE STORE READS
# =============================================================================

def get_sale(sale_id: str) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(limit: int | None = None) -> list[Sale]:
    query = db.session.query(Sale).order_by(Sale.occurred_at.desc(), Sale.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


# =============================================================================
# PRINTABLE RECEIPT
# =============================================================================

RECEIPT_WIDTH = 40


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    gap = max(1, width - len(left) - len(right))
    return f"{left}{' ' * gap}{right}"


def render_receipt(sale: Sale, *, store_name: str | None = None, currency_symbol: str | None = None) -> str:
    """Plain-text receipt/invoice suitable for a thermal printer or <pre> block."""
    store_name = store_name or current_app.config.get("STORE_NAME", "Main Store")
    symbol = currency_symbol or current_app.config.get("CURRENCY_SYMBOL", "S/")
    rule = "-" * RECEIPT_WIDTH

    def money(cents: int) -> str:
        return format_cents(cents, symbol)

    lines = [
        store_name.center(RECEIPT_WIDTH).rstrip(),
        sale.document_type.upper().center(RECEIPT_WIDTH).rstrip(),
        f"Sale #{sale.id}",
        f"Date: {to_utc_z(sale.occurred_at)}",
        f"Cashier: {sale.actor_name}",
        rule,
    ]

    for item in sale.items:
        lines.append(f"{item.quantity} x {item.product_name}")
        lines.append(_row(f"    {money(item.unit_price_cents)} each", money(item.subtotal_cents)))

    lines.append(rule)
    lines.append(_row("TOTAL", money(sale.total_cents)))
    for payment in sale.payments:
        lines.append(_row(f"Paid ({payment.kind})", money(payment.amount_cents)))
    if sale.is_credit:
        lines.append(_row("Pending (credit)", money(sale.pending_amount_cents)))

    if sale.observations:
        lines.append(rule)
        lines.append(f"Observations: {sale.observations}")

    return "\n".join(lines) + "\n"
