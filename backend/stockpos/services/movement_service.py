# Overview: Service-layer operations for the movement log; append-only audit of stock changes.

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Movement, Product, User
from ..models.inventory import DIRECTION_IN, DIRECTION_OUT, VALID_DIRECTIONS
from ..permissions import REGISTER_MOVEMENT
from ..time_utils import utcnow
from .concurrency import product_locks, run_with_retry
from .permission_service import require_actor, require_permission
from .stock_ledger_service import InsufficientStock, apply_delta, load_product
"""
Movement Log Invariants (authoritative)

- Append-only: no update or delete operation exists (ORM guards reject both).
- Exactly one Movement per ledger delta, written in the same DB transaction.
- occurred_at never moves backwards; ties are broken by id (insertion order).
- Reads are ordered newest first: occurred_at DESC, id DESC.
"""

logger = logging.getLogger(__name__)


class MovementError(Exception):
    """Raised for movement operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def next_occurred_at():
    """Movement-log clock: wall time, but never earlier than the latest movement."""
    now = utcnow()
    latest = db.session.query(func.max(Movement.occurred_at)).scalar()
    if latest is not None and latest > now:
        return latest
    return now


def append_movement(
    *,
    product: Product,
    direction: str,
    quantity: int,
    actor: User,
    reason: str | None = None,
    sale_id: str | None = None,
    occurred_at=None,
) -> Movement:
    """
    Append one movement row. Flushes (id assigned) but does not commit.

    The caller owns the surrounding transaction and the ledger delta this
    movement records.
    """
    if direction not in VALID_DIRECTIONS:
        raise MovementError(f"Invalid direction: {direction}. Must be one of {list(VALID_DIRECTIONS)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise MovementError("quantity must be a positive integer", details={"quantity": quantity})

    movement = Movement(
        product_id=product.id,
        product_name=product.name,
        direction=direction,
        quantity=quantity,
        occurred_at=occurred_at or next_occurred_at(),
        actor_user_id=actor.id,
        actor_name=actor.name,
        reason=reason,
        sale_id=sale_id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def list_movements(*, product_id: int | None = None, limit: int | None = None) -> list[Movement]:
    query = db.session.query(Movement)
    if product_id is not None:
        query = query.filter(Movement.product_id == product_id)
    query = query.order_by(Movement.occurred_at.desc(), Movement.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def register_movement(
    *,
    product_id: int,
    direction: str,
    quantity: int,
    actor_id: int,
    reason: str | None = None,
) -> Movement:
    """
    Manual stock in/out from the inventory screen.

    A stock-out larger than on-hand is refused with InsufficientStock unless
    ALLOW_NEGATIVE_MANUAL_STOCK is set (backorders).
    """
    actor = require_actor(actor_id)
    require_permission(actor, REGISTER_MOVEMENT)

    if direction not in VALID_DIRECTIONS:
        raise MovementError(f"Invalid direction: {direction}. Must be one of {list(VALID_DIRECTIONS)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise MovementError("quantity must be a positive integer", details={"quantity": quantity})

    allow_negative = bool(current_app.config.get("ALLOW_NEGATIVE_MANUAL_STOCK", False))

    def _op():
        with product_locks.hold([product_id]):
            try:
                product = load_product(product_id, lock=True)

                if direction == DIRECTION_OUT and not allow_negative and quantity > product.stock:
                    raise InsufficientStock(
                        "Stock-out would make on-hand negative",
                        details={
                            "product_id": product_id,
                            "requested_quantity": quantity,
                            "on_hand": product.stock,
                            "shortfall": quantity - product.stock,
                        },
                    )

                delta = quantity if direction == DIRECTION_IN else -quantity
                new_stock = apply_delta(product_id, delta)
                movement = append_movement(
                    product=product,
                    direction=direction,
                    quantity=quantity,
                    actor=actor,
                    reason=reason,
                )
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

        logger.info(
            "Movement %s recorded: product=%s direction=%s quantity=%s stock=%s",
            movement.id, product_id, direction, quantity, new_stock,
        )
        return movement

    return run_with_retry(_op)
