from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z


DIRECTION_IN = "in"
DIRECTION_OUT = "out"

VALID_DIRECTIONS = (DIRECTION_IN, DIRECTION_OUT)


class Category(db.Model):
    """Product grouping. Maintained by catalog management."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
        }


class Product(db.Model):
    """
    Product master data plus the authoritative stock quantity.

    STOCK OWNERSHIP:
    - Product.stock is written ONLY by stock_ledger_service.apply_delta.
    - Catalog management may edit price/metadata but never stock.
    - Every stock change is paired with exactly one Movement row.

    min_stock is a signalling threshold (low-stock dashboards); it never blocks a sale.
    Inactive products are not sale-eligible.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_active_name", "is_active", "name"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Movement(db.Model):
    """
    Append-only audit record of a single stock change.

    - One row per ledger delta (manual in/out, or one per sale line).
    - Never updated or deleted; corrections are compensating entries.
    - Order is (occurred_at, id); id is the insertion-order tiebreaker.
    - sale_id links sale-induced movements back to their Sale (lookup only).
    """
    __tablename__ = "movements"
    __table_args__ = (
        db.Index("ix_movements_occurred", "occurred_at", "id"),
        db.Index("ix_movements_product_occurred", "product_id", "occurred_at"),
        db.CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    direction = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    actor_name = db.Column(db.String(128), nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    sale_id = db.Column(db.String(64), nullable=True, index=True)

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.direction == DIRECTION_IN else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "direction": self.direction,
            "quantity": self.quantity,
            "occurred_at": to_utc_z(self.occurred_at),
            "actor_user_id": self.actor_user_id,
            "actor_name": self.actor_name,
            "reason": self.reason,
            "sale_id": self.sale_id,
        }


class ImmutableRecordError(RuntimeError):
    """Raised when code tries to update or delete an append-only record."""


def reject_mutation(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} rows are append-only")


event.listen(Movement, "before_update", reject_mutation)
event.listen(Movement, "before_delete", reject_mutation)
