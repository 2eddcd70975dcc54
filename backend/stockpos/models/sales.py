from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z
from .inventory import reject_mutation


DOCUMENT_RECEIPT = "receipt"
DOCUMENT_INVOICE = "invoice"

VALID_DOCUMENT_TYPES = (DOCUMENT_RECEIPT, DOCUMENT_INVOICE)


class Sale(db.Model):
    """
    Committed sale. Immutable once written.

    INVARIANTS (all amounts in cents):
    - total_cents == sum(items.subtotal_cents)
    - credit sale:     paid_cents + pending_amount_cents == total_cents
    - non-credit sale: paid_cents == total_cents, pending_amount_cents == 0

    Item names and prices are snapshots taken at commit time, so later catalog
    edits never change a historical receipt.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("idempotency_key", name="uq_sales_idempotency_key"),
        db.Index("ix_sales_occurred", "occurred_at"),
        db.CheckConstraint("pending_amount_cents >= 0", name="ck_sales_pending_non_negative"),
    )

    id = db.Column(db.String(64), primary_key=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
    document_type = db.Column(db.String(16), nullable=False, default=DOCUMENT_RECEIPT)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    actor_name = db.Column(db.String(128), nullable=False)

    total_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False)
    pending_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    is_credit = db.Column(db.Boolean, nullable=False, default=False)

    observations = db.Column(db.Text, nullable=True)

    # Client-supplied key per checkout attempt; a retry with the same key returns the original sale
    idempotency_key = db.Column(db.String(128), nullable=True)

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.position",
    )
    payments = db.relationship(
        "SalePayment",
        backref="sale",
        lazy=True,
        order_by="SalePayment.position",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id!r} total_cents={self.total_cents} credit={self.is_credit}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "occurred_at": to_utc_z(self.occurred_at),
            "document_type": self.document_type,
            "actor_user_id": self.actor_user_id,
            "actor_name": self.actor_name,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "pending_amount_cents": self.pending_amount_cents,
            "is_credit": self.is_credit,
            "observations": self.observations,
            "idempotency_key": self.idempotency_key,
            "items": [item.to_dict() for item in self.items],
            "payment_methods": [payment.to_dict() for payment in self.payments],
        }


class SaleItem(db.Model):
    """Line item snapshot on a committed sale."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "position", name="uq_sale_items_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }


class SalePayment(db.Model):
    """
    One payment-method entry tendered against a sale.

    KINDS:
    - cash: physical currency
    - qr: QR wallet transfer
    - other: anything else (card terminal, bank transfer, ...)
    """
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "position", name="uq_sale_payments_position"),
        db.CheckConstraint("amount_cents >= 0", name="ck_sale_payments_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    entry_id = db.Column(db.String(64), nullable=False)
    kind = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "kind": self.kind,
            "amount_cents": self.amount_cents,
        }


for _model in (Sale, SaleItem, SalePayment):
    event.listen(_model, "before_update", reject_mutation)
    event.listen(_model, "before_delete", reject_mutation)
