# Overview: Service-layer operations for payment; pure reconciliation of tendered amounts.

"""
Payment Allocation Service

WHY: A sale may be paid with several instruments (cash, QR, other) and may be
a credit sale that leaves a receivable. Reconciliation matches the tendered
amounts against the sale total and yields the paid/pending split.

DESIGN PRINCIPLES:
- Pure: no database access, no side effects. The checkout UI may call it
  speculatively and the sale processor re-runs it at commit time.
- Integer cents only. The non-credit check is exact equality, not a float
  tolerance.
- Credit sales must leave something pending (paid < total).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Sequence


class PaymentError(Exception):
    """Raised for payment operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidAmount(PaymentError):
    """Negative, fractional-cent or non-finite payment amount."""


class PaymentMismatch(PaymentError):
    """Tendered amounts do not reconcile with the sale total."""


# =============================================================================
# PAYMENT KINDS (CONSTANTS)
# =============================================================================

KIND_CASH = "cash"
KIND_QR = "qr"
KIND_OTHER = "other"

VALID_PAYMENT_KINDS = [
    KIND_CASH,
    KIND_QR,
    KIND_OTHER,
]


@dataclass(frozen=True)
class PaymentMethodEntry:
    kind: str
    amount_cents: int
    entry_id: str = ""


@dataclass(frozen=True)
class Reconciliation:
    paid_cents: int
    pending_cents: int
    valid: bool

    def to_dict(self) -> dict:
        return {
            "paid_cents": self.paid_cents,
            "pending_cents": self.pending_cents,
            "valid": self.valid,
        }


# =============================================================================
# AMOUNT PARSING
# =============================================================================

def to_cents(value) -> int:
    """
    Convert a major-unit amount ("12.50", 12.5, Decimal) to integer cents.

    Rejects negative and non-finite values with InvalidAmount. Floats carry
    binary noise (33.300000000000004 from a JS checkout) and are rounded half-up
    to the cent; strings and Decimals are exact, so "1.005" is rejected.
    """
    if isinstance(value, bool):
        raise InvalidAmount("amount must be a number", details={"amount": value})
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount("amount must be a number", details={"amount": value})

    if not amount.is_finite():
        raise InvalidAmount("amount must be finite", details={"amount": str(value)})
    if amount < 0:
        raise InvalidAmount("amount cannot be negative", details={"amount": str(value)})

    cents = amount * 100
    if isinstance(value, float):
        cents = cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    elif cents != cents.to_integral_value():
        raise InvalidAmount("amount cannot have fractions of a cent", details={"amount": str(value)})
    return int(cents)


def _coerce_cents(value) -> int:
    if isinstance(value, bool):
        raise InvalidAmount("amount_cents must be an integer", details={"amount_cents": value})
    if isinstance(value, int):
        cents = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        cents = int(value.strip())
    else:
        raise InvalidAmount("amount_cents must be an integer", details={"amount_cents": value})
    if cents < 0:
        raise InvalidAmount("amount cannot be negative", details={"amount_cents": cents})
    return cents


def parse_payment_methods(raw: Iterable[dict] | None) -> list[PaymentMethodEntry]:
    """
    Build PaymentMethodEntry objects from JSON payment entries.

    Each entry is {"kind": ..., "amount_cents": int} or {"kind": ..., "amount": "12.50"};
    "id" is optional and generated when missing.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes, dict)):
        raise PaymentError("payment_methods must be a list")

    entries = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise PaymentError("payment method entries must be objects", details={"index": index})

        kind = item.get("kind")
        if kind not in VALID_PAYMENT_KINDS:
            raise PaymentError(
                f"Invalid payment kind: {kind}. Must be one of {VALID_PAYMENT_KINDS}",
                details={"index": index},
            )

        if "amount_cents" in item:
            amount_cents = _coerce_cents(item["amount_cents"])
        elif "amount" in item:
            amount_cents = to_cents(item["amount"])
        else:
            raise InvalidAmount("payment method entry requires amount_cents or amount", details={"index": index})

        entry_id = str(item.get("id") or uuid.uuid4().hex[:12])
        entries.append(PaymentMethodEntry(kind=kind, amount_cents=amount_cents, entry_id=entry_id))
    return entries


# =============================================================================
# RECONCILIATION
# =============================================================================

def reconcile(total_cents: int, methods: Sequence[PaymentMethodEntry], is_credit: bool) -> Reconciliation:
    """
    Reconcile tendered amounts against a sale total.

    - paid = sum of entry amounts (negative entries raise InvalidAmount)
    - pending = max(0, total - paid)
    - non-credit sale is valid when paid == total
    - credit sale is valid when paid < total
    - an empty list is valid when total == 0, or for a credit sale with total > 0
    """
    if total_cents < 0:
        raise InvalidAmount("total cannot be negative", details={"total_cents": total_cents})

    paid = 0
    for entry in methods:
        if entry.amount_cents < 0:
            raise InvalidAmount(
                "amount cannot be negative",
                details={"entry_id": entry.entry_id, "amount_cents": entry.amount_cents},
            )
        paid += entry.amount_cents

    pending = max(0, total_cents - paid)

    if not methods:
        valid = total_cents == 0 or (is_credit and total_cents > 0)
    elif is_credit:
        valid = paid < total_cents
    else:
        valid = paid == total_cents

    return Reconciliation(paid_cents=paid, pending_cents=pending, valid=valid)


def require_reconciled(total_cents: int, methods: Sequence[PaymentMethodEntry], is_credit: bool) -> Reconciliation:
    """reconcile() that raises PaymentMismatch instead of returning valid=False."""
    result = reconcile(total_cents, methods, is_credit)
    if not result.valid:
        raise PaymentMismatch(
            "Payment does not match sale total",
            details={
                "paid_cents": result.paid_cents,
                "total_cents": total_cents,
                "is_credit": is_credit,
            },
        )
    return result


def get_tender_summary(methods: Iterable[PaymentMethodEntry]) -> dict:
    """
    Totals per payment kind.

    Returns:
        {"cash": 6000, "qr": 4000}
    """
    totals: dict[str, int] = {}
    for entry in methods:
        totals[entry.kind] = totals.get(entry.kind, 0) + entry.amount_cents
    return totals


def format_cents(cents: int, symbol: str = "S/") -> str:
    """Render cents for receipts: 123456 -> "S/ 1,234.56"."""
    sign = "-" if cents < 0 else ""
    major, minor = divmod(abs(cents), 100)
    return f"{sign}{symbol} {major:,}.{minor:02d}"
