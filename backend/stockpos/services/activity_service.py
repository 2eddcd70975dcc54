# Overview: Service-layer read models for dashboards; activity feed and summary figures.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Movement, Product, Sale
from ..time_utils import to_utc_z, utcnow
"""
Read Model Invariants

- Pure projections over the Sale store, the Movement log and Product stock.
- Recomputed on every call; nothing is cached, nothing is written.
- Sale-induced movements are already represented by their Sale and are left
  out of the feed.
"""

KIND_SALE = "sale"
KIND_MOVEMENT = "movement"


@dataclass(frozen=True)
class ActivityEntry:
    kind: str
    occurred_at: datetime
    payload: dict

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "occurred_at": to_utc_z(self.occurred_at),
            "payload": self.payload,
        }


def feed(limit: int = 20) -> list[ActivityEntry]:
    """
    Sales and non-sale movements merged newest first, truncated to limit.

    Each source is read already sorted and capped at limit, so the merge never
    needs more than 2 * limit rows. Equal timestamps are ordered by kind, then id,
    so repeated calls over unchanged data return identical output.
    """
    if limit <= 0:
        return []

    sales = db.session.query(Sale).order_by(
        Sale.occurred_at.desc(), Sale.id.desc()
    ).limit(limit).all()

    movements = db.session.query(Movement).filter(
        Movement.sale_id.is_(None)
    ).order_by(
        Movement.occurred_at.desc(), Movement.id.desc()
    ).limit(limit).all()

    keyed = [((sale.occurred_at, KIND_SALE, str(sale.id)), sale) for sale in sales]
    keyed += [((movement.occurred_at, KIND_MOVEMENT, f"{movement.id:012d}"), movement) for movement in movements]
    keyed.sort(key=lambda pair: pair[0], reverse=True)

    return [
        ActivityEntry(kind=key[1], occurred_at=key[0], payload=record.to_dict())
        for key, record in keyed[:limit]
    ]


def _sales_between(start: datetime, end: datetime) -> tuple[int, int]:
    total, count = db.session.query(
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.count(Sale.id),
    ).filter(
        Sale.occurred_at >= start,
        Sale.occurred_at < end,
    ).one()
    return int(total or 0), int(count or 0)


def dashboard_summary(now: datetime | None = None) -> dict:
    """
    Headline figures for the dashboard.

    Day and week windows are computed in UTC; weeks start on Monday.
    """
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)
    tomorrow = today + timedelta(days=1)
    week_start = today - timedelta(days=today.weekday())
    last_week_start = week_start - timedelta(days=7)

    inventory_value = db.session.query(
        func.coalesce(func.sum(Product.price_cents * Product.stock), 0)
    ).filter(Product.is_active.is_(True), Product.stock > 0).scalar()

    low_stock_count = db.session.query(func.count(Product.id)).filter(
        Product.is_active.is_(True),
        Product.stock <= Product.min_stock,
    ).scalar()

    pending_total = db.session.query(
        func.coalesce(func.sum(Sale.pending_amount_cents), 0)
    ).filter(Sale.is_credit.is_(True)).scalar()

    today_total, today_count = _sales_between(today, tomorrow)
    yesterday_total, yesterday_count = _sales_between(yesterday, today)
    week_total, week_count = _sales_between(week_start, tomorrow)
    last_week_total, last_week_count = _sales_between(last_week_start, week_start)

    return {
        "as_of": to_utc_z(now),
        "inventory_value_cents": int(inventory_value or 0),
        "low_stock_count": int(low_stock_count or 0),
        "credit_pending_cents": int(pending_total or 0),
        "sales_today_cents": today_total,
        "sales_today_count": today_count,
        "sales_yesterday_cents": yesterday_total,
        "sales_yesterday_count": yesterday_count,
        "sales_week_cents": week_total,
        "sales_week_count": week_count,
        "sales_last_week_cents": last_week_total,
        "sales_last_week_count": last_week_count,
    }
