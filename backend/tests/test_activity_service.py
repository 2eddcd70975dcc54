"""
Dashboard read model tests.

Feed rows are inserted with explicit timestamps so ordering is deterministic.
"""

from datetime import datetime, timedelta

from stockpos.models import Movement, Sale
from stockpos.services import activity_service, movement_service, sales_service
from stockpos.time_utils import utcnow

from conftest import cash


def add_movement(db_session, product, actor, occurred_at, *, direction="in", quantity=1, sale_id=None):
    movement = Movement(
        product_id=product.id,
        product_name=product.name,
        direction=direction,
        quantity=quantity,
        occurred_at=occurred_at,
        actor_user_id=actor.id,
        actor_name=actor.name,
        reason="Restock" if sale_id is None else f"Sale #{sale_id}",
        sale_id=sale_id,
    )
    db_session.add(movement)
    db_session.commit()
    return movement


def add_sale(db_session, sale_id, actor, occurred_at, *, total_cents=1000, is_credit=False, paid_cents=None):
    paid = total_cents if paid_cents is None else paid_cents
    sale = Sale(
        id=sale_id,
        occurred_at=occurred_at,
        document_type="receipt",
        actor_user_id=actor.id,
        actor_name=actor.name,
        total_cents=total_cents,
        paid_cents=paid,
        pending_amount_cents=total_cents - paid if is_credit else 0,
        is_credit=is_credit,
    )
    db_session.add(sale)
    db_session.commit()
    return sale


class TestFeed:

    def test_merges_newest_first(self, db_session, make_product, seller):
        product = make_product()
        add_movement(db_session, product, seller, datetime(2026, 3, 1, 9, 0))
        add_sale(db_session, "S-1", seller, datetime(2026, 3, 1, 10, 0))
        add_movement(db_session, product, seller, datetime(2026, 3, 1, 11, 0), direction="out")
        add_sale(db_session, "S-2", seller, datetime(2026, 3, 1, 12, 0))

        entries = activity_service.feed(10)

        assert [entry.kind for entry in entries] == ["sale", "movement", "sale", "movement"]
        assert entries[0].payload["id"] == "S-2"
        assert entries[1].payload["direction"] == "out"
        assert entries[2].payload["id"] == "S-1"

    def test_sale_movements_are_not_repeated(self, db_session, make_product, seller):
        product = make_product()
        add_sale(db_session, "S-1", seller, datetime(2026, 3, 1, 10, 0))
        add_movement(db_session, product, seller, datetime(2026, 3, 1, 10, 0), direction="out", sale_id="S-1")
        manual = add_movement(db_session, product, seller, datetime(2026, 3, 1, 9, 0))

        entries = activity_service.feed(10)

        assert [(entry.kind, entry.payload["id"]) for entry in entries] == [
            ("sale", "S-1"),
            ("movement", manual.id),
        ]

    def test_committed_sale_shows_once(self, db_session, make_product, seller):
        product = make_product(price_cents=500, stock=5)
        sale = sales_service.commit_sale(
            items=[{"product_id": product.id, "quantity": 2}],
            document_type="receipt",
            actor_id=seller.id,
            payment_methods=[cash(1000)],
        )

        entries = activity_service.feed(10)

        assert len(entries) == 1
        assert entries[0].kind == "sale"
        assert entries[0].payload["id"] == sale.id

    def test_sale_after_future_stamped_movement_heads_feed(self, db_session, make_product, seller):
        product = make_product(price_cents=500, stock=5)
        ahead = utcnow() + timedelta(hours=1)
        manual = add_movement(db_session, product, seller, ahead)

        sale = sales_service.commit_sale(
            items=[{"product_id": product.id, "quantity": 1}],
            document_type="receipt",
            actor_id=seller.id,
            payment_methods=[cash(500)],
        )

        assert sale.occurred_at >= ahead
        movements = movement_service.list_movements()
        assert movements[0].sale_id == sale.id
        assert movements[0].occurred_at == sale.occurred_at

        entries = activity_service.feed(10)
        assert [(entry.kind, entry.payload["id"]) for entry in entries] == [
            ("sale", sale.id),
            ("movement", manual.id),
        ]

    def test_truncates_to_limit(self, db_session, make_product, seller):
        product = make_product()
        for hour in range(1, 6):
            add_movement(db_session, product, seller, datetime(2026, 3, 1, hour, 0))
            add_sale(db_session, f"S-{hour}", seller, datetime(2026, 3, 1, hour, 30))

        entries = activity_service.feed(3)

        assert len(entries) == 3
        assert [entry.occurred_at.hour for entry in entries] == [5, 5, 4]
        assert [entry.kind for entry in entries] == ["sale", "movement", "sale"]

    def test_ties_are_stable(self, db_session, make_product, seller):
        product = make_product()
        moment = datetime(2026, 3, 1, 10, 0)
        first = add_movement(db_session, product, seller, moment)
        second = add_movement(db_session, product, seller, moment)
        add_sale(db_session, "S-1", seller, moment)

        entries = activity_service.feed(10)

        assert [entry.kind for entry in entries] == ["sale", "movement", "movement"]
        assert [entry.payload["id"] for entry in entries[1:]] == [second.id, first.id]
        assert [e.to_dict() for e in activity_service.feed(10)] == [e.to_dict() for e in entries]

    def test_non_positive_limit(self, db_session, make_product, seller):
        add_sale(db_session, "S-1", seller, datetime(2026, 3, 1, 10, 0))
        assert activity_service.feed(0) == []
        assert activity_service.feed(-5) == []

    def test_empty_store(self, db_session):
        assert activity_service.feed(20) == []

    def test_entry_serialization(self, db_session, seller):
        add_sale(db_session, "S-1", seller, datetime(2026, 3, 1, 10, 0))
        data = activity_service.feed(1)[0].to_dict()
        assert data["kind"] == "sale"
        assert data["occurred_at"] == "2026-03-01T10:00:00.000000Z"
        assert data["payload"]["total_cents"] == 1000


class TestDashboardSummary:

    # Wednesday
    NOW = datetime(2026, 3, 11, 15, 0)

    def test_sales_windows(self, db_session, seller):
        add_sale(db_session, "TODAY", seller, datetime(2026, 3, 11, 9, 0), total_cents=5000)
        add_sale(db_session, "YESTERDAY", seller, datetime(2026, 3, 10, 18, 0), total_cents=2000)
        add_sale(db_session, "MONDAY", seller, datetime(2026, 3, 9, 0, 0), total_cents=1000)
        add_sale(db_session, "LAST-SUNDAY", seller, datetime(2026, 3, 8, 23, 59), total_cents=700)
        add_sale(db_session, "LAST-MONDAY", seller, datetime(2026, 3, 2, 8, 0), total_cents=300)
        add_sale(db_session, "OLD", seller, datetime(2026, 2, 1, 8, 0), total_cents=99900)

        summary = activity_service.dashboard_summary(now=self.NOW)

        assert summary["sales_today_cents"] == 5000
        assert summary["sales_today_count"] == 1
        assert summary["sales_yesterday_cents"] == 2000
        assert summary["sales_week_cents"] == 8000
        assert summary["sales_week_count"] == 3
        assert summary["sales_last_week_cents"] == 1000
        assert summary["sales_last_week_count"] == 2
        assert summary["as_of"] == "2026-03-11T15:00:00.000000Z"

    def test_inventory_figures(self, db_session, make_product):
        make_product(price_cents=1000, stock=4, min_stock=5)
        make_product(price_cents=250, stock=10, min_stock=2)
        make_product(price_cents=9999, stock=50, is_active=False)

        summary = activity_service.dashboard_summary(now=self.NOW)

        assert summary["inventory_value_cents"] == 4 * 1000 + 10 * 250
        assert summary["low_stock_count"] == 1

    def test_credit_pending(self, db_session, seller):
        add_sale(db_session, "C-1", seller, self.NOW, total_cents=10000, is_credit=True, paid_cents=6000)
        add_sale(db_session, "C-2", seller, self.NOW, total_cents=500, is_credit=True, paid_cents=0)
        add_sale(db_session, "PAID", seller, self.NOW, total_cents=800)

        summary = activity_service.dashboard_summary(now=self.NOW)

        assert summary["credit_pending_cents"] == 4500

    def test_empty_store(self, db_session):
        summary = activity_service.dashboard_summary(now=self.NOW)
        assert summary["inventory_value_cents"] == 0
        assert summary["sales_today_count"] == 0
        assert summary["credit_pending_cents"] == 0
