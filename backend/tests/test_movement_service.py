"""
Movement log tests.

Verifies:
- Append-only ordering (newest first, id tiebreak)
- Manual in/out pairs one ledger delta with one movement
- Negative manual stock policy
- Permission enforcement
- Movements cannot be edited or deleted
"""

from datetime import datetime

import pytest

from stockpos.models import ImmutableRecordError, Movement
from stockpos.services import movement_service, stock_ledger_service
from stockpos.services.movement_service import MovementError
from stockpos.services.permission_service import ActorNotFound, PermissionDeniedError
from stockpos.services.stock_ledger_service import InsufficientStock, StockNotFound


class TestAppendAndList:

    def test_newest_first_with_id_tiebreak(self, db_session, make_product, admin):
        product = make_product()
        same_time = datetime(2026, 1, 1, 12, 0, 0)
        first = movement_service.append_movement(
            product=product, direction="in", quantity=1, actor=admin, occurred_at=same_time,
        )
        second = movement_service.append_movement(
            product=product, direction="in", quantity=2, actor=admin, occurred_at=same_time,
        )
        earlier = movement_service.append_movement(
            product=product, direction="out", quantity=1, actor=admin,
            occurred_at=datetime(2025, 12, 31, 9, 0, 0),
        )
        db_session.commit()

        ids = [m.id for m in movement_service.list_movements()]
        assert ids == [second.id, first.id, earlier.id]

    def test_timestamps_never_move_backwards(self, db_session, make_product, admin):
        product = make_product()
        future = datetime(2999, 1, 1)
        movement_service.append_movement(
            product=product, direction="in", quantity=1, actor=admin, occurred_at=future,
        )
        later = movement_service.append_movement(product=product, direction="in", quantity=1, actor=admin)
        assert later.occurred_at >= future

    def test_snapshots_names(self, db_session, make_product, admin):
        product = make_product(name="Office Chair")
        movement = movement_service.append_movement(
            product=product, direction="in", quantity=4, actor=admin, reason="Restock",
        )
        assert movement.product_name == "Office Chair"
        assert movement.actor_name == admin.name
        assert movement.signed_quantity == 4

    @pytest.mark.parametrize("direction,quantity", [("sideways", 1), ("in", 0), ("out", -2)])
    def test_rejects_bad_input(self, db_session, make_product, admin, direction, quantity):
        product = make_product()
        with pytest.raises(MovementError):
            movement_service.append_movement(
                product=product, direction=direction, quantity=quantity, actor=admin,
            )

    def test_filter_by_product_and_limit(self, db_session, make_product, admin):
        a = make_product()
        b = make_product()
        for _ in range(3):
            movement_service.append_movement(product=a, direction="in", quantity=1, actor=admin)
        movement_service.append_movement(product=b, direction="in", quantity=1, actor=admin)
        db_session.commit()

        assert len(movement_service.list_movements(product_id=a.id)) == 3
        assert len(movement_service.list_movements(limit=2)) == 2


class TestRegisterMovement:

    def test_stock_in(self, db_session, make_product, seller):
        product = make_product(stock=2)
        movement = movement_service.register_movement(
            product_id=product.id, direction="in", quantity=5, actor_id=seller.id, reason="Delivery",
        )

        assert stock_ledger_service.get_stock(product.id) == 7
        assert movement.direction == "in"
        assert movement.reason == "Delivery"
        assert movement.sale_id is None

    def test_stock_out(self, db_session, make_product, seller):
        product = make_product(stock=5)
        movement_service.register_movement(
            product_id=product.id, direction="out", quantity=5, actor_id=seller.id,
        )
        assert stock_ledger_service.get_stock(product.id) == 0

    def test_stock_out_below_zero_refused_by_default(self, db_session, make_product, seller):
        product = make_product(stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            movement_service.register_movement(
                product_id=product.id, direction="out", quantity=3, actor_id=seller.id,
            )

        assert exc_info.value.details["shortfall"] == 1
        assert stock_ledger_service.get_stock(product.id) == 2
        assert db_session.query(Movement).count() == 0

    def test_stock_out_below_zero_allowed_by_policy(self, app, db_session, make_product, seller):
        product = make_product(stock=2)
        app.config["ALLOW_NEGATIVE_MANUAL_STOCK"] = True
        try:
            movement_service.register_movement(
                product_id=product.id, direction="out", quantity=3, actor_id=seller.id, reason="Backorder",
            )
        finally:
            app.config["ALLOW_NEGATIVE_MANUAL_STOCK"] = False

        assert stock_ledger_service.get_stock(product.id) == -1
        assert db_session.query(Movement).count() == 1

    def test_unknown_product(self, db_session, seller):
        with pytest.raises(StockNotFound):
            movement_service.register_movement(
                product_id=12345, direction="in", quantity=1, actor_id=seller.id,
            )
        assert db_session.query(Movement).count() == 0

    def test_viewer_denied(self, db_session, make_product, viewer):
        product = make_product(stock=2)
        with pytest.raises(PermissionDeniedError):
            movement_service.register_movement(
                product_id=product.id, direction="in", quantity=1, actor_id=viewer.id,
            )
        assert stock_ledger_service.get_stock(product.id) == 2

    def test_unknown_actor(self, db_session, make_product):
        product = make_product()
        with pytest.raises(ActorNotFound):
            movement_service.register_movement(
                product_id=product.id, direction="in", quantity=1, actor_id=999,
            )


class TestImmutability:

    def test_update_rejected(self, db_session, make_product, admin):
        product = make_product()
        movement = movement_service.append_movement(product=product, direction="in", quantity=1, actor=admin)
        db_session.commit()

        movement.quantity = 50
        with pytest.raises(ImmutableRecordError):
            db_session.flush()
        db_session.rollback()

    def test_delete_rejected(self, db_session, make_product, admin):
        product = make_product()
        movement = movement_service.append_movement(product=product, direction="in", quantity=1, actor=admin)
        db_session.commit()

        db_session.delete(movement)
        with pytest.raises(ImmutableRecordError):
            db_session.flush()
        db_session.rollback()
