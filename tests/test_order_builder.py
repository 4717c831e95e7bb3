"""
Order builder tests.

Covers:
- Order + items persisted with price snapshots, total == sum of lines
- Preconditions (empty cart, blank address / contact)
- Compensating delete when item insertion fails (no orphan orders)
- Cart cleared only after success
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from common.exceptions import ExternalServiceError, UnauthorizedError, ValidationError
from conftest import make_dish, make_user
from modules.cart.service import CartStore, UserCartBackend
from modules.catalog.models import Dish
from modules.order.models import Order, OrderItem
from modules.order.service import DeliveryDetails
from modules.user.models import Profile


def _delivery(**overrides):
    data = dict(delivery_address="  12 Curry Lane  ", contact_number=" 555-0100 ", special_instructions="   ")
    data.update(overrides)
    return DeliveryDetails(**data)


@pytest.fixture
def cart(db):
    make_user(db)
    chicken = make_dish(db, "Butter Chicken", 1250)
    dal = make_dish(db, "Dal Tadka", 700)
    store = CartStore(UserCartBackend(db, "user-1"))
    store.add_item(chicken, qty=2)
    store.add_item(dal)
    return store


class TestBuild:

    def test_creates_order_with_snapshot(self, db, builder, cart):
        order = builder.build(db, "user-1", cart, _delivery())

        assert order.status == "pending"
        assert order.total_amount == 3200
        assert order.delivery_address == "12 Curry Lane"
        assert order.contact_number == "555-0100"
        assert order.special_instructions is None

        items = db.query(OrderItem).filter(OrderItem.order_id == order.id).order_by(OrderItem.id).all()
        assert [(i.dish_name, i.quantity, i.price_at_time) for i in items] == [
            ("Butter Chicken", 2, 1250),
            ("Dal Tadka", 1, 700),
        ]
        assert sum(i.quantity * i.price_at_time for i in items) == order.total_amount

    def test_cart_cleared_after_success(self, db, builder, cart):
        builder.build(db, "user-1", cart, _delivery())
        assert cart.is_empty()
        assert CartStore(UserCartBackend(db, "user-1")).is_empty()

    def test_clear_can_be_deferred(self, db, builder, cart):
        builder.build(db, "user-1", cart, _delivery(), clear_cart=False)
        assert cart.total_items() == 3

    def test_price_snapshot_not_recomputed(self, db, builder, cart):
        order = builder.build(db, "user-1", cart, _delivery())
        db.query(Dish).update({Dish.price: 9999})
        db.commit()

        reloaded = builder.get_order(db, order.id)
        assert reloaded.total_amount == 3200
        assert {i.price_at_time for i in reloaded.items} == {1250, 700}


class TestPreconditions:

    def test_empty_cart(self, db, builder):
        make_user(db)
        empty = CartStore(UserCartBackend(db, "user-1"))
        with pytest.raises(ValidationError):
            builder.build(db, "user-1", empty, _delivery())
        assert db.query(Order).count() == 0

    @pytest.mark.parametrize("field", ["delivery_address", "contact_number"])
    def test_blank_delivery_field(self, db, builder, cart, field):
        with pytest.raises(ValidationError):
            builder.build(db, "user-1", cart, _delivery(**{field: "   "}))
        assert db.query(Order).count() == 0
        assert cart.total_items() == 3


class TestCompensation:

    def test_item_failure_leaves_no_order_and_keeps_cart(self, db, builder, cart, monkeypatch):
        def boom(*args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(builder, "_insert_items", boom)

        with pytest.raises(ExternalServiceError) as exc:
            builder.build(db, "user-1", cart, _delivery())
        assert exc.value.message == "Failed to create order"

        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0
        assert cart.total_items() == 3
        assert CartStore(UserCartBackend(db, "user-1")).total_price() == 3200

    def test_discard_removes_items(self, db, builder, cart):
        order = builder.build(db, "user-1", cart, _delivery())
        assert builder.discard(db, order.id) is True
        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0


class TestQueries:

    def test_owner_or_admin(self, db, builder, cart):
        order = builder.build(db, "user-1", cart, _delivery())
        owner = db.get(Profile, "user-1")
        admin = make_user(db, "admin-1", is_admin=True)
        stranger = make_user(db, "user-2")

        assert builder.get_order_for_user(db, order.id, owner).id == order.id
        assert builder.get_order_for_user(db, order.id, admin).id == order.id
        with pytest.raises(UnauthorizedError):
            builder.get_order_for_user(db, order.id, stranger)

    def test_list_orders_rejects_unknown_status(self, db, builder):
        with pytest.raises(ValidationError):
            builder.list_orders(db, status="teleported")
