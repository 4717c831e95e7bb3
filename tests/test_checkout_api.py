"""
Checkout, order and admin order API tests.

Covers:
- POST /api/checkout for card, cash and deferred payment selection
- Processor or database failure at checkout: order discarded, cart intact
- Order history / detail access control
- Invoice download gating
- Admin status changes
"""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import auth_headers, make_dish, make_order, make_user
from modules.cart.models import CartItem
from modules.order.models import Order, OrderItem

CHECKOUT = {
    "delivery_address": "12 Curry Lane",
    "contact_number": "555-0100",
    "special_instructions": "Ring twice",
}


@pytest.fixture
def filled_cart(client, db):
    make_user(db)
    chicken = make_dish(db, "Butter Chicken", 1250)
    dal = make_dish(db, "Dal Tadka", 700)
    headers = auth_headers()
    client.post("/api/cart/items", json={"dish_id": chicken.id, "quantity": 2}, headers=headers)
    client.post("/api/cart/items", json={"dish_id": dal.id}, headers=headers)
    return headers


class TestCheckout:

    def test_card_checkout(self, client, db, processor, filled_cart):
        resp = client.post("/api/checkout", json={**CHECKOUT, "payment_method": "card"}, headers=filled_cart)
        assert resp.status_code == 201
        body = resp.json()

        assert body["order"]["total_amount"] == 3200
        assert body["order"]["status"] == "processing"
        assert body["order"]["payment_method"] == "card"
        assert body["client_secret"].startswith(body["payment_intent_id"])
        assert processor.created[0]["amount"] == 3200
        assert len(body["order"]["items"]) == 2

        assert db.query(CartItem).count() == 0

    def test_processor_failure_discards_order_and_keeps_cart(self, client, db, processor, filled_cart):
        processor.fail_create = True
        resp = client.post("/api/checkout", json={**CHECKOUT, "payment_method": "card"}, headers=filled_cart)

        assert resp.status_code == 502
        assert resp.json() == {"detail": "Failed to start payment"}
        db.expire_all()
        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0
        assert db.query(CartItem).count() == 2

        cart = client.get("/api/cart", headers=filled_cart).json()
        assert cart["total_price"] == 3200

    def test_database_failure_after_intent_discards_order(self, client, db, processor, machine, filled_cart, monkeypatch):
        def failing_transition(*args, **kwargs):
            raise OperationalError("UPDATE orders", {}, Exception("connection lost"))

        monkeypatch.setattr(machine, "transition", failing_transition)
        resp = client.post("/api/checkout", json={**CHECKOUT, "payment_method": "card"}, headers=filled_cart)

        assert resp.status_code == 502
        assert resp.json() == {"detail": "Failed to start payment"}
        assert len(processor.created) == 1
        db.expire_all()
        assert db.query(Order).all() == []
        assert db.query(OrderItem).count() == 0
        assert db.query(CartItem).count() == 2

    def test_cash_checkout(self, client, db, processor, filled_cart):
        resp = client.post("/api/checkout", json={**CHECKOUT, "payment_method": "cash"}, headers=filled_cart)
        assert resp.status_code == 201
        assert resp.json()["order"]["status"] == "confirmed"
        assert resp.json()["client_secret"] is None
        assert processor.created == []

    def test_deferred_payment_choice(self, client, filled_cart):
        resp = client.post("/api/checkout", json=CHECKOUT, headers=filled_cart)
        order = resp.json()["order"]
        assert order["status"] == "pending"
        assert order["payment_method"] is None

        resp = client.post(f"/api/payments/{order['id']}/cash", headers=filled_cart)
        assert resp.json()["status"] == "confirmed"

    def test_empty_cart_rejected(self, client, db):
        make_user(db)
        resp = client.post("/api/checkout", json=CHECKOUT, headers=auth_headers())
        assert resp.status_code == 400

    def test_blank_address_rejected(self, client, db, filled_cart):
        resp = client.post("/api/checkout", json={**CHECKOUT, "delivery_address": "  "}, headers=filled_cart)
        assert resp.status_code == 400
        assert db.query(Order).count() == 0

    def test_login_required(self, client):
        resp = client.post("/api/checkout", json=CHECKOUT)
        assert resp.status_code == 401


class TestPaymentAPI:

    def test_zero_amount_rejected(self, client, db, processor):
        make_user(db)
        order = make_order(db, total=3200)
        resp = client.post("/api/payments/intent", json={"order_id": order.id, "amount": 0}, headers=auth_headers())
        assert resp.status_code == 400
        assert processor.created == []

    def test_confirm_endpoint(self, client, db, processor):
        make_user(db)
        order = make_order(db, total=3200)
        intent = client.post("/api/payments/intent", json={"order_id": order.id}, headers=auth_headers()).json()
        processor.mark(intent["payment_intent_id"], "succeeded")

        resp = client.post(
            f"/api/payments/{order.id}/confirm",
            json={"payment_intent_id": intent["payment_intent_id"]},
            headers=auth_headers(),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "paid"


class TestOrders:

    def test_history_and_detail(self, client, db):
        make_user(db)
        make_user(db, "user-2")
        mine = make_order(db)
        theirs = make_order(db, user_id="user-2")

        listed = client.get("/api/orders", headers=auth_headers()).json()
        assert [o["id"] for o in listed] == [mine.id]

        assert client.get(f"/api/orders/{mine.id}", headers=auth_headers()).status_code == 200
        assert client.get(f"/api/orders/{theirs.id}", headers=auth_headers()).status_code == 403
        assert client.get("/api/orders/9999", headers=auth_headers()).status_code == 404

    def test_invoice_only_after_payment_or_confirmation(self, client, db):
        make_user(db)
        pending = make_order(db)
        confirmed = make_order(db, status="confirmed", payment_method="cash")

        assert client.get(f"/api/orders/{pending.id}/invoice", headers=auth_headers()).status_code == 409

        resp = client.get(f"/api/orders/{confirmed.id}/invoice", headers=auth_headers())
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")


class TestAdminOrders:

    def test_requires_admin(self, client, db):
        make_user(db)
        assert client.get("/api/admin/orders", headers=auth_headers()).status_code == 403
        assert client.get("/api/admin/orders").status_code == 401

    def test_list_with_filter(self, client, db):
        make_user(db, "admin-1", is_admin=True)
        make_user(db)
        make_order(db)
        paid = make_order(db, status="paid")

        resp = client.get("/api/admin/orders", params={"status": "paid"}, headers=auth_headers("admin-1"))
        assert [o["id"] for o in resp.json()] == [paid.id]

    def test_deliver_and_illegal_move(self, client, db):
        make_user(db, "admin-1", is_admin=True)
        make_user(db)
        order = make_order(db, status="paid", payment_method="card")
        admin = auth_headers("admin-1")

        resp = client.post(f"/api/admin/orders/{order.id}/status", json={"status": "delivered"}, headers=admin)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "delivered"
        assert [(l["old_status"], l["new_status"], l["actor"]) for l in body["status_logs"]] == [
            ("paid", "delivered", "admin"),
        ]

        resp = client.post(f"/api/admin/orders/{order.id}/status", json={"status": "pending"}, headers=admin)
        assert resp.status_code == 409

    def test_admin_cannot_mark_paid(self, client, db):
        make_user(db, "admin-1", is_admin=True)
        make_user(db)
        order = make_order(db, status="processing")
        resp = client.post(
            f"/api/admin/orders/{order.id}/status", json={"status": "paid"}, headers=auth_headers("admin-1"),
        )
        assert resp.status_code == 403
