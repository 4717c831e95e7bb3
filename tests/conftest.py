"""
Shared fixtures for the HomelyEats test suite.

Every test gets its own app with a private in-memory SQLite database,
a fake payment processor (real Stripe signature verification, no network)
and a pairing advisor wired to an httpx.MockTransport.
"""

import hashlib
import hmac
import json
import os
import threading
import time
from typing import Dict, Optional

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["AUTH_JWT_AUDIENCE"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["OPENAI_API_KEY"] = "sk-test"

import httpx
import pytest
from fastapi.testclient import TestClient

from common.exceptions import ExternalServiceError
from common.security import create_token
from config.database import Base
from main import create_app
from modules.ai.service import PairingAdvisor
from modules.catalog.models import Category, Dish
from modules.payment.gateways import IntentResult, IntentStatus
from modules.payment.gateways.stripe_gateway import StripeProcessor
from modules.user.models import Profile

WEBHOOK_SECRET = "whsec_test"


# ============================================================================
# Fakes
# ============================================================================


class FakeProcessor(StripeProcessor):
    """StripeProcessor without network calls. Webhook verification is real."""

    def __init__(self):
        super().__init__(secret_key="", webhook_secret=WEBHOOK_SECRET)
        self.created = []
        self.intents: Dict[str, IntentStatus] = {}
        self.fail_create = False
        self.next_intent_id: Optional[str] = None
        self.delay = 0.0
        self.entered = threading.Event()

    def create_intent(self, amount_minor, currency, metadata):
        self.entered.set()
        if self.delay:
            time.sleep(self.delay)
        if self.fail_create:
            raise ExternalServiceError("Failed to start payment")
        intent_id = self.next_intent_id or f"pi_test_{len(self.created) + 1}"
        self.next_intent_id = None
        self.created.append({"amount": amount_minor, "currency": currency, "metadata": dict(metadata)})
        self.intents[intent_id] = IntentStatus(
            intent_id=intent_id,
            status="requires_payment_method",
            amount=amount_minor,
            order_id=int(metadata["orderId"]),
        )
        return IntentResult(intent_id=intent_id, client_secret=f"{intent_id}_secret_abc")

    def retrieve_intent(self, intent_id):
        if intent_id not in self.intents:
            raise ExternalServiceError("Failed to verify payment")
        return self.intents[intent_id]

    def mark(self, intent_id: str, status: str):
        self.intents[intent_id].status = status


class ChatHandler:
    """httpx.MockTransport handler returning a canned chat completion."""

    def __init__(self, content: str = "Garlic Naan\nJeera Rice\nMango Lassi", status_code: int = 200):
        self.content = content
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "quota exceeded"}})
        return httpx.Response(200, json={
            "choices": [{"message": {"role": "assistant", "content": self.content}}],
        })


# ============================================================================
# App / DB fixtures
# ============================================================================


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def chat():
    return ChatHandler()


@pytest.fixture
def advisor(chat):
    return PairingAdvisor(
        api_key="sk-test",
        model="gpt-3.5-turbo",
        client=httpx.Client(transport=httpx.MockTransport(chat)),
    )


@pytest.fixture
def app(processor, advisor):
    application = create_app(database_url="sqlite://", processor=processor, advisor=advisor)
    Base.metadata.create_all(bind=application.state.engine)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def builder(app):
    return app.state.order_builder


@pytest.fixture
def machine(app):
    return app.state.status_machine


@pytest.fixture
def coordinator(app):
    return app.state.payment_coordinator


# ============================================================================
# Data helpers
# ============================================================================


def make_user(db, user_id: str = "user-1", is_admin: bool = False) -> Profile:
    user = Profile(id=user_id, full_name=user_id.title(), is_admin=is_admin, is_active=True)
    db.add(user)
    db.commit()
    return user


def make_dish(db, name: str = "Butter Chicken", price: int = 1250, available: bool = True) -> Dish:
    dish = Dish(name=name, price=price, is_available=available, image_url=f"/img/{name.lower()}.jpg")
    db.add(dish)
    db.commit()
    db.refresh(dish)
    return dish


def make_category(db, name: str = "Curries") -> Category:
    category = Category(name=name)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def auth_headers(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {create_token({'sub': user_id})}"}


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Stripe-Signature header value: t=<ts>,v1=HMAC-SHA256(secret, "<ts>.<payload>")."""
    ts = timestamp or int(time.time())
    signature = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


def intent_event(event_type: str, intent_id: str, order_id: Optional[int] = None, event_id: str = "evt_1") -> str:
    metadata = {"orderId": str(order_id)} if order_id is not None else {}
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent", "metadata": metadata}},
    })


def make_order(db, user_id: str = "user-1", status: str = "pending", total: int = 3200, **fields):
    """Order with a single item matching `total`."""
    from modules.order.models import Order, OrderItem

    order = Order(
        user_id=user_id,
        status=status,
        total_amount=total,
        delivery_address="12 Curry Lane",
        contact_number="555-0100",
        **fields,
    )
    db.add(order)
    db.commit()
    db.add(OrderItem(order_id=order.id, dish_name="Thali", quantity=1, price_at_time=total))
    db.commit()
    db.refresh(order)
    return order
