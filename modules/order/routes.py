"""
Order Routes
==============
Checkout, order history, order detail, invoice download.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.database import get_db
from common.deps import get_order_builder, get_payment_coordinator, get_invoice_renderer
from common.exceptions import ExternalServiceError, HomelyEatsError, InvalidStateError
from modules.auth.deps import require_login
from modules.cart.deps import get_cart_store, persist_cart_cookie
from modules.cart.service import CartStore
from modules.order.models import OrderStatus, PaymentMethod
from modules.order.service import DeliveryDetails, OrderBuilder
from modules.payment.service import PaymentCoordinator

router = APIRouter(prefix="/api", tags=["order"])

logger = logging.getLogger("homelyeats.order")

INVOICE_STATES = (OrderStatus.PAID.value, OrderStatus.CONFIRMED.value, OrderStatus.DELIVERED.value)


# ==========================================
# Schemas
# ==========================================

class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    dish_id: Optional[int] = None
    dish_name: str
    image_url: Optional[str] = None
    quantity: int
    price_at_time: int
    line_total: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    total_amount: int
    delivery_address: str
    contact_number: str
    special_instructions: Optional[str] = None
    payment_method: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class CheckoutRequest(BaseModel):
    delivery_address: str
    contact_number: str
    special_instructions: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


class CheckoutOut(BaseModel):
    order: OrderOut
    client_secret: Optional[str] = None
    payment_intent_id: Optional[str] = None


# ==========================================
# 🧾 Checkout
# ==========================================

@router.post("/checkout", response_model=CheckoutOut, status_code=201)
def checkout(
    body: CheckoutRequest,
    response: Response,
    db: Session = Depends(get_db),
    me=Depends(require_login),
    cart: CartStore = Depends(get_cart_store),
    builder: OrderBuilder = Depends(get_order_builder),
    coordinator: PaymentCoordinator = Depends(get_payment_coordinator),
):
    """
    1. Build the order from the cart (cart kept for now)
    2. card: create a payment intent / cash: confirm for delivery
    3. Clear the cart only once every step succeeded

    If step 2 fails the order is discarded and the cart stays intact.
    """
    delivery = DeliveryDetails(
        delivery_address=body.delivery_address,
        contact_number=body.contact_number,
        special_instructions=body.special_instructions,
    )
    order_id = builder.build(db, me.id, cart, delivery, clear_cart=False).id

    intent = None
    try:
        if body.payment_method == PaymentMethod.CARD:
            intent = coordinator.create_intent(db, order_id, me.id)
        elif body.payment_method == PaymentMethod.CASH:
            coordinator.choose_cash(db, order_id, me.id)
    except HomelyEatsError:
        builder.discard(db, order_id)
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Checkout payment step failed for order #{order_id}: {e}")
        builder.discard(db, order_id)
        raise ExternalServiceError("Failed to start payment")

    cart.clear()
    persist_cart_cookie(response, cart)

    return {
        "order": builder.get_order(db, order_id),
        "client_secret": intent.client_secret if intent else None,
        "payment_intent_id": intent.intent_id if intent else None,
    }


# ==========================================
# 📦 Orders
# ==========================================

@router.get("/orders", response_model=List[OrderOut])
def my_orders(
    db: Session = Depends(get_db),
    me=Depends(require_login),
    builder: OrderBuilder = Depends(get_order_builder),
):
    return builder.get_user_orders(db, me.id)


@router.get("/orders/{order_id}", response_model=OrderOut)
def order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
    builder: OrderBuilder = Depends(get_order_builder),
):
    return builder.get_order_for_user(db, order_id, me)


# ==========================================
# 🧾 Invoice PDF
# ==========================================

@router.get("/orders/{order_id}/invoice")
def order_invoice(
    order_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
    builder: OrderBuilder = Depends(get_order_builder),
    renderer=Depends(get_invoice_renderer),
):
    order = builder.get_order_for_user(db, order_id, me)
    if order.status not in INVOICE_STATES:
        raise InvalidStateError("Invoice is available once the order is paid or confirmed")

    pdf = renderer.render(order, order.items)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="invoice-{order.id}.pdf"'},
    )
