"""
Payment Routes
================
Card intent, cash on delivery, synchronous confirmation, Stripe webhook.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.database import get_db
from common.deps import get_payment_coordinator, get_payment_processor
from modules.auth.deps import require_login
from modules.payment.service import PaymentCoordinator

router = APIRouter(tags=["payment"])

webhook_logger = logging.getLogger("homelyeats.webhook")


# ==========================================
# Schemas
# ==========================================

class IntentRequest(BaseModel):
    order_id: int
    amount: Optional[int] = None


class IntentOut(BaseModel):
    client_secret: str
    payment_intent_id: str


class ConfirmRequest(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)


class PaymentStateOut(BaseModel):
    order_id: int
    status: str
    payment_method: Optional[str] = None


def _state_out(order) -> dict:
    return {"order_id": order.id, "status": order.status, "payment_method": order.payment_method}


# ==========================================
# 💳 Card Intent
# ==========================================

@router.post("/api/payments/intent", response_model=IntentOut)
def create_intent(
    body: IntentRequest,
    db: Session = Depends(get_db),
    me=Depends(require_login),
    coordinator: PaymentCoordinator = Depends(get_payment_coordinator),
):
    result = coordinator.create_intent(db, body.order_id, me.id, amount=body.amount)
    return {"client_secret": result.client_secret, "payment_intent_id": result.intent_id}


# ==========================================
# 💵 Cash on Delivery
# ==========================================

@router.post("/api/payments/{order_id}/cash", response_model=PaymentStateOut)
def choose_cash(
    order_id: int,
    db: Session = Depends(get_db),
    me=Depends(require_login),
    coordinator: PaymentCoordinator = Depends(get_payment_coordinator),
):
    order = coordinator.choose_cash(db, order_id, me.id)
    return _state_out(order)


# ==========================================
# ✅ Synchronous Confirmation
# ==========================================

@router.post("/api/payments/{order_id}/confirm", response_model=PaymentStateOut)
def confirm_payment(
    order_id: int,
    body: ConfirmRequest,
    db: Session = Depends(get_db),
    me=Depends(require_login),
    coordinator: PaymentCoordinator = Depends(get_payment_coordinator),
):
    order = coordinator.confirm_payment(db, order_id, me.id, body.payment_intent_id)
    return _state_out(order)


# ==========================================
# 🔔 Stripe Webhook
# ==========================================

@router.post("/api/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    processor=Depends(get_payment_processor),
    coordinator: PaymentCoordinator = Depends(get_payment_coordinator),
):
    """
    Signature is verified against the raw body before anything else
    (SignatureError -> 400). Unmatched and irrelevant events are
    acknowledged with 200; only a failed database write returns 500.
    """
    raw_body = await request.body()
    event = processor.construct_event(raw_body, request.headers.get("stripe-signature"))

    try:
        outcome = await run_in_threadpool(coordinator.handle_processor_event, db, event)
    except SQLAlchemyError as e:
        await run_in_threadpool(db.rollback)
        webhook_logger.error(f"Webhook {event.type} ({event.event_id}) failed to apply: {e}")
        return JSONResponse({"detail": "Failed to apply event"}, status_code=500)

    webhook_logger.info(f"Webhook {event.type} ({event.event_id}): {outcome.value}")
    return {"received": True, "outcome": outcome.value}
