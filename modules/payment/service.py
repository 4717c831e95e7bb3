"""
Payment Module - Coordinator
==============================
Drives an order through the payment lifecycle:

  * create_intent()          - card: processor intent, order -> processing
  * choose_cash()            - cash on delivery, order -> confirmed
  * confirm_payment()        - verified synchronous confirmation (retrieve)
  * handle_processor_event() - signed webhook events -> paid / payment_failed

The Order row is the single source of truth. All status writes go through
OrderStatusMachine.
"""

import enum
import logging
from typing import Optional

from sqlalchemy.orm import Session

from common.exceptions import (
    ExternalServiceError, InvalidStateError, NotFoundError,
    UnauthorizedError, ValidationError,
)
from modules.order.models import Order, OrderStatus, PaymentMethod
from modules.order.status import Actor, OrderStatusMachine
from modules.payment.gateways import (
    BaseProcessor, IntentResult, ProcessorEvent,
    EVENT_SUCCEEDED, EVENT_FAILED, INTENT_SUCCEEDED,
)

logger = logging.getLogger("homelyeats.payment")

PAYABLE_STATES = (OrderStatus.PENDING.value, OrderStatus.PAYMENT_FAILED.value)


class EventOutcome(str, enum.Enum):
    APPLIED = "applied"        # status changed
    DUPLICATE = "duplicate"    # replay, order already in target state
    IGNORED = "ignored"        # irrelevant type, superseded intent, or illegal move
    UNMATCHED = "unmatched"    # no order found


class PaymentCoordinator:

    def __init__(self, processor: BaseProcessor, status_machine: OrderStatusMachine, currency: str = "usd"):
        self.processor = processor
        self.status_machine = status_machine
        self.currency = currency

    # ==========================================
    # 💳 Card: create intent
    # ==========================================

    def create_intent(
        self, db: Session, order_id: int, user_id: str, amount: Optional[int] = None,
    ) -> IntentResult:
        """
        Create a processor intent for the order total and move the order to
        processing. On processor failure the order is left untouched.
        """
        if amount is not None and amount <= 0:
            raise ValidationError("Amount must be greater than zero")

        order = self._payable_order(db, order_id, user_id)
        if order.total_amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if amount is not None and amount != order.total_amount:
            raise ValidationError("Amount does not match order total")

        try:
            result = self.processor.create_intent(
                order.total_amount,
                self.currency,
                {"orderId": str(order.id), "userId": str(user_id)},
            )
        except ExternalServiceError as e:
            logger.error(f"Intent creation failed for order #{order_id}: {e.message}")
            raise ExternalServiceError("Failed to start payment")

        transition = self.status_machine.transition(
            db, order.id, OrderStatus.PROCESSING, Actor.SYSTEM,
            description=f"Card payment started ({result.intent_id})",
            changes={
                "payment_intent_ref": result.intent_id,
                "payment_method": PaymentMethod.CARD.value,
            },
        )
        if not transition.changed:
            raise InvalidStateError("A payment is already in progress for this order")

        logger.info(f"Order #{order_id}: intent {result.intent_id} for {order.total_amount} {self.currency}")
        return result

    # ==========================================
    # 💵 Cash on delivery
    # ==========================================

    def choose_cash(self, db: Session, order_id: int, user_id: str) -> Order:
        order = self._payable_order(db, order_id, user_id)
        transition = self.status_machine.transition(
            db, order.id, OrderStatus.CONFIRMED, Actor.SYSTEM,
            description="Cash on delivery selected",
            changes={"payment_method": PaymentMethod.CASH.value},
        )
        return transition.order

    # ==========================================
    # ✅ Synchronous confirmation
    # ==========================================

    def confirm_payment(self, db: Session, order_id: int, user_id: str, intent_id: str) -> Order:
        """
        Client reports a finished card payment. The intent is re-fetched from
        the processor; the order only becomes paid if the intent is ours,
        for the right amount, and succeeded.
        """
        order = self._owned_order(db, order_id, user_id)
        if not intent_id or intent_id != order.payment_intent_ref:
            logger.warning(f"Order #{order_id}: confirmation for unknown intent {intent_id}")
            return order

        intent = self.processor.retrieve_intent(intent_id)

        if intent.order_id is not None and intent.order_id != order.id:
            logger.warning(f"Order #{order_id}: intent {intent_id} belongs to order #{intent.order_id}")
            return order
        if intent.amount != order.total_amount:
            logger.warning(
                f"Order #{order_id}: intent {intent_id} amount {intent.amount} "
                f"!= order total {order.total_amount}"
            )
            return order
        if intent.status != INTENT_SUCCEEDED:
            logger.info(f"Order #{order_id}: intent {intent_id} is {intent.status}, not marking paid")
            return order

        transition = self.status_machine.transition(
            db, order.id, OrderStatus.PAID, Actor.PROCESSOR,
            description=f"Payment {intent_id} confirmed",
        )
        return transition.order

    # ==========================================
    # 🔔 Webhook events
    # ==========================================

    def handle_processor_event(self, db: Session, event: ProcessorEvent) -> EventOutcome:
        """
        Apply a verified processor event. Never raises for unmatched or
        irrelevant events; database errors propagate so the processor retries.
        """
        if event.type == EVENT_SUCCEEDED:
            target = OrderStatus.PAID
        elif event.type == EVENT_FAILED:
            target = OrderStatus.PAYMENT_FAILED
        else:
            logger.info(f"Ignoring processor event {event.type} ({event.event_id})")
            return EventOutcome.IGNORED

        order = self._match_order(db, event)
        if not order:
            logger.warning(
                f"Unmatched processor event {event.type}: intent={event.intent_id} order={event.order_id}"
            )
            return EventOutcome.UNMATCHED

        superseded = bool(
            event.intent_id and order.payment_intent_ref and event.intent_id != order.payment_intent_ref
        )
        if superseded and target == OrderStatus.PAYMENT_FAILED:
            logger.info(
                f"Order #{order.id}: ignoring failure of superseded intent {event.intent_id} "
                f"(current {order.payment_intent_ref})"
            )
            return EventOutcome.IGNORED
        if superseded:
            logger.warning(
                f"Order #{order.id}: success reported for older intent {event.intent_id} "
                f"(current {order.payment_intent_ref})"
            )

        try:
            transition = self.status_machine.transition(
                db, order.id, target, Actor.PROCESSOR,
                description=f"{event.type} ({event.intent_id})",
            )
        except (InvalidStateError, UnauthorizedError) as e:
            logger.error(f"Order #{order.id}: cannot apply {event.type}: {e.message}")
            return EventOutcome.IGNORED

        if not transition.changed:
            logger.info(f"Order #{order.id}: duplicate {event.type} ({event.event_id})")
            return EventOutcome.DUPLICATE
        return EventOutcome.APPLIED

    # ==========================================
    # Private helpers
    # ==========================================

    def _owned_order(self, db: Session, order_id: int, user_id: str) -> Order:
        order = db.query(Order).filter(Order.id == order_id).populate_existing().first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.user_id != user_id:
            raise UnauthorizedError("You do not have access to this order")
        return order

    def _payable_order(self, db: Session, order_id: int, user_id: str) -> Order:
        order = self._owned_order(db, order_id, user_id)
        if order.status not in PAYABLE_STATES:
            raise InvalidStateError(f"Order {order_id} is {order.status} and cannot be paid")
        return order

    def _match_order(self, db: Session, event: ProcessorEvent) -> Optional[Order]:
        order = None
        if event.order_id is not None:
            order = db.query(Order).filter(Order.id == event.order_id).first()
        if order is None and event.intent_id:
            order = db.query(Order).filter(Order.payment_intent_ref == event.intent_id).first()
        return order
