"""
Order Module - Status State Machine
=====================================
Single gateway for every Order.status change.

  pending ──► processing ──► paid ──► delivered
     │            │           ▲
     │            ▼           │
     │      payment_failed ───┘
     │            │
     ▼            ▼
  confirmed ──► delivered          (cash on delivery)

  pending / processing / payment_failed / confirmed ──► cancelled (admin)

Rules:
  * same-state transitions are no-ops (no write, no log row)
  * the current status is re-read under a row lock before every write
  * `paid` is only reachable by the processor actor
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.exceptions import InvalidStateError, NotFoundError, UnauthorizedError
from common.helpers import now_utc
from modules.order.models import Order, OrderStatus, OrderStatusLog

logger = logging.getLogger("homelyeats.order")


class Actor(str, enum.Enum):
    SYSTEM = "system"          # payment coordinator
    PROCESSOR = "processor"    # verified webhook / synchronous confirmation
    ADMIN = "admin"


S = OrderStatus

TRANSITIONS: Dict[Tuple[OrderStatus, OrderStatus], FrozenSet[Actor]] = {
    (S.PENDING, S.PROCESSING): frozenset({Actor.SYSTEM}),
    (S.PAYMENT_FAILED, S.PROCESSING): frozenset({Actor.SYSTEM}),
    (S.PENDING, S.CONFIRMED): frozenset({Actor.SYSTEM}),
    (S.PAYMENT_FAILED, S.CONFIRMED): frozenset({Actor.SYSTEM}),
    (S.PROCESSING, S.PAID): frozenset({Actor.PROCESSOR}),
    (S.PAYMENT_FAILED, S.PAID): frozenset({Actor.PROCESSOR}),
    (S.PROCESSING, S.PAYMENT_FAILED): frozenset({Actor.PROCESSOR}),
    (S.CONFIRMED, S.DELIVERED): frozenset({Actor.ADMIN}),
    (S.PAID, S.DELIVERED): frozenset({Actor.ADMIN}),
    (S.PENDING, S.CANCELLED): frozenset({Actor.ADMIN}),
    (S.PROCESSING, S.CANCELLED): frozenset({Actor.ADMIN}),
    (S.PAYMENT_FAILED, S.CANCELLED): frozenset({Actor.ADMIN}),
    (S.CONFIRMED, S.CANCELLED): frozenset({Actor.ADMIN}),
}

TERMINAL_STATES = frozenset({S.DELIVERED, S.CANCELLED})


@dataclass
class TransitionResult:
    order: Order
    old_status: OrderStatus
    changed: bool


def allowed_actors(current: OrderStatus, target: OrderStatus) -> FrozenSet[Actor]:
    return TRANSITIONS.get((OrderStatus(current), OrderStatus(target)), frozenset())


def can_transition(current: OrderStatus, target: OrderStatus, actor: Actor) -> bool:
    if OrderStatus(current) == OrderStatus(target):
        return True
    return Actor(actor) in allowed_actors(current, target)


class OrderStatusMachine:

    def lock_order(self, db: Session, order_id: int) -> Order:
        """Fresh, row-locked read of the order. Never served from the identity map."""
        order = (
            db.query(Order)
            .filter(Order.id == order_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def transition(
        self,
        db: Session,
        order_id: int,
        target: OrderStatus,
        actor: Actor,
        description: Optional[str] = None,
        changes: Optional[dict] = None,
    ) -> TransitionResult:
        """
        Move an order to `target` on behalf of `actor` and commit.
        `changes` are extra column values written in the same commit
        (e.g. payment_intent_ref, payment_method).

        Raises InvalidStateError for an illegal target,
        UnauthorizedError when the actor may not perform the move.
        """
        target = OrderStatus(target)
        actor = Actor(actor)

        order = self.lock_order(db, order_id)
        current = OrderStatus(order.status)

        if current == target:
            db.rollback()  # release the row lock
            return TransitionResult(order=order, old_status=current, changed=False)

        actors = allowed_actors(current, target)
        if not actors:
            db.rollback()
            raise InvalidStateError(f"Order {order_id} cannot move from {current.value} to {target.value}")
        if actor not in actors:
            db.rollback()
            raise UnauthorizedError(f"{actor.value} may not move order {order_id} to {target.value}")

        try:
            for key, value in (changes or {}).items():
                setattr(order, key, value)
            order.status = target.value
            order.updated_at = now_utc()
            db.add(OrderStatusLog(
                order_id=order.id,
                old_status=current.value,
                new_status=target.value,
                actor=actor.value,
                description=description,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Status write failed for order #{order_id} ({current.value} -> {target.value}): {e}")
            raise

        db.refresh(order)
        logger.info(f"Order #{order_id}: {current.value} -> {target.value} by {actor.value}")
        return TransitionResult(order=order, old_status=current, changed=True)
