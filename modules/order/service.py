"""
Order Module - Service Layer
===============================
Turns a cart snapshot into a persisted Order + OrderItems.

The order row is committed first, then the items. If the items cannot be
written the order is deleted again (compensating action) so no order without
items survives. The cart is cleared only after both writes succeeded.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from common.exceptions import ExternalServiceError, NotFoundError, UnauthorizedError, ValidationError
from common.helpers import clean_text
from modules.cart.service import CartLine, CartStore
from modules.order.models import Order, OrderItem, OrderStatus
from modules.user.models import Profile

logger = logging.getLogger("homelyeats.order")


@dataclass
class DeliveryDetails:
    delivery_address: str
    contact_number: str
    special_instructions: Optional[str] = None


class OrderBuilder:

    # ==========================================
    # Build
    # ==========================================

    def build(
        self,
        db: Session,
        user_id: str,
        cart: CartStore,
        delivery: DeliveryDetails,
        clear_cart: bool = True,
    ) -> Order:
        """
        Create a pending order from the cart.
        1. Validate cart + delivery fields
        2. Insert Order (commit)
        3. Insert one OrderItem per cart line (commit), compensate on failure
        4. Clear the cart (unless the caller defers it)
        """
        lines = cart.snapshot()
        if not lines:
            raise ValidationError("Cart is empty")

        address = clean_text(delivery.delivery_address)
        if not address:
            raise ValidationError("Delivery address is required")
        contact = clean_text(delivery.contact_number)
        if not contact:
            raise ValidationError("Contact number is required")

        total = sum(line.line_total for line in lines)

        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=total,
            delivery_address=address,
            contact_number=contact,
            special_instructions=clean_text(delivery.special_instructions),
        )
        try:
            db.add(order)
            db.commit()
            db.refresh(order)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Order insert failed for user {user_id}: {e}")
            raise ExternalServiceError("Failed to create order")

        try:
            self._insert_items(db, order, lines)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Order #{order.id} items insert failed, removing order: {e}")
            self.discard(db, order.id)
            raise ExternalServiceError("Failed to create order")

        logger.info(f"Order #{order.id} created for user {user_id}: {len(lines)} lines, total {total}")

        if clear_cart:
            cart.clear()
        return order

    def _insert_items(self, db: Session, order: Order, lines: Sequence[CartLine]):
        db.add_all([
            OrderItem(
                order_id=order.id,
                dish_id=line.dish_id,
                dish_name=line.name,
                image_url=line.image_url,
                quantity=line.quantity,
                price_at_time=line.unit_price,
            )
            for line in lines
        ])
        db.commit()

    # ==========================================
    # Compensating delete
    # ==========================================

    def discard(self, db: Session, order_id: int) -> bool:
        """Delete a just-created order and its items. Returns False if the delete failed."""
        try:
            db.query(OrderItem).filter(OrderItem.order_id == order_id).delete()
            db.query(Order).filter(Order.id == order_id).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to discard order #{order_id}: {e}")
            return False
        logger.warning(f"Order #{order_id} discarded")
        return True

    # ==========================================
    # Queries
    # ==========================================

    def get_order(self, db: Session, order_id: int) -> Order:
        order = (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def get_order_for_user(self, db: Session, order_id: int, user: Profile) -> Order:
        """Order visible to its owner or an admin."""
        order = self.get_order(db, order_id)
        if order.user_id != user.id and not user.is_admin:
            raise UnauthorizedError("You do not have access to this order")
        return order

    def get_user_orders(self, db: Session, user_id: str) -> List[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.user_id == user_id)
            .order_by(desc(Order.created_at), desc(Order.id))
            .all()
        )

    def list_orders(self, db: Session, status: Optional[str] = None) -> List[Order]:
        q = db.query(Order).options(selectinload(Order.items))
        if status:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown order status: {status}")
            q = q.filter(Order.status == status)
        return q.order_by(desc(Order.created_at), desc(Order.id)).all()
