"""
Order Module - Models
======================
Order with a name/price snapshot per item, plus an append-only status log.
All amounts are integer cents.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAYMENT_FAILED = "payment_failed"
    PAID = "paid"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String, default=OrderStatus.PENDING.value, nullable=False, index=True)
    total_amount = Column(Integer, nullable=False)

    # Delivery
    delivery_address = Column(Text, nullable=False)
    contact_number = Column(String, nullable=False)
    special_instructions = Column(Text, nullable=True)

    # Payment
    payment_method = Column(String, nullable=True)                    # cash / card
    payment_intent_ref = Column(String, nullable=True, index=True)    # processor intent id

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("Profile", foreign_keys=[user_id])
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", passive_deletes=True)
    status_logs = relationship(
        "OrderStatusLog", back_populates="order",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="OrderStatusLog.id",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_order_total"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    dish_id = Column(Integer, ForeignKey("dishes.id", ondelete="SET NULL"), nullable=True)

    # Snapshot at time of purchase
    dish_name = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price_at_time = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_qty"),
        CheckConstraint("price_at_time >= 0", name="ck_order_item_price"),
    )

    @property
    def line_total(self) -> int:
        return self.quantity * self.price_at_time


class OrderStatusLog(Base):
    """One row per effective status change."""
    __tablename__ = "order_status_logs"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    old_status = Column(String, nullable=False)
    new_status = Column(String, nullable=False)
    actor = Column(String, nullable=False)             # system / processor / admin
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="status_logs")
