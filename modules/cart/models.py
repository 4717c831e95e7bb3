"""
Cart Module - Models
=====================
Persisted cart lines for authenticated users, one row per (user, dish).
Anonymous carts live in a cookie and never touch this table.
"""

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    dish_id = Column(Integer, ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    dish = relationship("Dish")

    __table_args__ = (
        UniqueConstraint("user_id", "dish_id", name="uq_cart_user_dish"),
        CheckConstraint("quantity >= 1", name="ck_cart_qty"),
    )
