"""
Catalog Module - Models
========================
Dish and Category. Prices are integer minor units (cents).
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, Text,
    ForeignKey, DateTime, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# 🗂️ Category
# ==========================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    dishes = relationship("Dish", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name}>"


# ==========================================
# 🍲 Dish
# ==========================================

class Dish(Base):
    __tablename__ = "dishes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)                 # cents
    image_url = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    is_available = Column(Boolean, default=True, server_default="true", nullable=False)
    preparation_time = Column(String, nullable=True)        # e.g. "25 min"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    category = relationship("Category", back_populates="dishes")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_dish_price"),
    )

    def __repr__(self):
        return f"<Dish {self.name}>"
