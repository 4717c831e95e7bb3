"""
Catalog Module - Service Layer
================================
Dish and category lookup for the menu, plus admin CRUD.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from common.exceptions import NotFoundError, ValidationError
from common.helpers import clean_text
from modules.catalog.models import Category, Dish


DISH_FIELDS = ("name", "description", "price", "image_url", "category_id", "is_available", "preparation_time")
CATEGORY_FIELDS = ("name", "description", "image_url")


class CatalogService:

    # ==========================================
    # Dishes
    # ==========================================

    def list_dishes(
        self,
        db: Session,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        available_only: bool = False,
    ) -> List[Dish]:
        q = db.query(Dish)
        if category_id:
            q = q.filter(Dish.category_id == category_id)
        if available_only:
            q = q.filter(Dish.is_available.is_(True))
        if search and search.strip():
            term = f"%{search.strip()}%"
            q = q.filter(or_(Dish.name.ilike(term), Dish.description.ilike(term)))
        return q.order_by(Dish.name).all()

    def get_dish(self, db: Session, dish_id: int) -> Dish:
        dish = db.query(Dish).filter(Dish.id == dish_id).first()
        if not dish:
            raise NotFoundError(f"Dish {dish_id} not found")
        return dish

    def get_orderable_dish(self, db: Session, dish_id: int) -> Dish:
        """Dish that can go into a cart right now."""
        dish = self.get_dish(db, dish_id)
        if not dish.is_available:
            raise ValidationError(f"{dish.name} is currently unavailable")
        return dish

    def create_dish(self, db: Session, data: dict) -> Dish:
        self._validate_dish(db, data, partial=False)
        dish = Dish(**{k: data[k] for k in DISH_FIELDS if k in data})
        dish.name = dish.name.strip()
        db.add(dish)
        db.commit()
        db.refresh(dish)
        return dish

    def update_dish(self, db: Session, dish_id: int, data: dict) -> Dish:
        dish = self.get_dish(db, dish_id)
        self._validate_dish(db, data, partial=True)
        for key in DISH_FIELDS:
            if key in data:
                setattr(dish, key, data[key])
        dish.name = dish.name.strip()
        db.commit()
        db.refresh(dish)
        return dish

    def delete_dish(self, db: Session, dish_id: int):
        dish = self.get_dish(db, dish_id)
        db.delete(dish)
        db.commit()

    # ==========================================
    # Categories
    # ==========================================

    def list_categories(self, db: Session) -> List[Category]:
        return db.query(Category).order_by(Category.name).all()

    def get_category(self, db: Session, category_id: int) -> Category:
        category = db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def create_category(self, db: Session, data: dict) -> Category:
        name = clean_text(data.get("name"))
        if not name:
            raise ValidationError("Category name is required")
        if db.query(Category).filter(Category.name == name).first():
            raise ValidationError(f"Category '{name}' already exists")
        category = Category(**{k: data[k] for k in CATEGORY_FIELDS if k in data})
        category.name = name
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    def update_category(self, db: Session, category_id: int, data: dict) -> Category:
        category = self.get_category(db, category_id)
        if "name" in data:
            name = clean_text(data["name"])
            if not name:
                raise ValidationError("Category name is required")
            clash = db.query(Category).filter(Category.name == name, Category.id != category_id).first()
            if clash:
                raise ValidationError(f"Category '{name}' already exists")
            data = {**data, "name": name}
        for key in CATEGORY_FIELDS:
            if key in data:
                setattr(category, key, data[key])
        db.commit()
        db.refresh(category)
        return category

    def delete_category(self, db: Session, category_id: int):
        category = self.get_category(db, category_id)
        db.query(Dish).filter(Dish.category_id == category_id).update({Dish.category_id: None})
        db.delete(category)
        db.commit()

    # ==========================================
    # Private helpers
    # ==========================================

    def _validate_dish(self, db: Session, data: dict, partial: bool):
        if not partial or "name" in data:
            if not clean_text(data.get("name")):
                raise ValidationError("Dish name is required")
        if not partial or "price" in data:
            price = data.get("price")
            if price is None or int(price) < 0:
                raise ValidationError("Dish price must be zero or more (in cents)")
        if data.get("category_id") is not None:
            self.get_category(db, data["category_id"])


# Singleton
catalog_service = CatalogService()
