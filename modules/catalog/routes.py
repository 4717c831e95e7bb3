"""
Catalog Module - Public Routes
================================
Menu browsing: categories, dish list, dish detail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from config.database import get_db
from modules.catalog.service import catalog_service

router = APIRouter(prefix="/api", tags=["catalog"])


# ==========================================
# Schemas
# ==========================================

class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None


class DishOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: int
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    is_available: bool
    preparation_time: Optional[str] = None


# ==========================================
# GET /api/categories
# ==========================================

@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return catalog_service.list_categories(db)


# ==========================================
# GET /api/dishes
# ==========================================

@router.get("/dishes", response_model=List[DishOut])
def list_dishes(
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    available_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    return catalog_service.list_dishes(
        db, category_id=category_id, search=search, available_only=available_only,
    )


@router.get("/dishes/{dish_id}", response_model=DishOut)
def dish_detail(dish_id: int, db: Session = Depends(get_db)):
    return catalog_service.get_dish(db, dish_id)
