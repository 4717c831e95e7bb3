"""
Catalog Module - Admin Routes
===============================
CRUD for Dishes and Categories.
All routes require admin authentication.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_admin
from modules.catalog.routes import CategoryOut, DishOut
from modules.catalog.service import catalog_service

router = APIRouter(prefix="/api/admin", tags=["catalog-admin"])


# ==========================================
# Schemas
# ==========================================

class DishCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: int = Field(..., ge=0)
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    is_available: bool = True
    preparation_time: Optional[str] = None


class DishUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    category_id: Optional[int] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None


# ==========================================
# 🍲 Dishes
# ==========================================

@router.post("/dishes", response_model=DishOut, status_code=201)
def create_dish(body: DishCreate, db: Session = Depends(get_db), user=Depends(require_admin)):
    return catalog_service.create_dish(db, body.model_dump())


@router.put("/dishes/{dish_id}", response_model=DishOut)
def update_dish(dish_id: int, body: DishUpdate, db: Session = Depends(get_db), user=Depends(require_admin)):
    return catalog_service.update_dish(db, dish_id, body.model_dump(exclude_unset=True))


@router.delete("/dishes/{dish_id}")
def delete_dish(dish_id: int, db: Session = Depends(get_db), user=Depends(require_admin)):
    catalog_service.delete_dish(db, dish_id)
    return {"success": True}


# ==========================================
# 🗂️ Categories
# ==========================================

@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(body: CategoryCreate, db: Session = Depends(get_db), user=Depends(require_admin)):
    return catalog_service.create_category(db, body.model_dump())


@router.put("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int, body: CategoryUpdate, db: Session = Depends(get_db), user=Depends(require_admin),
):
    return catalog_service.update_category(db, category_id, body.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db), user=Depends(require_admin)):
    catalog_service.delete_category(db, category_id)
    return {"success": True}
