"""
Cart Routes
=============
JSON cart API for both anonymous visitors (cookie) and logged-in users (DB).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.cart.deps import get_cart_store, persist_cart_cookie
from modules.cart.service import CartStore
from modules.catalog.service import catalog_service

router = APIRouter(prefix="/api/cart", tags=["cart"])


# ==========================================
# Schemas
# ==========================================

class CartLineOut(BaseModel):
    dish_id: int
    name: str
    unit_price: int
    image_url: Optional[str] = None
    quantity: int
    line_total: int


class CartOut(BaseModel):
    items: List[CartLineOut]
    total_items: int
    total_price: int


class AddItemRequest(BaseModel):
    dish_id: int
    quantity: int = Field(1, ge=1)


class QuantityRequest(BaseModel):
    quantity: int


def _cart_out(store: CartStore) -> dict:
    return {
        "items": [
            {**line.model_dump(), "line_total": line.line_total}
            for line in store.lines
        ],
        "total_items": store.total_items(),
        "total_price": store.total_price(),
    }


# ==========================================
# 🛒 View Cart
# ==========================================

@router.get("", response_model=CartOut)
def view_cart(store: CartStore = Depends(get_cart_store)):
    return _cart_out(store)


# ==========================================
# ➕ Add / Update / Remove
# ==========================================

@router.post("/items", response_model=CartOut)
def add_item(
    body: AddItemRequest,
    response: Response,
    db: Session = Depends(get_db),
    store: CartStore = Depends(get_cart_store),
):
    dish = catalog_service.get_orderable_dish(db, body.dish_id)
    store.add_item(dish, body.quantity)
    persist_cart_cookie(response, store)
    return _cart_out(store)


@router.put("/items/{dish_id}", response_model=CartOut)
def update_item(
    dish_id: int,
    body: QuantityRequest,
    response: Response,
    store: CartStore = Depends(get_cart_store),
):
    """Set a line's quantity. Zero or less removes the line."""
    store.update_quantity(dish_id, body.quantity)
    persist_cart_cookie(response, store)
    return _cart_out(store)


@router.delete("/items/{dish_id}", response_model=CartOut)
def remove_item(dish_id: int, response: Response, store: CartStore = Depends(get_cart_store)):
    store.remove_item(dish_id)
    persist_cart_cookie(response, store)
    return _cart_out(store)


@router.delete("", response_model=CartOut)
def clear_cart(response: Response, store: CartStore = Depends(get_cart_store)):
    store.clear()
    persist_cart_cookie(response, store)
    return _cart_out(store)
