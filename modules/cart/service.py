"""
Cart Module - Service Layer
==============================
CartStore holds the visitor's lines and writes them through to a backing
store after every mutation:

  * UserCartBackend      - `cart_items` table, replace-all on save
  * AnonymousCartBackend - `[dish_id, quantity]` pairs kept in the `cart` cookie

Mutations are expressed as tagged operations (AddItem, SetQuantity,
RemoveItem, ClearCart). A requested quantity below 1 becomes RemoveItem in
quantity_operation(), never a zero-quantity line.

Known limitation: replace-all persistence is not safe against two writers
for the same user (e.g. two browser tabs); the last save wins.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import ANONYMOUS_CART_MAX_LINES
from common.exceptions import ExternalServiceError, ValidationError
from modules.cart.models import CartItem
from modules.catalog.models import Dish

logger = logging.getLogger("homelyeats.cart")


class CartLine(BaseModel):
    """One validated cart line. Prices are cents."""
    model_config = ConfigDict(frozen=True)

    dish_id: int
    name: str = Field(..., min_length=1)
    unit_price: int = Field(..., ge=0)
    image_url: Optional[str] = None
    quantity: int = Field(..., ge=1)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


# ==========================================
# Tagged operations
# ==========================================

@dataclass(frozen=True)
class AddItem:
    dish_id: int
    name: str
    unit_price: int
    image_url: Optional[str] = None
    quantity: int = 1


@dataclass(frozen=True)
class SetQuantity:
    dish_id: int
    quantity: int


@dataclass(frozen=True)
class RemoveItem:
    dish_id: int


@dataclass(frozen=True)
class ClearCart:
    pass


CartOperation = Union[AddItem, SetQuantity, RemoveItem, ClearCart]


def quantity_operation(dish_id: int, quantity: int) -> CartOperation:
    """Map a requested quantity to an explicit operation (< 1 means remove)."""
    if quantity < 1:
        return RemoveItem(dish_id)
    return SetQuantity(dish_id, quantity)


def apply_operation(lines: Tuple[CartLine, ...], op: CartOperation) -> Tuple[CartLine, ...]:
    """Pure reducer: returns the new line tuple for an operation."""
    if isinstance(op, ClearCart):
        return ()

    if isinstance(op, RemoveItem):
        return tuple(line for line in lines if line.dish_id != op.dish_id)

    if isinstance(op, SetQuantity):
        if op.quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        return tuple(
            line.model_copy(update={"quantity": op.quantity}) if line.dish_id == op.dish_id else line
            for line in lines
        )

    if isinstance(op, AddItem):
        if op.quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if any(line.dish_id == op.dish_id for line in lines):
            return tuple(
                line.model_copy(update={"quantity": line.quantity + op.quantity})
                if line.dish_id == op.dish_id else line
                for line in lines
            )
        new_line = CartLine(
            dish_id=op.dish_id,
            name=op.name,
            unit_price=op.unit_price,
            image_url=op.image_url,
            quantity=op.quantity,
        )
        return lines + (new_line,)

    raise TypeError(f"Unknown cart operation: {op!r}")


# ==========================================
# Backing stores
# ==========================================

class CartBackend:
    """Abstract backing store interface."""

    def load(self) -> List[CartLine]:
        raise NotImplementedError

    def save(self, lines: List[CartLine]):
        raise NotImplementedError


class UserCartBackend(CartBackend):
    """`cart_items` rows for one authenticated user."""

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def load(self) -> List[CartLine]:
        rows = (
            self.db.query(CartItem, Dish)
            .outerjoin(Dish, CartItem.dish_id == Dish.id)
            .filter(CartItem.user_id == self.user_id)
            .order_by(CartItem.id)
            .all()
        )
        lines = []
        for item, dish in rows:
            if dish is None:
                logger.warning(f"Dropping cart row for missing dish #{item.dish_id} (user {self.user_id})")
                continue
            try:
                lines.append(CartLine(
                    dish_id=dish.id,
                    name=dish.name,
                    unit_price=dish.price,
                    image_url=dish.image_url,
                    quantity=item.quantity,
                ))
            except SchemaError as e:
                logger.warning(f"Dropping malformed cart row #{item.id} (user {self.user_id}): {e}")
        return lines

    def save(self, lines: List[CartLine]):
        try:
            self.db.query(CartItem).filter(CartItem.user_id == self.user_id).delete()
            for line in lines:
                self.db.add(CartItem(user_id=self.user_id, dish_id=line.dish_id, quantity=line.quantity))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save cart for user {self.user_id}: {e}")
            raise ExternalServiceError("Failed to save cart")


class AnonymousCartBackend(CartBackend):
    """
    Cart kept in the visitor's cookie as compact `[dish_id, quantity]` pairs.
    Names, prices and images are resolved from the catalog on load, so the
    cookie stays small and never carries a price.
    """

    def __init__(self, db: Session, payload: Optional[str] = None, max_lines: int = ANONYMOUS_CART_MAX_LINES):
        self.db = db
        self.payload = payload
        self.max_lines = max_lines
        self.dirty = False

    def load(self) -> List[CartLine]:
        entries = self._entries()
        if not entries:
            return []

        dishes = {
            dish.id: dish
            for dish in self.db.query(Dish).filter(Dish.id.in_([dish_id for dish_id, _ in entries])).all()
        }
        lines = []
        for dish_id, quantity in entries:
            dish = dishes.get(dish_id)
            if dish is None:
                logger.warning(f"Dropping anonymous cart entry for missing dish #{dish_id}")
                continue
            try:
                lines.append(CartLine(
                    dish_id=dish.id,
                    name=dish.name,
                    unit_price=dish.price,
                    image_url=dish.image_url,
                    quantity=quantity,
                ))
            except SchemaError as e:
                logger.warning(f"Dropping malformed anonymous cart entry for dish #{dish_id}: {e}")
        return lines

    def _entries(self) -> List[Tuple[int, int]]:
        """Valid, de-duplicated (dish_id, quantity) pairs from the payload."""
        if not self.payload:
            return []
        try:
            raw = json.loads(self.payload)
        except (ValueError, TypeError):
            logger.warning("Ignoring unparseable anonymous cart payload")
            return []
        if not isinstance(raw, list):
            logger.warning("Ignoring anonymous cart payload that is not a list")
            return []

        entries = []
        seen = set()
        for entry in raw:
            if not _is_pair(entry) or entry[1] < 1:
                logger.warning(f"Dropping malformed anonymous cart entry: {entry!r}")
                continue
            dish_id, quantity = entry
            if dish_id in seen:
                continue
            seen.add(dish_id)
            entries.append((dish_id, quantity))
        return entries[:self.max_lines]

    @classmethod
    def from_cookie(cls, db: Session, value: Optional[str]) -> "AnonymousCartBackend":
        """Cookie values are unpadded base64url-encoded JSON."""
        if not value:
            return cls(db, None)
        try:
            padded = value + "=" * (-len(value) % 4)
            payload = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        except (ValueError, UnicodeError):
            logger.warning("Ignoring undecodable cart cookie")
            payload = None
        return cls(db, payload)

    def cookie_value(self) -> str:
        raw = (self.payload or "[]").encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    def save(self, lines: List[CartLine]):
        if len(lines) > self.max_lines:
            raise ValidationError(f"Cart is full (at most {self.max_lines} different dishes). Log in to add more")
        self.payload = json.dumps([[line.dish_id, line.quantity] for line in lines], separators=(",", ":"))
        self.dirty = True


def _is_pair(entry) -> bool:
    return (
        isinstance(entry, list)
        and len(entry) == 2
        and all(isinstance(v, int) and not isinstance(v, bool) for v in entry)
    )


# ==========================================
# Cart Store
# ==========================================

class CartStore:

    def __init__(self, backend: CartBackend):
        self.backend = backend
        self._lines: Tuple[CartLine, ...] = tuple(backend.load())

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def snapshot(self) -> Tuple[CartLine, ...]:
        """Immutable copy of the current lines (used by checkout)."""
        return self._lines

    # ------------------------------------------
    # Mutations
    # ------------------------------------------

    def add_item(self, dish: Dish, qty: int = 1):
        self.apply(AddItem(
            dish_id=dish.id,
            name=dish.name,
            unit_price=dish.price,
            image_url=dish.image_url,
            quantity=qty,
        ))

    def update_quantity(self, dish_id: int, qty: int):
        self.apply(quantity_operation(dish_id, qty))

    def remove_item(self, dish_id: int):
        self.apply(RemoveItem(dish_id))

    def clear(self):
        self.apply(ClearCart())

    def apply(self, op: CartOperation):
        new_lines = apply_operation(self._lines, op)
        if new_lines == self._lines and not isinstance(op, ClearCart):
            return
        self.backend.save(list(new_lines))
        self._lines = new_lines

    # ------------------------------------------
    # Identity change
    # ------------------------------------------

    def switch_backend(self, backend: CartBackend):
        """Reload from a new identity's store. Previous lines are not merged."""
        self.backend = backend
        self._lines = tuple(backend.load())

    # ------------------------------------------
    # Derived values (never cached)
    # ------------------------------------------

    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    def total_price(self) -> int:
        return sum(line.line_total for line in self._lines)
