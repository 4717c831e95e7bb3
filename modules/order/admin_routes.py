"""
Order Module - Admin Routes
==============================
Order management for admin: list, detail with status history, status change.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from config.database import get_db
from common.deps import get_order_builder, get_status_machine
from modules.auth.deps import require_admin
from modules.order.models import OrderStatus
from modules.order.routes import OrderOut
from modules.order.service import OrderBuilder
from modules.order.status import Actor, OrderStatusMachine

router = APIRouter(prefix="/api/admin/orders", tags=["order-admin"])


class StatusLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    old_status: str
    new_status: str
    actor: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class AdminOrderOut(OrderOut):
    user_id: str
    payment_intent_ref: Optional[str] = None
    status_logs: List[StatusLogOut] = []


class StatusChange(BaseModel):
    status: OrderStatus
    description: Optional[str] = None


@router.get("", response_model=List[AdminOrderOut])
def admin_orders(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
    builder: OrderBuilder = Depends(get_order_builder),
):
    return builder.list_orders(db, status=status)


@router.get("/{order_id}", response_model=AdminOrderOut)
def admin_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
    builder: OrderBuilder = Depends(get_order_builder),
):
    return builder.get_order(db, order_id)


@router.post("/{order_id}/status", response_model=AdminOrderOut)
def admin_change_status(
    order_id: int,
    body: StatusChange,
    db: Session = Depends(get_db),
    user=Depends(require_admin),
    builder: OrderBuilder = Depends(get_order_builder),
    machine: OrderStatusMachine = Depends(get_status_machine),
):
    description = body.description or f"Changed by {user.display_name}"
    machine.transition(db, order_id, body.status, Actor.ADMIN, description=description)
    return builder.get_order(db, order_id)
