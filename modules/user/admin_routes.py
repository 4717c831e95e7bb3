"""
User Admin Routes
===================
Admin user management: list with role filter and order stats, detail,
role change, activation, admin provisioning.
All routes require admin authentication.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_admin
from modules.user.admin_service import user_admin_service

router = APIRouter(prefix="/api/admin/users", tags=["user-admin"])


# ==========================================
# Schemas
# ==========================================

class UserAdminOut(BaseModel):
    id: str
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    is_admin: bool
    is_active: bool
    created_at: Optional[datetime] = None
    orders_count: int = 0
    total_spent: int = 0


class RoleChange(BaseModel):
    is_admin: bool


class ActiveChange(BaseModel):
    is_active: bool


class AdminCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    full_name: Optional[str] = None


# ==========================================
# 👥 User List / Detail
# ==========================================

@router.get("", response_model=List[UserAdminOut])
def admin_user_list(
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user=Depends(require_admin),
):
    return user_admin_service.list_profiles(db, role=role, search=search)


@router.get("/{user_id}", response_model=UserAdminOut)
def admin_user_detail(user_id: str, db: Session = Depends(get_db), user=Depends(require_admin)):
    return user_admin_service.get_profile_detail(db, user_id)


# ==========================================
# 🔑 Role / Activation
# ==========================================

@router.put("/{user_id}/role", response_model=UserAdminOut)
def admin_user_role(
    user_id: str, body: RoleChange, db: Session = Depends(get_db), user=Depends(require_admin),
):
    user_admin_service.set_admin(db, user_id, body.is_admin, user)
    return user_admin_service.get_profile_detail(db, user_id)


@router.put("/{user_id}/active", response_model=UserAdminOut)
def admin_user_active(
    user_id: str, body: ActiveChange, db: Session = Depends(get_db), user=Depends(require_admin),
):
    user_admin_service.set_active(db, user_id, body.is_active, user)
    return user_admin_service.get_profile_detail(db, user_id)


@router.post("", response_model=UserAdminOut, status_code=201)
def admin_user_create(body: AdminCreate, db: Session = Depends(get_db), user=Depends(require_admin)):
    """Grant admin to a provider user id, creating the profile if needed."""
    profile = user_admin_service.create_admin(db, body.id, body.full_name, user)
    return user_admin_service.get_profile_detail(db, profile.id)
