"""
User Admin Service
====================
Queries and role changes for the admin back office: profile list with order
stats, role filter, admin promotion and account activation.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func as sa_func, or_
from sqlalchemy.orm import Session

from common.exceptions import NotFoundError, ValidationError
from common.helpers import clean_text
from modules.order.models import Order
from modules.user.models import Profile

logger = logging.getLogger("homelyeats.user")

ROLE_FILTERS = ("user", "admin")


class UserAdminService:

    # ==========================================
    # Queries
    # ==========================================

    def list_profiles(
        self,
        db: Session,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Profiles with orders_count and total_spent, newest first."""
        q = (
            db.query(
                Profile,
                sa_func.count(Order.id),
                sa_func.coalesce(sa_func.sum(Order.total_amount), 0),
            )
            .outerjoin(Order, Order.user_id == Profile.id)
            .group_by(Profile.id)
        )
        if role:
            if role not in ROLE_FILTERS:
                raise ValidationError(f"Unknown role filter: {role}")
            q = q.filter(Profile.is_admin.is_(role == "admin"))
        if search and search.strip():
            term = f"%{search.strip()}%"
            q = q.filter(or_(
                Profile.id.ilike(term),
                Profile.full_name.ilike(term),
                Profile.phone_number.ilike(term),
            ))

        rows = q.order_by(Profile.created_at.desc(), Profile.id).all()
        return [_with_stats(profile, count, spent) for profile, count, spent in rows]

    def get_profile(self, db: Session, user_id: str) -> Profile:
        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if not profile:
            raise NotFoundError(f"User {user_id} not found")
        return profile

    def get_profile_detail(self, db: Session, user_id: str) -> Dict[str, Any]:
        profile = self.get_profile(db, user_id)
        count, spent = (
            db.query(
                sa_func.count(Order.id),
                sa_func.coalesce(sa_func.sum(Order.total_amount), 0),
            )
            .filter(Order.user_id == user_id)
            .one()
        )
        return _with_stats(profile, count, spent)

    # ==========================================
    # Role / activation
    # ==========================================

    def set_admin(self, db: Session, user_id: str, is_admin: bool, acting_user: Profile) -> Profile:
        if user_id == acting_user.id and not is_admin:
            raise ValidationError("You cannot remove your own admin role")
        profile = self.get_profile(db, user_id)
        profile.is_admin = is_admin
        db.commit()
        db.refresh(profile)
        logger.info(f"Admin {acting_user.id} set is_admin={is_admin} for user {user_id}")
        return profile

    def set_active(self, db: Session, user_id: str, is_active: bool, acting_user: Profile) -> Profile:
        if user_id == acting_user.id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        profile = self.get_profile(db, user_id)
        profile.is_active = is_active
        db.commit()
        db.refresh(profile)
        logger.info(f"Admin {acting_user.id} set is_active={is_active} for user {user_id}")
        return profile

    def create_admin(self, db: Session, user_id: str, full_name: Optional[str], acting_user: Profile) -> Profile:
        """
        Provision an admin for a provider user id. An existing profile is
        promoted; otherwise the row is created ahead of the user's first login.
        """
        user_id = clean_text(user_id)
        if not user_id:
            raise ValidationError("User id is required")

        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if not profile:
            profile = Profile(id=user_id)
            db.add(profile)
        profile.is_admin = True
        profile.is_active = True
        if clean_text(full_name):
            profile.full_name = clean_text(full_name)
        db.commit()
        db.refresh(profile)
        logger.info(f"Admin {acting_user.id} granted admin to user {user_id}")
        return profile


def _with_stats(profile: Profile, orders_count, total_spent) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "full_name": profile.full_name,
        "phone_number": profile.phone_number,
        "address": profile.address,
        "is_admin": profile.is_admin,
        "is_active": profile.is_active,
        "created_at": profile.created_at,
        "orders_count": int(orders_count or 0),
        "total_spent": int(total_spent or 0),
    }


# Singleton
user_admin_service = UserAdminService()
