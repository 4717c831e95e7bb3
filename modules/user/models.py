"""
User Module - Profile Model
=============================
One row per identity issued by the hosted identity provider.
The primary key is the provider's user id; role flags live here.
"""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from config.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)

    # === Profile ===
    full_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    address = Column(String, nullable=True)

    # === Role Flags ===
    is_admin = Column(Boolean, default=False, server_default="false", nullable=False, index=True)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.id

    def __repr__(self):
        return f"<Profile {self.id}>"
