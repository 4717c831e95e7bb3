"""
Alembic Environment Configuration
===================================
Reads DATABASE_URL from config.settings (not from alembic.ini).
Imports all models so autogenerate works correctly.
"""

import sys
import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import DATABASE_URL
from config.database import Base

# ==========================================
# Import ALL models here for autogenerate
# ==========================================
from modules.user.models import Profile  # noqa: F401
from modules.catalog.models import Category, Dish  # noqa: F401
from modules.cart.models import CartItem  # noqa: F401
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa: F401

# Alembic Config
config = context.config
config.set_main_option("sqlalchemy.url", DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
