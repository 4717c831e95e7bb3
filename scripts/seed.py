"""
HomelyEats - Database Seeder
==============================
Seeds the menu with sample categories and dishes, plus an admin profile.

Usage:
    python scripts/seed.py                    # Seed (skips rows that exist)
    python scripts/seed.py --admin <user-id>  # Also promote this provider user id to admin
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import DATABASE_URL
from config.database import Base, build_engine, build_session_factory
from modules.user.models import Profile
from modules.catalog.models import Category, Dish
from modules.cart.models import CartItem  # noqa
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa


# Prices are cents
CATEGORIES = {
    "Curries": "Slow-cooked, spiced and comforting.",
    "Rice & Breads": "Fresh from the pot and the tawa.",
    "Sweets": "Something for after.",
}

DISHES = [
    ("Butter Chicken", "Curries", 1250, "Tender chicken in a tomato-butter gravy.", "35 min"),
    ("Dal Tadka", "Curries", 850, "Yellow lentils tempered with cumin and garlic.", "25 min"),
    ("Palak Paneer", "Curries", 1100, "Cottage cheese in creamy spinach.", "30 min"),
    ("Jeera Rice", "Rice & Breads", 450, "Basmati rice with toasted cumin.", "20 min"),
    ("Garlic Naan", "Rice & Breads", 300, "Soft flatbread brushed with garlic butter.", "15 min"),
    ("Gulab Jamun", "Sweets", 500, "Milk dumplings in rose syrup.", "10 min"),
]


def seed_categories(db) -> dict:
    print("[1/3] Categories...")
    result = {}
    for name, description in CATEGORIES.items():
        category = db.query(Category).filter(Category.name == name).first()
        if not category:
            category = Category(name=name, description=description)
            db.add(category)
            db.flush()
            print(f"  + {name}")
        result[name] = category
    db.commit()
    return result


def seed_dishes(db, categories: dict):
    print("[2/3] Dishes...")
    for name, category_name, price, description, prep in DISHES:
        if db.query(Dish).filter(Dish.name == name).first():
            continue
        db.add(Dish(
            name=name,
            description=description,
            price=price,
            category_id=categories[category_name].id,
            is_available=True,
            preparation_time=prep,
        ))
        print(f"  + {name} ({price} cents)")
    db.commit()


def seed_admin(db, user_id: str):
    print("[3/3] Admin profile...")
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        profile = Profile(id=user_id, full_name="Store Admin")
        db.add(profile)
    profile.is_admin = True
    db.commit()
    print(f"  + {user_id} is admin")


if __name__ == "__main__":
    engine = build_engine(DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    db = build_session_factory(engine)()
    try:
        categories = seed_categories(db)
        seed_dishes(db, categories)
        if "--admin" in sys.argv:
            idx = sys.argv.index("--admin")
            if idx + 1 >= len(sys.argv):
                print("Usage: python scripts/seed.py --admin <user-id>")
                sys.exit(1)
            seed_admin(db, sys.argv[idx + 1])
        print("\nSeed complete!")
    finally:
        db.close()
