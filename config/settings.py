"""
HomelyEats - Centralized Configuration
========================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
import sys
from dotenv import load_dotenv

load_dotenv()


# ==========================================
# 🗄️ Database
# ==========================================
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    if not all([DB_USER, DB_PASSWORD, DB_HOST, DB_NAME]):
        print("[ERROR] Critical: Database config missing in .env (DATABASE_URL or DB_USER, DB_PASSWORD, DB_HOST, DB_NAME)")
        sys.exit(1)
    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# ==========================================
# 🔐 Identity Provider (JWT)
# ==========================================
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "")

if not AUTH_JWT_SECRET:
    print("[ERROR] Critical: AUTH_JWT_SECRET missing in .env")
    sys.exit(1)

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 1 day

COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")


# ==========================================
# 💳 Payment Processor (Stripe)
# ==========================================
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")
PAYMENT_TIMEOUT = int(os.getenv("PAYMENT_TIMEOUT") or "15")


# ==========================================
# 🤖 Language Model (dish pairings)
# ==========================================
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_TIMEOUT = int(os.getenv("OPENAI_TIMEOUT") or "20")


# ==========================================
# 🛒 Cart
# ==========================================
CART_COOKIE = "cart"
CART_COOKIE_MAX_AGE = 60 * 60 * 24 * 30  # 30 days
ANONYMOUS_CART_MAX_LINES = 50  # keeps the cookie well under the 4 KB browser limit


# ==========================================
# 🔧 App
# ==========================================
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
BASE_URL = os.getenv("BASE_URL", "http://127.0.0.1:8000")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

STORE_NAME = "Homely Eats"
STORE_TAGLINE = "Your Favorite Home-Cooked Meals, Delivered"
