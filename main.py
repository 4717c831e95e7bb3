"""
HomelyEats - Application Entry Point
======================================
FastAPI app factory: clients and services, exception handler, middleware,
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from config.database import Base, build_engine, build_session_factory
from common.exceptions import HomelyEatsError

logger = logging.getLogger("homelyeats.app")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.user.models import Profile  # noqa: F401, E402
from modules.catalog.models import Category, Dish  # noqa: F401, E402
from modules.cart.models import CartItem  # noqa: F401, E402
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa: F401, E402

# ==========================================
# Import routers and services
# ==========================================
from modules.catalog.routes import router as catalog_router  # noqa: E402
from modules.catalog.admin_routes import router as catalog_admin_router  # noqa: E402
from modules.cart.routes import router as cart_router  # noqa: E402
from modules.order.routes import router as order_router  # noqa: E402
from modules.order.admin_routes import router as order_admin_router  # noqa: E402
from modules.payment.routes import router as payment_router  # noqa: E402
from modules.ai.routes import router as ai_router  # noqa: E402
from modules.user.admin_routes import router as user_admin_router  # noqa: E402

from modules.ai.service import PairingAdvisor  # noqa: E402
from modules.invoice.service import InvoiceRenderer  # noqa: E402
from modules.order.service import OrderBuilder  # noqa: E402
from modules.order.status import OrderStatusMachine  # noqa: E402
from modules.payment.gateways import BaseProcessor  # noqa: E402
from modules.payment.gateways.stripe_gateway import StripeProcessor  # noqa: E402
from modules.payment.service import PaymentCoordinator  # noqa: E402


# ==========================================
# Exception handler: business errors → JSON
# ==========================================

async def business_exception_handler(request: Request, exc: HomelyEatsError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=app.state.engine)
    logger.info("HomelyEats API started")
    yield
    app.state.pairing_advisor.close()
    logger.info("HomelyEats API stopped")


# ==========================================
# Create App
# ==========================================

def create_app(
    database_url: Optional[str] = None,
    processor: Optional[BaseProcessor] = None,
    advisor: Optional[PairingAdvisor] = None,
) -> FastAPI:
    """
    Build the application. Every client and service is constructed here,
    once, and kept on app.state for the request dependencies.
    """
    app = FastAPI(
        title="HomelyEats API",
        description="Home-cooked meal ordering: menu, cart, checkout, payments",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Persistence
    engine = build_engine(database_url or settings.DATABASE_URL)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # External clients
    app.state.payment_processor = processor or StripeProcessor(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        timeout=settings.PAYMENT_TIMEOUT,
    )
    app.state.pairing_advisor = advisor or PairingAdvisor(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.OPENAI_TIMEOUT,
    )
    app.state.invoice_renderer = InvoiceRenderer(settings.STORE_NAME, settings.STORE_TAGLINE)

    # Services
    app.state.status_machine = OrderStatusMachine()
    app.state.order_builder = OrderBuilder()
    app.state.payment_coordinator = PaymentCoordinator(
        app.state.payment_processor,
        app.state.status_machine,
        currency=settings.PAYMENT_CURRENCY,
    )

    app.add_exception_handler(HomelyEatsError, business_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==========================================
    # Middleware: No-Cache for API responses with personal data
    # ==========================================
    _no_cache_prefixes = ("/api/admin", "/api/cart", "/api/orders", "/api/payments")

    @app.middleware("http")
    async def no_cache_private(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(_no_cache_prefixes):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        return response

    # ==========================================
    # Register Routers
    # ==========================================
    app.include_router(catalog_router)
    app.include_router(catalog_admin_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(order_admin_router)
    app.include_router(payment_router)
    app.include_router(ai_router)
    app.include_router(user_admin_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": "1.0.0"}

    return app


app = create_app()
