import os

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import AsyncSessionLocal, Base, engine
from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models
from services.product_service import models as product_models
from services.cart_service import models as cart_models
from services.order_service import models as order_models
from services.review_service import models as review_models
from services.favorite_service import models as favorite_models

from services.auth_service.router import router as auth_router
from services.auth_service.service import AuthService
from services.product_service.router import router as product_router
from services.cart_service.router import router as cart_router
from services.order_service.router import router as order_router
from services.review_service.router import router as review_router
from services.favorite_service.router import router as favorite_router

app = FastAPI(title="Chocolate Storefront", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "storefront")

# --- ERRORS & SECURITY ---
register_exception_handlers(app)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(auth_router)
app.include_router(product_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(review_router)
app.include_router(favorite_router)


@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "storefront", "status": "running"}


@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")
    if admin_email and admin_password:
        async with AsyncSessionLocal() as db:
            await AuthService.ensure_admin(db, os.getenv("ADMIN_NAME", "Admin"), admin_email, admin_password)
