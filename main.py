from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import engine, Base
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.user_service import models as user_models
from services.product_service import models as product_models
from services.promo_service import models as promo_models
from services.config_service import models as config_models
from services.order_service import models as order_models

from services.product_service.router import router as product_router
from services.promo_service.router import router as promo_router
from services.config_service.router import router as config_router
from services.order_service.router import router as order_router, admin_router as order_admin_router
from services.pos_service.router import router as pos_router

app = FastAPI(title="Storefront", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "storefront")

# --- RATE LIMITING ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(product_router)
app.include_router(promo_router)
app.include_router(config_router)
app.include_router(order_router)
app.include_router(order_admin_router)
app.include_router(pos_router)


@app.on_event("startup")
async def startup_event():
    # Single schema: one transaction spans orders, products and promo codes
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/health")
async def health():
    return {"status": "ok"}
