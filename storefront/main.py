# storefront/main.py
"""
Storefront API - FastAPI over the Django ORM.
"""
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

# Rate limiting
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from storefront import __version__
from storefront.core.config import settings
from storefront.core.logging import log, log_section
from storefront.db import connect_db, disconnect_db, run_orm, setup_django

# Django's app registry must be ready before any router imports a model.
setup_django()


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    log_section("API", f"Storefront API {__version__} starting...")
    await run_orm(connect_db)

    yield

    log("API", "Shutting down...")
    await run_orm(disconnect_db)


# ---------------------------------------------------------------------------
# APP INITIALIZATION
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storefront ORM Cookbook",
    version=__version__,
    lifespan=lifespan,
)

# Monitoring
from storefront.lib.monitoring import register_monitoring
register_monitoring(app)

cors_origins = settings.api.cors_origins
if cors_origins == ["*"] and not settings.debug:
    log("API", "CORS allows every origin; set CORS_ORIGINS in production")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate Limiting - per client IP, configured via RATE_LIMIT (e.g. "50/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.api.rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
log("API", f"Rate limiting enabled: {settings.api.rate_limit}")

from storefront.api.errors import register_exception_handlers
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# API ROUTES
# ---------------------------------------------------------------------------

from storefront.api import (
    categories,
    customers,
    health,
    orders,
    products,
    recipes,
    reports,
)

app.include_router(health.router)
app.include_router(products.router)
app.include_router(categories.router)
app.include_router(customers.router)
app.include_router(orders.router)
app.include_router(reports.router)
app.include_router(recipes.router)


# ---------------------------------------------------------------------------
# RUN
# ---------------------------------------------------------------------------

def run() -> None:
    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
