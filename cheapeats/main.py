"""
CheapEats API: FastAPI application entry point.
Lifespan: create DB tables → verify connectivity → build store, Places client and price fetcher.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cheapeats.config import settings
from cheapeats.database import AsyncSessionLocal, check_db_connectivity, engine
from cheapeats.models import Base
from cheapeats.routers import health, menu_items, restaurants
from cheapeats.services.places_client import PlacesClient
from cheapeats.services.price_fetcher import PriceFetcher
from cheapeats.services.store import RestaurantStore

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.
    1. Create all tables (idempotent: IF NOT EXISTS).
    2. Verify DB connectivity.
    3. Wire the store, Places client and price fetcher onto app.state.
    """
    logger.info("Starting CheapEats API (env=%s)", settings.app_env)

    # Step 1: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified.")

    # Step 2: connectivity check
    ok = await check_db_connectivity()
    if not ok:
        logger.error("Database connectivity check FAILED at startup.")
    else:
        logger.info("Database connectivity verified.")

    # Step 3: services
    if not settings.google_places_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not set; place searches will fail.")
    store = RestaurantStore(AsyncSessionLocal)
    places_client = PlacesClient(settings.google_places_api_key)
    app.state.store = store
    app.state.price_fetcher = PriceFetcher(places_client, store)

    yield

    logger.info("Shutting down CheapEats API.")
    places_client.close()
    await engine.dispose()


app = FastAPI(
    title="CheapEats API",
    description="API for fetching and tracking restaurant prices",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
    expose_headers=["Link"],
    max_age=300,
)

# ── Routers ──────────────────────────────────────────────────────────────────

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(health.router)
api_v1.include_router(restaurants.router)
api_v1.include_router(menu_items.router)
app.include_router(api_v1)


# ── Global exception handler ─────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
