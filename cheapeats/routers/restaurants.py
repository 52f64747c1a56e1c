"""
Restaurant endpoints.

  GET /restaurants                 list with optional city/cuisine/price_range filters
  GET /restaurants/search          refresh from Google Places, then nearby search
  GET /restaurants/{id}            restaurant with its menu
  GET /restaurants/{id}/menu       menu items, optionally by category / max price
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from cheapeats.config import settings
from cheapeats.dependencies import get_price_fetcher, get_store
from cheapeats.schemas.restaurant import (
    MenuItemRead,
    NearbyRestaurant,
    RestaurantDetail,
    RestaurantRead,
)
from cheapeats.services.geo import nearby_search
from cheapeats.services.places_client import UpstreamError
from cheapeats.services.price_fetcher import PriceFetcher
from cheapeats.services.store import PersistenceError, RestaurantStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/restaurants", tags=["restaurants"])

DISCONNECT_POLL_SECONDS = 0.25


@router.get("", response_model=list[RestaurantRead])
async def list_restaurants(
    city: Optional[str] = Query(default=None),
    cuisine: Optional[str] = Query(default=None),
    price_range: Optional[str] = Query(default=None, description="$, $$, $$$ or $$$$"),
    store: RestaurantStore = Depends(get_store),
) -> list[RestaurantRead]:
    """Return all restaurants, filtered by exact city, cuisine type and price range."""
    try:
        rows = await store.find_all(city=city, cuisine=cuisine, price_range=price_range)
    except PersistenceError as exc:
        logger.error("Restaurant listing failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch restaurants",
        ) from exc
    return [RestaurantRead.model_validate(r) for r in rows]


def _parse_coordinate(raw: str, limit: float, name: str) -> float:
    """Parse a latitude/longitude query value; 400 if it is not a number within ±limit."""
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value) or abs(value) > limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name}",
        )
    return value


def _parse_radius(raw: Optional[str]) -> int:
    """Parse the radius in metres; 400 unless it is a positive integer."""
    if raw is None or raw == "":
        return settings.default_search_radius_m
    try:
        radius = int(raw)
    except ValueError:
        radius = 0
    if radius <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid radius",
        )
    return radius


async def _watch_disconnect(
    request: Request, cancel_event: asyncio.Event, interval: float = DISCONNECT_POLL_SECONDS
) -> None:
    """Set cancel_event once the client has gone away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected; cancelling fetch for %s", request.url)
            cancel_event.set()
            return
        await asyncio.sleep(interval)


@router.get("/search", response_model=list[NearbyRestaurant])
async def search_nearby(
    request: Request,
    lat: Optional[str] = Query(default=None, description="Latitude in degrees"),
    lng: Optional[str] = Query(default=None, description="Longitude in degrees"),
    radius: Optional[str] = Query(default=None, description="Search radius in metres (default 1000)"),
    store: RestaurantStore = Depends(get_store),
    fetcher: PriceFetcher = Depends(get_price_fetcher),
) -> list[NearbyRestaurant]:
    """
    Pull fresh places around (lat, lng) into the store, then return every
    stored restaurant within `radius` metres ordered by distance.

    Individual places that fail to save are skipped; only a failed upstream
    search turns into an error response. A client disconnect stops the
    fetch after the place in progress.
    """
    if not lat or not lng:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Latitude and longitude are required",
        )
    lat_deg = _parse_coordinate(lat, 90.0, "latitude")
    lng_deg = _parse_coordinate(lng, 180.0, "longitude")
    radius_m = _parse_radius(radius)

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        await fetcher.fetch_and_save_restaurants(lat_deg, lng_deg, radius_m, cancel_event)
    except UpstreamError as exc:
        logger.error("Places search failed at (%f,%f): %s", lat_deg, lng_deg, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch restaurants",
        ) from exc
    finally:
        watcher.cancel()

    try:
        hits = await nearby_search(store, lat_deg, lng_deg, radius_m)
    except PersistenceError as exc:
        logger.error("Nearby query failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch nearby restaurants",
        ) from exc

    return [
        NearbyRestaurant(**RestaurantRead.model_validate(r).model_dump(), distance_km=d)
        for r, d in hits
    ]


@router.get("/{restaurant_id}", response_model=RestaurantDetail)
async def get_restaurant(
    restaurant_id: int,
    store: RestaurantStore = Depends(get_store),
) -> RestaurantDetail:
    """Return one restaurant including its menu items."""
    try:
        restaurant = await store.get_restaurant(restaurant_id, with_menu=True)
    except PersistenceError as exc:
        logger.error("Restaurant %d fetch failed: %s", restaurant_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch restaurant",
        ) from exc

    if restaurant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Restaurant not found",
        )
    return RestaurantDetail.model_validate(restaurant)


@router.get("/{restaurant_id}/menu", response_model=list[MenuItemRead])
async def get_menu_items(
    restaurant_id: int,
    category: Optional[str] = Query(default=None),
    max_price: Optional[float] = Query(default=None, ge=0),
    store: RestaurantStore = Depends(get_store),
) -> list[MenuItemRead]:
    """Return a restaurant's menu items."""
    try:
        items = await store.find_menu_items(
            restaurant_id, category=category, max_price=max_price
        )
    except PersistenceError as exc:
        logger.error("Menu listing for restaurant %d failed: %s", restaurant_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch menu items",
        ) from exc
    return [MenuItemRead.model_validate(i) for i in items]
