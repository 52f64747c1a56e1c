"""FastAPI dependencies: hand out the singletons built in the app lifespan."""

from __future__ import annotations

from fastapi import Request

from cheapeats.services.price_fetcher import PriceFetcher
from cheapeats.services.store import RestaurantStore


def get_store(request: Request) -> RestaurantStore:
    """The shared RestaurantStore."""
    return request.app.state.store


def get_price_fetcher(request: Request) -> PriceFetcher:
    """The shared PriceFetcher."""
    return request.app.state.price_fetcher
