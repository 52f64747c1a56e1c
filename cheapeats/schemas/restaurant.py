"""Pydantic response schemas for restaurants, menu items and price history."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PriceHistoryRead(BaseModel):
    """A single recorded price point."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    price: float
    recorded_at: datetime


class MenuItemRead(BaseModel):
    """Menu item as listed under a restaurant."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    currency: str = "USD"
    is_available: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuItemDetail(MenuItemRead):
    """GET /menu-items/{item_id}: the item plus its full price history, newest first."""

    price_history: list[PriceHistoryRead] = Field(default_factory=list)


class RestaurantRead(BaseModel):
    """Restaurant row without relationships."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    latitude: float
    longitude: float
    cuisine_type: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    price_range: Optional[str] = None   # 'Free' | '$' | '$$' | '$$$' | '$$$$' | 'N/A'
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RestaurantDetail(RestaurantRead):
    """GET /restaurants/{id}: the restaurant with its menu."""

    menu_items: list[MenuItemRead] = Field(default_factory=list)


class NearbyRestaurant(RestaurantRead):
    """A search hit annotated with its great-circle distance from the query point."""

    distance_km: float
