"""Pydantic schemas package."""

from cheapeats.schemas.places import Geometry, Location, PlaceDetail, PlaceSummary
from cheapeats.schemas.restaurant import (
    MenuItemDetail,
    MenuItemRead,
    NearbyRestaurant,
    PriceHistoryRead,
    RestaurantDetail,
    RestaurantRead,
)

__all__ = [
    "Geometry", "Location", "PlaceDetail", "PlaceSummary",
    "MenuItemDetail", "MenuItemRead", "NearbyRestaurant",
    "PriceHistoryRead", "RestaurantDetail", "RestaurantRead",
]
