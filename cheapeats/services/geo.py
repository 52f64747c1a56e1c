"""
Geo query engine: great-circle distance over stored coordinates.

Distances use the spherical law of cosines on a 6371 km sphere:

    d = R * acos(cos(lat1)·cos(lat2)·cos(lng2 − lng1) + sin(lat1)·sin(lat2))

The store narrows candidates with a lat/lng bounding box in SQL; the exact
radius filter and ordering run here so every backend ranks identically.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Protocol, TypeVar

if TYPE_CHECKING:
    from cheapeats.models import Restaurant
    from cheapeats.services.store import RestaurantStore

EARTH_RADIUS_KM = 6371.0

# Widen the box slightly so float rounding never drops a point on the edge
_EDGE_SLACK_DEG = 1e-9


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


T = TypeVar("T", bound=HasCoordinates)


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive lat/lng window that contains every point within a radius."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    wraps_longitude: bool = False   # True when no longitude filter should apply


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres between two points given in degrees."""
    if lat1 == lat2 and lng1 == lng2:
        return 0.0

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lng = math.radians(lng2) - math.radians(lng1)

    cos_angle = (
        math.cos(phi1) * math.cos(phi2) * math.cos(delta_lng)
        + math.sin(phi1) * math.sin(phi2)
    )
    # Rounding can push identical points slightly past 1.0
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return EARTH_RADIUS_KM * math.acos(cos_angle)


def bounding_box(lat: float, lng: float, radius_m: float) -> BoundingBox:
    """Return a box around (lat, lng) guaranteed to contain the search circle."""
    angular = (radius_m / 1000.0) / EARTH_RADIUS_KM
    delta_lat = math.degrees(angular)

    min_lat = lat - delta_lat - _EDGE_SLACK_DEG
    max_lat = lat + delta_lat + _EDGE_SLACK_DEG
    # A pole inside the circle makes every longitude reachable
    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(
            max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0,
            wraps_longitude=True,
        )

    ratio = math.sin(angular) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0, wraps_longitude=True)

    delta_lng = math.degrees(math.asin(ratio)) + _EDGE_SLACK_DEG
    if lng - delta_lng < -180.0 or lng + delta_lng > 180.0:
        # Crosses the antimeridian
        return BoundingBox(min_lat, max_lat, -180.0, 180.0, wraps_longitude=True)

    return BoundingBox(min_lat, max_lat, lng - delta_lng, lng + delta_lng)


def rank_by_distance(
    candidates: Iterable[T],
    lat: float,
    lng: float,
    radius_m: float,
) -> list[tuple[T, float]]:
    """
    Keep candidates within radius_m of (lat, lng) and sort them nearest first.

    Returns (candidate, distance_km) pairs. Ties keep their input order.
    """
    radius_km = radius_m / 1000.0
    hits: list[tuple[T, float]] = []
    for candidate in candidates:
        d = distance_km(lat, lng, candidate.latitude, candidate.longitude)
        if d <= radius_km:
            hits.append((candidate, d))
    hits.sort(key=lambda pair: pair[1])
    return hits


async def nearby_search(
    store: "RestaurantStore",
    lat: float,
    lng: float,
    radius_m: float,
) -> list[tuple["Restaurant", float]]:
    """
    Stored restaurants within radius_m of (lat, lng), nearest first, each
    paired with its distance in kilometres. Read-only.
    """
    candidates = await store.find_in_bounding_box(bounding_box(lat, lng, radius_m))
    return rank_by_distance(candidates, lat, lng, radius_m)
