"""Shared test doubles: place payload builder, fake Places client, deterministic RNGs."""

from cheapeats.schemas.places import PlaceDetail, PlaceSummary
from cheapeats.services.places_client import UpstreamError


def make_place(
    place_id: str,
    name: str = "Test Diner",
    lat: float = 39.7817,
    lng: float = -89.6501,
    price_level=2,
    rating=4.2,
    types=None,
    address: str = "123 Main St, Springfield, IL 62704, USA",
) -> PlaceSummary:
    """Build a Nearby Search result the way the API returns it."""
    payload = {
        "place_id": place_id,
        "name": name,
        "formatted_address": address,
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "types": types if types is not None else ["restaurant", "food"],
        "opening_hours": {"open_now": True},
    }
    if rating is not None:
        payload["rating"] = rating
    if price_level is not None:
        payload["price_level"] = price_level
    return PlaceSummary.model_validate(payload)


class FakePlacesClient:
    """
    In-memory stand-in for PlacesClient.

    places:        returned by search_nearby (or search_error is raised)
    details:       place_id -> PlaceDetail; ids in failing_details raise UpstreamError
    """

    def __init__(self, places=None, details=None, failing_details=(), search_error=None):
        self.places = list(places or [])
        self.details = dict(details or {})
        self.failing_details = set(failing_details)
        self.search_error = search_error
        self.search_calls = []
        self.detail_calls = []

    async def search_nearby(self, lat, lng, radius_m, cancel_event=None):
        self.search_calls.append((lat, lng, radius_m))
        if self.search_error is not None:
            raise self.search_error
        return list(self.places)

    async def get_details(self, external_id, cancel_event=None):
        self.detail_calls.append(external_id)
        if external_id in self.failing_details:
            raise UpstreamError(f"details for {external_id} unavailable")
        return self.details.get(external_id, PlaceDetail(place_id=external_id))


class FixedRandom:
    """random.Random stand-in that always returns the same value."""

    def __init__(self, value: float = 0.5):
        self.value = value

    def random(self) -> float:
        return self.value


class SequenceRandom:
    """random.Random stand-in that cycles through the given values."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value
