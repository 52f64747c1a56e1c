"""
Price fetcher: merges Google Places results into the restaurant store.

Pipeline per search (places handled one at a time, in result order):
  1. Map the search result to restaurant columns (price range, cuisine, address parts)
  2. Create the restaurant, or update it in place if external_id is known
  3. Fetch place details; copy phone/website when present
  4. Persist the enriched restaurant
  5. Synthesize the six-item placeholder menu and record price changes
  6. Store the raw search/detail payloads as a provenance record
  7. Sleep FETCH_DELAY_SECONDS before the next place

Only a failed initial search aborts the run. A store failure on one place is
logged and that place is skipped; a details failure only skips enrichment.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from cheapeats.config import settings
from cheapeats.models import Restaurant
from cheapeats.schemas.places import PlaceDetail, PlaceSummary
from cheapeats.services.places_client import UpstreamError
from cheapeats.services.store import PersistenceError, RestaurantStore

logger = logging.getLogger(__name__)

SCRAPE_SOURCE = "google_places"
DEFAULT_CURRENCY = "USD"

_PRICE_LEVEL_LABELS: dict[int, str] = {
    0: "Free",
    1: "$",
    2: "$$",
    3: "$$$",
    4: "$$$$",
}
UNKNOWN_PRICE_RANGE = "N/A"

# Scanned top to bottom; the first tag present on the place wins
CUISINE_TYPES: tuple[tuple[str, str], ...] = (
    ("chinese_restaurant", "Chinese"),
    ("italian_restaurant", "Italian"),
    ("mexican_restaurant", "Mexican"),
    ("japanese_restaurant", "Japanese"),
    ("indian_restaurant", "Indian"),
    ("thai_restaurant", "Thai"),
    ("french_restaurant", "French"),
    ("pizza", "Pizza"),
    ("burger", "Burger"),
    ("seafood", "Seafood"),
    ("vegetarian", "Vegetarian"),
    ("cafe", "Cafe"),
    ("bakery", "Bakery"),
    ("bar", "Bar"),
)


@dataclass(frozen=True)
class MenuTemplate:
    """One placeholder dish: price = base * multiplier + U[0, jitter), or flat + U[0, jitter)."""

    name: str
    description: str
    category: str
    multiplier: float
    jitter: float
    flat_price: Optional[float] = None   # set for items that ignore the base price

    def price(self, base_price: float, rng: "RandomSource") -> float:
        start = self.flat_price if self.flat_price is not None else base_price * self.multiplier
        return start + rng.random() * self.jitter


SYNTHESIZED_MENU: tuple[MenuTemplate, ...] = (
    MenuTemplate("Signature Appetizer", "Chef's special starter", "Appetizers", 0.7, 5.0),
    MenuTemplate("House Special Main", "Most popular main dish", "Main Course", 1.0, 10.0),
    MenuTemplate("Daily Special", "Today's featured dish", "Main Course", 1.2, 8.0),
    MenuTemplate("Classic Burger", "Traditional burger with fries", "Main Course", 0.9, 5.0),
    MenuTemplate("Dessert of the Day", "Sweet treat to end your meal", "Desserts", 0.5, 3.0),
    MenuTemplate("Soft Drink", "Various sodas available", "Beverages", 0.0, 2.0, flat_price=3.50),
)


class RandomSource(Protocol):
    def random(self) -> float: ...


class PlacesSource(Protocol):
    """The two Places calls the fetcher depends on (see PlacesClient)."""

    async def search_nearby(
        self, lat: float, lng: float, radius_m: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> list[PlaceSummary]: ...

    async def get_details(
        self, external_id: str, cancel_event: Optional[asyncio.Event] = None,
    ) -> PlaceDetail: ...


@dataclass
class ReconcileSummary:
    """Counts for one fetch run. Partial failures show up here and in the logs only."""

    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    details_failed: int = 0
    cancelled: bool = False


# ── Pure mapping helpers ─────────────────────────────────────────────────────


def convert_price_level(level: Optional[int]) -> str:
    """Map a 0–4 provider price level to a price range label; anything else is 'N/A'."""
    if level is None:
        return UNKNOWN_PRICE_RANGE
    return _PRICE_LEVEL_LABELS.get(level, UNKNOWN_PRICE_RANGE)


def extract_cuisine_type(types: list[str]) -> str:
    """Return the cuisine label for a place's type tags."""
    tags = set(types)
    for tag, label in CUISINE_TYPES:
        if tag in tags:
            return label
    if "restaurant" in tags:
        return "General"
    return "Other"


def parse_address(address: str) -> dict[str, str]:
    """
    Split "street, City, ST 12345, Country" into city/state/zip_code/country.

    Only keys that could be parsed are returned; an address with fewer than
    three comma-separated parts yields {}.
    """
    parts = address.split(", ") if address else []
    if len(parts) < 3:
        return {}

    parsed = {"city": parts[-3], "country": parts[-1]}
    state_zip = parts[-2].split(maxsplit=1)
    if len(state_zip) == 2:
        parsed["state"], parsed["zip_code"] = state_zip
    return parsed


def base_menu_price(price_level: Optional[int]) -> float:
    """Anchor price for the synthesized menu."""
    if price_level and price_level > 0:
        return float(price_level) * 15.0
    return 10.0


def restaurant_fields(place: PlaceSummary) -> dict[str, Any]:
    """Project a search result onto restaurant columns."""
    fields: dict[str, Any] = {
        "external_id": place.place_id,
        "name": place.name,
        "address": place.formatted_address,
        "latitude": place.geometry.location.lat,
        "longitude": place.geometry.location.lng,
        "rating": place.rating,
        "price_range": convert_price_level(place.price_level),
        "cuisine_type": extract_cuisine_type(place.types),
    }
    fields.update(parse_address(place.formatted_address))
    return fields


# ── Fetcher ──────────────────────────────────────────────────────────────────


class PriceFetcher:
    """
    Fetches restaurants around a point and reconciles them with the store.
    Holds no per-run state; one instance is shared by the whole app.
    """

    def __init__(
        self,
        client: PlacesSource,
        store: RestaurantStore,
        delay_seconds: float = settings.fetch_delay_seconds,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self._client = client
        self._store = store
        self._delay_seconds = delay_seconds
        self._rng = rng or random.Random()

    async def fetch_and_save_restaurants(
        self,
        lat: float,
        lng: float,
        radius_m: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ReconcileSummary:
        """
        Search around (lat, lng) and merge every result into the store.

        Raises UpstreamError only when the initial search fails.
        """
        places = await self._client.search_nearby(lat, lng, radius_m, cancel_event)
        summary = ReconcileSummary(total=len(places))

        for index, place in enumerate(places):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(
                    "Fetch cancelled after %d of %d places", index, len(places)
                )
                summary.cancelled = True
                break

            await self._reconcile_place(place, summary, cancel_event)

            if index < len(places) - 1 and self._delay_seconds > 0:
                await asyncio.sleep(self._delay_seconds)

        logger.info(
            "Fetch at (%f,%f r=%dm): %d places, %d created, %d updated, "
            "%d skipped, %d without details%s",
            lat, lng, radius_m, summary.total, summary.created, summary.updated,
            summary.skipped, summary.details_failed,
            " (cancelled)" if summary.cancelled else "",
        )
        return summary

    async def _reconcile_place(
        self,
        place: PlaceSummary,
        summary: ReconcileSummary,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        fields = restaurant_fields(place)

        try:
            restaurant, created = await self._upsert_restaurant(fields)
        except PersistenceError as exc:
            logger.error("Failed to save restaurant %s (%s): %s", place.name, place.place_id, exc)
            summary.skipped += 1
            return

        details: Optional[PlaceDetail] = None
        try:
            details = await self._client.get_details(place.place_id, cancel_event)
        except UpstreamError as exc:
            logger.warning("Failed to get details for restaurant %s: %s", place.name, exc)
            summary.details_failed += 1

        if details is not None:
            enrichment = {}
            if details.formatted_phone_number:
                enrichment["phone"] = details.formatted_phone_number
            if details.website:
                enrichment["website"] = details.website
            if enrichment:
                try:
                    await self._store.update_restaurant(restaurant.id, enrichment)
                except PersistenceError as exc:
                    logger.error(
                        "Failed to save details for restaurant %s: %s", place.name, exc
                    )
                    summary.skipped += 1
                    return

        if created:
            summary.created += 1
        else:
            summary.updated += 1

        await self.generate_sample_menu_items(restaurant.id, place.price_level)

        raw_data = {
            "search_result": place.model_dump(mode="json"),
            "details": details.model_dump(mode="json") if details is not None else None,
        }
        try:
            await self._store.append_scraped_record(SCRAPE_SOURCE, raw_data, restaurant.id)
        except PersistenceError as exc:
            logger.error("Failed to store raw data for restaurant %s: %s", place.name, exc)

    async def _upsert_restaurant(self, fields: dict[str, Any]) -> tuple[Restaurant, bool]:
        """
        Return (restaurant, created). Matching is by external_id.
        On update, fields the search left blank keep their stored value.
        """
        existing = await self._store.find_by_external_id(fields["external_id"])
        if existing is None:
            return await self._store.create_restaurant(fields), True
        changes = {k: v for k, v in fields.items() if v is not None and v != ""}
        await self._store.update_restaurant(existing.id, changes)
        return existing, False

    async def generate_sample_menu_items(
        self, restaurant_id: int, price_level: Optional[int]
    ) -> None:
        """
        Create or refresh the placeholder menu for a restaurant.

        New items get an initial price_history row; existing items get a new
        row only when the freshly computed price differs from the stored one.
        """
        base_price = base_menu_price(price_level)

        for template in SYNTHESIZED_MENU:
            price = template.price(base_price, self._rng)
            try:
                existing = await self._store.find_menu_item(restaurant_id, template.name)
                if existing is None:
                    await self._store.create_menu_item({
                        "restaurant_id": restaurant_id,
                        "name": template.name,
                        "description": template.description,
                        "category": template.category,
                        "price": price,
                        "currency": DEFAULT_CURRENCY,
                        "is_available": True,
                    })
                elif existing.price != price:
                    await self._store.update_menu_item_price(existing.id, price)
            except PersistenceError as exc:
                logger.error(
                    "Failed to save menu item %r for restaurant %d: %s",
                    template.name, restaurant_id, exc,
                )
