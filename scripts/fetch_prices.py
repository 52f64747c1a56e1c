"""
fetch_prices.py: run one price-fetch pass for a coordinate without the API server.

Searches Google Places around the point, upserts restaurants, refreshes the
placeholder menus and appends price history, exactly as GET /restaurants/search
does. Ctrl-C stops after the place currently being processed.

Usage:
    python scripts/fetch_prices.py --lat 37.7749 --lng -122.4194
    python scripts/fetch_prices.py --lat 37.7749 --lng -122.4194 --radius 2500
    python scripts/fetch_prices.py --lat 37.7749 --lng -122.4194 --delay 0.5
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from cheapeats.config import settings
from cheapeats.database import AsyncSessionLocal, engine
from cheapeats.models import Base
from cheapeats.services.places_client import PlacesClient, UpstreamError
from cheapeats.services.price_fetcher import PriceFetcher
from cheapeats.services.store import RestaurantStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def run_fetch(lat: float, lng: float, radius: int, delay: float) -> int:
    """Run one fetch pass; returns a process exit code."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl-C aborts immediately
        pass

    client = PlacesClient(settings.google_places_api_key)
    fetcher = PriceFetcher(client, RestaurantStore(AsyncSessionLocal), delay_seconds=delay)
    try:
        summary = await fetcher.fetch_and_save_restaurants(lat, lng, radius, cancel_event)
    except UpstreamError as exc:
        logger.error("Places search failed: %s", exc)
        return 1
    finally:
        client.close()
        await engine.dispose()

    logger.info(
        "Done. Places: %d, Created: %d, Updated: %d, Skipped: %d, Without details: %d",
        summary.total, summary.created, summary.updated,
        summary.skipped, summary.details_failed,
    )
    return 130 if summary.cancelled else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Fetch restaurants and menu prices around a point.")
    parser.add_argument("--lat", type=float, required=True, help="Latitude of the search centre")
    parser.add_argument("--lng", type=float, required=True, help="Longitude of the search centre")
    parser.add_argument(
        "--radius", type=int, default=settings.default_search_radius_m,
        help="Search radius in metres",
    )
    parser.add_argument(
        "--delay", type=float, default=settings.fetch_delay_seconds,
        help="Seconds to wait between places",
    )
    args = parser.parse_args()

    if not settings.google_places_api_key:
        parser.error("GOOGLE_PLACES_API_KEY is not set")

    sys.exit(asyncio.run(run_fetch(args.lat, args.lng, args.radius, args.delay)))


if __name__ == "__main__":
    main()
