"""
Google Places client: Nearby Search and Place Details.

Calls are made with a blocking requests.Session in a worker thread, bounded
by PLACES_TIMEOUT_SECONDS. Each call can be cancelled through an
asyncio.Event; a cancelled or failed call raises UpstreamError and leaves the
caller free to carry on. No retries happen here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

import requests
from pydantic import ValidationError

from cheapeats.config import settings
from cheapeats.schemas.places import PlaceDetail, PlaceSummary

logger = logging.getLogger(__name__)

DETAIL_FIELDS = (
    "place_id,name,formatted_address,formatted_phone_number,"
    "website,rating,price_level,types,geometry"
)

# Nearby Search statuses that carry a usable (possibly empty) result set
_SEARCH_OK_STATUSES = ("OK", "ZERO_RESULTS")


class UpstreamError(Exception):
    """Raised when a Places call fails, times out, is cancelled or returns a bad status."""


class PlacesClient:
    """Thin async wrapper over the Places web service."""

    def __init__(
        self,
        api_key: str,
        base_url: str = settings.places_base_url,
        timeout: float = settings.places_timeout_seconds,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    # ── Public API ───────────────────────────────────────────────────────────

    async def search_nearby(
        self,
        lat: float,
        lng: float,
        radius_m: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> list[PlaceSummary]:
        """
        Return restaurants within radius_m of (lat, lng).
        A ZERO_RESULTS status is an empty list, not an error. Results that
        fail validation are logged and left out.
        """
        params = {
            "location": f"{lat:f},{lng:f}",
            "radius": str(radius_m),
            "type": "restaurant",
            "key": self._api_key,
        }
        payload = await self._call(
            "nearbysearch", params, cancel_event, ok_statuses=_SEARCH_OK_STATUSES
        )

        places: list[PlaceSummary] = []
        for index, result in enumerate(payload.get("results") or []):
            try:
                places.append(PlaceSummary.model_validate(result))
            except ValidationError as exc:
                # One bad entry never costs the rest of the search
                logger.warning("Dropping malformed nearby search result #%d: %s", index, exc)

        logger.info(
            "Nearby search (%f,%f r=%dm) returned %d places (status=%s)",
            lat, lng, radius_m, len(places), payload.get("status"),
        )
        return places

    async def get_details(
        self,
        external_id: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PlaceDetail:
        """Return the detail record for a place id."""
        params = {
            "place_id": external_id,
            "fields": DETAIL_FIELDS,
            "key": self._api_key,
        }
        payload = await self._call("details", params, cancel_event, ok_statuses=("OK",))
        try:
            return PlaceDetail.model_validate(payload.get("result") or {})
        except ValidationError as exc:
            raise UpstreamError(f"Malformed details result for {external_id}: {exc}") from exc

    # ── Private: HTTP layer ──────────────────────────────────────────────────

    def _get_json(self, endpoint: str, params: dict[str, str]) -> dict[str, Any]:
        """Blocking GET; runs in a worker thread."""
        url = f"{self._base_url}/{endpoint}/json"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise UpstreamError(f"{endpoint} request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"{endpoint} returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise UpstreamError(f"{endpoint} returned an unexpected payload")
        return payload

    async def _call(
        self,
        endpoint: str,
        params: dict[str, str],
        cancel_event: Optional[asyncio.Event],
        ok_statuses: tuple[str, ...],
    ) -> dict[str, Any]:
        payload = await self._run_cancellable(
            lambda: self._get_json(endpoint, params), cancel_event, endpoint
        )
        status = payload.get("status")
        if status not in ok_statuses:
            detail = payload.get("error_message") or ""
            raise UpstreamError(f"{endpoint} returned status {status} {detail}".rstrip())
        return payload

    async def _run_cancellable(
        self,
        fn: Callable[[], dict[str, Any]],
        cancel_event: Optional[asyncio.Event],
        endpoint: str,
    ) -> dict[str, Any]:
        """
        Run fn in a thread under the request timeout, racing it against
        cancel_event. Cancellation fails this call only.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise UpstreamError(f"{endpoint} request cancelled")

        request = asyncio.ensure_future(
            asyncio.wait_for(asyncio.to_thread(fn), timeout=self._timeout)
        )
        if cancel_event is None:
            return await self._await_request(request, endpoint)

        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {request, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            request.cancel()
            cancelled.cancel()
            raise

        if request in done:
            cancelled.cancel()
            return await self._await_request(request, endpoint)

        request.cancel()
        raise UpstreamError(f"{endpoint} request cancelled")

    async def _await_request(
        self, request: "asyncio.Future[dict[str, Any]]", endpoint: str
    ) -> dict[str, Any]:
        try:
            return await request
        except asyncio.TimeoutError as exc:
            raise UpstreamError(
                f"{endpoint} request timed out after {self._timeout:g}s"
            ) from exc
