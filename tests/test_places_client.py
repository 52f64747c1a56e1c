"""Unit tests for the Google Places client (HTTP session mocked)."""

import asyncio
import threading
from unittest.mock import Mock

import pytest
import requests

from cheapeats.services.places_client import DETAIL_FIELDS, PlacesClient, UpstreamError

SEARCH_PAYLOAD = {
    "status": "OK",
    "results": [
        {
            "place_id": "ChIJ1",
            "name": "Cozy Dog Drive In",
            "formatted_address": "2935 S 6th St, Springfield, IL 62703, USA",
            "geometry": {"location": {"lat": 39.7709, "lng": -89.6501}},
            "rating": 4.4,
            "price_level": 1,
            "types": ["restaurant", "food", "point_of_interest"],
            "user_ratings_total": 2450,
        },
        {
            "place_id": "ChIJ2",
            "name": "No Price Cafe",
            "geometry": {"location": {"lat": 39.78, "lng": -89.65}},
            "types": ["cafe"],
        },
    ],
}

DETAILS_PAYLOAD = {
    "status": "OK",
    "result": {
        "place_id": "ChIJ1",
        "name": "Cozy Dog Drive In",
        "formatted_phone_number": "(217) 525-1992",
        "website": "http://www.cozydogdrivein.com/",
        "price_level": 1,
    },
}


def _make_response(payload, status: int = 200) -> Mock:
    """Create a mock requests.Response."""
    resp = Mock()
    resp.status_code = status
    resp.json = Mock(return_value=payload)
    if status >= 400:
        resp.raise_for_status = Mock(side_effect=requests.exceptions.HTTPError(f"{status} Error"))
    else:
        resp.raise_for_status = Mock()
    return resp


def _client(session: Mock, **kwargs) -> PlacesClient:
    return PlacesClient("test-key", base_url="https://places.test/api", session=session, **kwargs)


# ---------------------------------------------------------------------------
# search_nearby
# ---------------------------------------------------------------------------


class TestSearchNearby:
    def test_parses_results(self):
        session = Mock()
        session.get.return_value = _make_response(SEARCH_PAYLOAD)

        places = asyncio.run(_client(session).search_nearby(39.78, -89.65, 1500))

        assert [p.place_id for p in places] == ["ChIJ1", "ChIJ2"]
        assert places[0].price_level == 1
        assert places[0].geometry.location.lat == pytest.approx(39.7709)
        assert places[1].price_level is None
        assert places[1].formatted_address == ""
        # Extra provider fields are kept for the raw record
        assert places[0].model_dump()["user_ratings_total"] == 2450

    def test_request_parameters(self):
        session = Mock()
        session.get.return_value = _make_response({"status": "ZERO_RESULTS", "results": []})

        asyncio.run(_client(session, timeout=12).search_nearby(39.78, -89.65, 1500))

        args, kwargs = session.get.call_args
        assert args[0] == "https://places.test/api/nearbysearch/json"
        assert kwargs["params"] == {
            "location": "39.780000,-89.650000",
            "radius": "1500",
            "type": "restaurant",
            "key": "test-key",
        }
        assert kwargs["timeout"] == 12

    def test_zero_results_is_empty(self):
        session = Mock()
        session.get.return_value = _make_response({"status": "ZERO_RESULTS", "results": []})
        assert asyncio.run(_client(session).search_nearby(0, 0, 100)) == []

    @pytest.mark.parametrize("status", ["REQUEST_DENIED", "OVER_QUERY_LIMIT", "INVALID_REQUEST", None])
    def test_bad_status_raises(self, status):
        session = Mock()
        session.get.return_value = _make_response(
            {"status": status, "results": [], "error_message": "nope"}
        )
        with pytest.raises(UpstreamError, match="status"):
            asyncio.run(_client(session).search_nearby(0, 0, 100))

    def test_transport_error_raises(self):
        session = Mock()
        session.get.side_effect = requests.exceptions.ConnectionError("boom")
        with pytest.raises(UpstreamError, match="request failed"):
            asyncio.run(_client(session).search_nearby(0, 0, 100))

    def test_http_error_raises(self):
        session = Mock()
        session.get.return_value = _make_response({}, status=503)
        with pytest.raises(UpstreamError):
            asyncio.run(_client(session).search_nearby(0, 0, 100))

    def test_non_json_body_raises(self):
        session = Mock()
        resp = _make_response(None)
        resp.json.side_effect = ValueError("not json")
        session.get.return_value = resp
        with pytest.raises(UpstreamError, match="non-JSON"):
            asyncio.run(_client(session).search_nearby(0, 0, 100))

    def test_malformed_result_is_dropped_and_rest_kept(self):
        session = Mock()
        session.get.return_value = _make_response({
            "status": "OK",
            "results": [
                SEARCH_PAYLOAD["results"][0],
                {"name": "No Id Grill"},
                {"place_id": "ChIJ3", "price_level": "cheap"},
                SEARCH_PAYLOAD["results"][1],
            ],
        })

        places = asyncio.run(_client(session).search_nearby(0, 0, 100))

        assert [p.place_id for p in places] == ["ChIJ1", "ChIJ2"]

    def test_only_malformed_results_is_empty(self):
        session = Mock()
        session.get.return_value = _make_response({"status": "OK", "results": [{"name": "x"}]})
        assert asyncio.run(_client(session).search_nearby(0, 0, 100)) == []


# ---------------------------------------------------------------------------
# get_details
# ---------------------------------------------------------------------------


class TestGetDetails:
    def test_parses_result(self):
        session = Mock()
        session.get.return_value = _make_response(DETAILS_PAYLOAD)

        detail = asyncio.run(_client(session).get_details("ChIJ1"))

        assert detail.formatted_phone_number == "(217) 525-1992"
        assert detail.website == "http://www.cozydogdrivein.com/"
        args, kwargs = session.get.call_args
        assert args[0] == "https://places.test/api/details/json"
        assert kwargs["params"] == {"place_id": "ChIJ1", "fields": DETAIL_FIELDS, "key": "test-key"}

    def test_missing_optional_fields_default_to_empty(self):
        session = Mock()
        session.get.return_value = _make_response({"status": "OK", "result": {"place_id": "p"}})
        detail = asyncio.run(_client(session).get_details("p"))
        assert detail.formatted_phone_number == ""
        assert detail.website == ""

    @pytest.mark.parametrize("status", ["NOT_FOUND", "ZERO_RESULTS", "REQUEST_DENIED"])
    def test_non_ok_status_raises(self, status):
        session = Mock()
        session.get.return_value = _make_response({"status": status})
        with pytest.raises(UpstreamError):
            asyncio.run(_client(session).get_details("p"))


# ---------------------------------------------------------------------------
# Timeout and cancellation
# ---------------------------------------------------------------------------


def _blocking_session(release: threading.Event) -> Mock:
    def slow_get(*args, **kwargs):
        release.wait(5)
        return _make_response({"status": "ZERO_RESULTS", "results": []})

    session = Mock()
    session.get.side_effect = slow_get
    return session


class TestTimeoutAndCancellation:
    def test_already_cancelled_skips_request(self):
        session = Mock()

        async def scenario():
            cancel_event = asyncio.Event()
            cancel_event.set()
            with pytest.raises(UpstreamError, match="cancelled"):
                await _client(session).get_details("p", cancel_event)

        asyncio.run(scenario())
        session.get.assert_not_called()

    def test_in_flight_cancel_fails_call(self):
        release = threading.Event()
        client = _client(_blocking_session(release))

        async def scenario():
            cancel_event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.05, cancel_event.set)
            try:
                with pytest.raises(UpstreamError, match="cancelled"):
                    await client.search_nearby(0, 0, 100, cancel_event)
            finally:
                release.set()

        asyncio.run(scenario())

    def test_completes_when_not_cancelled(self):
        session = Mock()
        session.get.return_value = _make_response(DETAILS_PAYLOAD)

        async def scenario():
            return await _client(session).get_details("ChIJ1", asyncio.Event())

        assert asyncio.run(scenario()).place_id == "ChIJ1"

    def test_timeout(self):
        release = threading.Event()
        client = _client(_blocking_session(release), timeout=0.05)

        async def scenario():
            try:
                with pytest.raises(UpstreamError, match="timed out"):
                    await client.search_nearby(0, 0, 100)
            finally:
                release.set()

        asyncio.run(scenario())
