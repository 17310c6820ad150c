from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from config import Configuration
from services.places import GooglePlacesClient, PlacesError, parse_details


def _resp(status: int, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    resp.json.return_value = payload
    return resp


DETAILS_PAYLOAD = {
    "id": "abc",
    "displayName": {"text": "さぬきうどん 一番"},
    "formattedAddress": "日本、〒760-0001 香川県高松市中央町1",
    "location": {"latitude": 34.34, "longitude": 134.04},
    "types": ["restaurant", "food"],
    "rating": 4.4,
    "userRatingCount": 321,
    "googleMapsUri": "https://maps.google.com/?cid=1",
    "regularOpeningHours": {
        "periods": [{"open": {"day": 1, "hour": 10, "minute": 0}, "close": {"day": 1, "hour": 14, "minute": 0}}],
        "weekdayDescriptions": ["月曜日: 10時00分～14時00分"],
    },
    "utcOffsetMinutes": 540,
    "reviews": [{"text": {"text": "麺がもちもち"}}, {"text": {}}],
}


def _client(session: MagicMock) -> GooglePlacesClient:
    return GooglePlacesClient(Configuration(google_maps_api_key="key"), session=session)


def test_parse_details() -> None:
    details = parse_details(DETAILS_PAYLOAD)
    assert details.place_id == "abc"
    assert details.name == "さぬきうどん 一番"
    assert details.rating == 4.4
    assert details.user_rating_count == 321
    assert details.utc_offset_minutes == 540
    assert details.opening_hours is not None
    assert details.opening_hours.periods[0].open.day == 1
    assert details.reviews == ["麺がもちもち"]


def test_parse_details_tolerates_missing_fields() -> None:
    details = parse_details({"id": "x"})
    assert details.name is None
    assert details.opening_hours is None
    assert details.types == []


def test_get_details_sends_field_mask() -> None:
    session = MagicMock()
    session.request.return_value = _resp(200, DETAILS_PAYLOAD)
    details = _client(session).get_details("abc")

    assert details is not None and details.place_id == "abc"
    args, kwargs = session.request.call_args
    assert args[0] == "GET"
    assert args[1].endswith("/v1/places/abc")
    assert kwargs["headers"]["X-Goog-Api-Key"] == "key"
    assert "reviews" not in kwargs["headers"]["X-Goog-FieldMask"]
    assert kwargs["params"] == {"languageCode": "ja", "regionCode": "JP"}


def test_get_details_with_reviews_extends_mask() -> None:
    session = MagicMock()
    session.request.return_value = _resp(200, DETAILS_PAYLOAD)
    _client(session).get_details("abc", with_reviews=True)
    _, kwargs = session.request.call_args
    assert kwargs["headers"]["X-Goog-FieldMask"].endswith(",reviews")


def test_get_details_404_is_none() -> None:
    session = MagicMock()
    session.request.return_value = _resp(404, text="not found")
    assert _client(session).get_details("gone") is None


@patch("services.places.time.sleep")
def test_retries_then_raises(mock_sleep: MagicMock) -> None:
    session = MagicMock()
    session.request.return_value = _resp(503, text="busy")
    with pytest.raises(PlacesError):
        _client(session).get_details("abc")
    assert session.request.call_count == 4
    assert mock_sleep.call_count == 3


@patch("services.places.time.sleep")
def test_network_error_recovers(mock_sleep: MagicMock) -> None:
    session = MagicMock()
    session.request.side_effect = [requests.ConnectionError("boom"), _resp(200, DETAILS_PAYLOAD)]
    assert _client(session).get_details("abc") is not None
    assert mock_sleep.call_count == 1


def test_client_error_raises_without_retry() -> None:
    session = MagicMock()
    session.request.return_value = _resp(400, text="bad request")
    with pytest.raises(PlacesError):
        _client(session).get_details("abc")
    assert session.request.call_count == 1


@patch("services.places.time.sleep")
def test_search_text_follows_page_tokens(mock_sleep: MagicMock) -> None:
    session = MagicMock()
    session.request.side_effect = [
        _resp(200, {"places": [{"id": "a", "displayName": {"text": "A"}}], "nextPageToken": "t1"}),
        _resp(200, {"places": [{"id": "b"}, {"displayName": {"text": "no id"}}]}),
    ]
    results = _client(session).search_text("香川県 うどん", (34.34, 134.04))

    assert [r.place_id for r in results] == ["a", "b"]
    first_body = session.request.call_args_list[0].kwargs["json"]
    second_body = session.request.call_args_list[1].kwargs["json"]
    assert first_body["textQuery"] == "香川県 うどん"
    assert "pageToken" not in first_body
    assert second_body["pageToken"] == "t1"
    assert first_body["locationBias"]["circle"]["center"] == {"latitude": 34.34, "longitude": 134.04}
