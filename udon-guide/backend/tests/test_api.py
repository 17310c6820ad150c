from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from config import Configuration
from main import app, get_config, get_store
from models import OpeningHours, Period, TimePoint
from services.store import ShopStore

NOW = datetime(2024, 1, 3, 1, 0, tzinfo=timezone.utc)


def _record(store: ShopStore, place_id: str, *, hours=None, rating=None, count=None, area="高松市"):
    record = store.mark_seen(place_id, NOW)
    record.name = place_id
    record.area = area
    record.opening_hours = hours
    record.rating = rating
    record.user_rating_count = count
    return record


@pytest.fixture
def client():
    store = ShopStore()
    # open around the clock, hours unknown, and hours present but unusable
    _record(store, "always", hours=OpeningHours([Period(TimePoint(0, 0, 0), TimePoint(0, 0, 0))]), rating=4.5, count=300)
    _record(store, "unknown", rating=4.0, count=20, area="丸亀市")
    _record(store, "never", hours=OpeningHours([Period(TimePoint(hour=10), None)]))
    _record(store, "hidden", rating=5.0, count=1000).is_hidden = True

    app.dependency_overrides[get_config] = lambda: Configuration()
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _ids(resp) -> list[str]:
    assert resp.status_code == 200
    return sorted(item["place_id"] for item in resp.json())


def test_healthz(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}


def test_list_excludes_hidden(client: TestClient) -> None:
    assert _ids(client.get("/shops")) == ["always", "never", "unknown"]


def test_area_filter(client: TestClient) -> None:
    assert _ids(client.get("/shops", params={"area": "丸亀市"})) == ["unknown"]


def test_open_now_filter_drops_unknown_and_closed(client: TestClient) -> None:
    assert _ids(client.get("/shops", params={"open_now": "true"})) == ["always"]


def test_time_filter(client: TestClient) -> None:
    assert _ids(client.get("/shops", params={"time": "12:00"})) == ["always"]


def test_unparseable_time_filter_is_ignored(client: TestClient) -> None:
    assert _ids(client.get("/shops", params={"time": "9:5"})) == ["always", "never", "unknown"]


def test_closed_day_filter_needs_confirmed_closure(client: TestClient) -> None:
    assert _ids(client.get("/shops", params={"closed_day": 1})) == ["never"]


def test_detail_reports_tri_state(client: TestClient) -> None:
    always = client.get("/shops/always").json()
    unknown = client.get("/shops/unknown").json()
    never = client.get("/shops/never").json()
    assert always["status"]["is_open_now"] is True
    assert unknown["status"] == {"is_open_now": None, "next_open_label": None}
    assert never["status"]["is_open_now"] is False


def test_detail_404(client: TestClient) -> None:
    assert client.get("/shops/missing").status_code == 404
    assert client.get("/shops/hidden").status_code == 404


def test_auto_ranking(client: TestClient) -> None:
    body = client.get("/rankings/auto").json()
    assert [item["shop"]["place_id"] for item in body] == ["always", "unknown"]
    assert body[0]["rank"] == 1


def test_areas(client: TestClient) -> None:
    assert client.get("/areas").json() == {"丸亀市": 1, "高松市": 2}


def test_area_ranking_uses_area_mean(client: TestClient) -> None:
    area_body = client.get("/rankings/area/丸亀市").json()
    auto_body = client.get("/rankings/auto").json()
    assert [item["shop"]["place_id"] for item in area_body] == ["unknown"]
    # alone in its area, the shop is pulled toward its own rating
    assert area_body[0]["score"] == 4.0
    auto_scores = {item["shop"]["place_id"]: item["score"] for item in auto_body}
    assert auto_scores["unknown"] != area_body[0]["score"]


def test_area_ranking_skips_unrated_and_other_areas(client: TestClient) -> None:
    body = client.get("/rankings/area/高松市").json()
    assert [item["shop"]["place_id"] for item in body] == ["always"]
    assert client.get("/rankings/area/坂出市").json() == []


def test_area_ranking_rejects_blank_area(client: TestClient) -> None:
    assert client.get("/rankings/area/%20").status_code == 400
