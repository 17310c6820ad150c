from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import Configuration
from models import OpeningHours, PlaceDetails, PlaceSummary


class PlacesError(RuntimeError):
    pass


@dataclass
class _RetryPolicy:
    retries: int = 3
    base_delay: float = 0.5


SEARCH_FIELD_MASK = (
    "places.id,places.displayName,places.formattedAddress,places.location,places.types,nextPageToken"
)
DETAILS_FIELD_MASK = (
    "id,displayName,formattedAddress,location,rating,userRatingCount,googleMapsUri,types,"
    "regularOpeningHours,utcOffsetMinutes"
)

MAX_SEARCH_PAGES = 4
PAGE_SIZE = 20
PAGE_DELAY_SEC = 0.4


def _display_name(payload: Dict[str, Any]) -> Optional[str]:
    name = (payload.get("displayName") or {}).get("text")
    return str(name) if name else None


def _location(payload: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    loc = payload.get("location") or {}
    lat = loc.get("latitude")
    lng = loc.get("longitude")
    return (
        float(lat) if isinstance(lat, (int, float)) else None,
        float(lng) if isinstance(lng, (int, float)) else None,
    )


def parse_summary(payload: Dict[str, Any]) -> Optional[PlaceSummary]:
    place_id = payload.get("id")
    if not place_id:
        return None
    lat, lng = _location(payload)
    return PlaceSummary(
        place_id=str(place_id),
        name=_display_name(payload),
        address=payload.get("formattedAddress") or None,
        lat=lat,
        lng=lng,
        types=[str(t) for t in (payload.get("types") or [])],
    )


def parse_details(payload: Dict[str, Any]) -> PlaceDetails:
    lat, lng = _location(payload)
    rating = payload.get("rating")
    count = payload.get("userRatingCount")
    offset = payload.get("utcOffsetMinutes")
    hours_raw = payload.get("regularOpeningHours")
    reviews = [
        str((r.get("text") or {}).get("text"))
        for r in (payload.get("reviews") or [])
        if isinstance(r, dict) and (r.get("text") or {}).get("text")
    ]
    return PlaceDetails(
        place_id=str(payload.get("id") or ""),
        name=_display_name(payload),
        address=payload.get("formattedAddress") or None,
        lat=lat,
        lng=lng,
        types=[str(t) for t in (payload.get("types") or [])],
        rating=float(rating) if isinstance(rating, (int, float)) else None,
        user_rating_count=int(count) if isinstance(count, (int, float)) else None,
        google_maps_uri=payload.get("googleMapsUri") or None,
        opening_hours=OpeningHours.from_dict(hours_raw) if isinstance(hours_raw, dict) else None,
        utc_offset_minutes=int(offset) if isinstance(offset, (int, float)) else None,
        reviews=reviews,
    )


class GooglePlacesClient:
    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = cfg.places_base_url.rstrip("/")
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, *, field_mask: str, **kwargs: Any) -> Optional[dict]:
        url = f"{self.base}{path}"
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.cfg.google_maps_api_key or "",
            "X-Goog-FieldMask": field_mask,
        }
        policy = _RetryPolicy()
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.request(method, url, headers=headers, timeout=self.cfg.places_timeout, **kwargs)
            except requests.RequestException as exc:  # network error
                if attempt <= policy.retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise PlacesError(f"request error: {exc}")

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= policy.retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise PlacesError(f"upstream {resp.status_code}: {resp.text[:300]}")

            if resp.status_code == 404:
                return None

            if not resp.ok:
                raise PlacesError(f"upstream {resp.status_code}: {resp.text[:300]}")

            try:
                return resp.json()
            except ValueError:
                raise PlacesError("invalid json response")

    def search_text(
        self,
        query: str,
        center: Tuple[float, float],  # lat, lng
        *,
        radius_m: float = 50000.0,
    ) -> List[PlaceSummary]:
        results: list[PlaceSummary] = []
        page_token: Optional[str] = None
        for _ in range(MAX_SEARCH_PAGES):
            body: Dict[str, Any] = {
                "textQuery": query,
                "pageSize": PAGE_SIZE,
                "languageCode": self.cfg.places_language,
                "regionCode": self.cfg.places_region,
                "locationBias": {
                    "circle": {
                        "center": {"latitude": center[0], "longitude": center[1]},
                        "radius": radius_m,
                    }
                },
            }
            if page_token:
                body["pageToken"] = page_token
            payload = self._request("POST", "/v1/places:searchText", field_mask=SEARCH_FIELD_MASK, json=body) or {}
            for item in payload.get("places") or []:
                summary = parse_summary(item)
                if summary:
                    results.append(summary)
            page_token = payload.get("nextPageToken")
            if not page_token:
                break
            time.sleep(PAGE_DELAY_SEC)
        return results

    def get_details(self, place_id: str, *, with_reviews: bool = False) -> Optional[PlaceDetails]:
        field_mask = f"{DETAILS_FIELD_MASK},reviews" if with_reviews else DETAILS_FIELD_MASK
        payload = self._request(
            "GET",
            f"/v1/places/{place_id}",
            field_mask=field_mask,
            params={"languageCode": self.cfg.places_language, "regionCode": self.cfg.places_region},
        )
        if payload is None:
            return None
        details = parse_details(payload)
        if not details.place_id:
            details.place_id = place_id
        return details
