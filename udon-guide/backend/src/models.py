"""Data models for the udon guide backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class PlaceCandidate:
    place_id: str
    name: Optional[str] = None
    types: tuple[str, ...] = ()
    address: Optional[str] = None


@dataclass
class Classification:
    is_udon: bool
    reasons: list[str] = field(default_factory=list)
    # audit only: which patterns fired
    matched_include: list[str] = field(default_factory=list)
    matched_exclude: list[str] = field(default_factory=list)


@dataclass
class TimePoint:
    day: Optional[int] = None  # 0=Sunday .. 6=Saturday
    hour: Optional[int] = None
    minute: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["TimePoint"]:
        if not isinstance(payload, dict):
            return None
        return cls(
            day=_as_int(payload.get("day")),
            hour=_as_int(payload.get("hour")),
            minute=_as_int(payload.get("minute")),
        )

    def to_dict(self) -> dict[str, int]:
        out: dict[str, int] = {}
        if self.day is not None:
            out["day"] = self.day
        if self.hour is not None:
            out["hour"] = self.hour
        if self.minute is not None:
            out["minute"] = self.minute
        return out


@dataclass
class Period:
    open: Optional[TimePoint] = None
    close: Optional[TimePoint] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.open is not None:
            out["open"] = self.open.to_dict()
        if self.close is not None:
            out["close"] = self.close.to_dict()
        return out


@dataclass
class OpeningHours:
    periods: list[Period] = field(default_factory=list)
    weekday_descriptions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Any) -> "OpeningHours":
        """Parse the upstream ``regularOpeningHours`` shape.

        Entries that are not objects are kept as empty periods so the
        evaluator can skip them while still seeing a non-empty schedule.
        """
        if not isinstance(payload, dict):
            return cls()
        raw_periods = payload.get("periods")
        if not isinstance(raw_periods, list):
            raw_periods = []
        periods: list[Period] = []
        for raw in raw_periods:
            if not isinstance(raw, dict):
                periods.append(Period())
                continue
            periods.append(
                Period(
                    open=TimePoint.from_dict(raw.get("open")),
                    close=TimePoint.from_dict(raw.get("close")),
                )
            )
        raw_descriptions = payload.get("weekdayDescriptions")
        if not isinstance(raw_descriptions, list):
            raw_descriptions = []
        descriptions = [str(x) for x in raw_descriptions]
        return cls(periods=periods, weekday_descriptions=descriptions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "periods": [p.to_dict() for p in self.periods],
            "weekdayDescriptions": list(self.weekday_descriptions),
        }


@dataclass
class OpenStatus:
    is_open_now: Optional[bool]  # None means hours unknown
    next_open_label: Optional[str] = None


@dataclass
class PlaceSummary:
    place_id: str
    name: Optional[str]
    address: Optional[str]
    lat: Optional[float] = None
    lng: Optional[float] = None
    types: list[str] = field(default_factory=list)


@dataclass
class PlaceDetails:
    place_id: str
    name: Optional[str]
    address: Optional[str]
    lat: Optional[float] = None
    lng: Optional[float] = None
    types: list[str] = field(default_factory=list)
    rating: Optional[float] = None
    user_rating_count: Optional[int] = None
    google_maps_uri: Optional[str] = None
    opening_hours: Optional[OpeningHours] = None
    utc_offset_minutes: Optional[int] = None
    reviews: list[str] = field(default_factory=list)


@dataclass
class ShopRecord:
    place_id: str
    name: str = "(no name)"
    address: Optional[str] = None
    area: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    types: list[str] = field(default_factory=list)
    rating: Optional[float] = None
    user_rating_count: Optional[int] = None
    google_maps_uri: Optional[str] = None
    opening_hours: Optional[OpeningHours] = None
    open_days: list[int] = field(default_factory=list)
    utc_offset_minutes: Optional[int] = None
    review_summary: Optional[str] = None
    is_hidden: bool = False
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    fetched_at: Optional[datetime] = None
