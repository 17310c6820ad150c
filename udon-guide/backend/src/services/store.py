from __future__ import annotations

import csv
import json
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from models import OpeningHours, PlaceDetails, PlaceSummary, ShopRecord

_DATETIME_FIELDS = {"first_seen_at", "last_seen_at", "fetched_at"}
_RECORD_FIELDS = {f.name for f in fields(ShopRecord)}


def _record_to_dict(record: ShopRecord) -> Dict[str, Any]:
    data = asdict(record)
    data["opening_hours"] = record.opening_hours.to_dict() if record.opening_hours else None
    for key in _DATETIME_FIELDS:
        value = getattr(record, key)
        data[key] = value.isoformat() if value else None
    return data


def _record_from_dict(data: Dict[str, Any]) -> ShopRecord:
    kwargs = {k: v for k, v in data.items() if k in _RECORD_FIELDS}
    hours = kwargs.get("opening_hours")
    kwargs["opening_hours"] = OpeningHours.from_dict(hours) if isinstance(hours, dict) else None
    for key in _DATETIME_FIELDS:
        value = kwargs.get(key)
        kwargs[key] = datetime.fromisoformat(value) if isinstance(value, str) else None
    return ShopRecord(**kwargs)


class ShopStore:
    """Place cache keyed by place id, optionally backed by a JSON file."""

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self.path = Path(path) if path else None
        self._records: Dict[str, ShopRecord] = {}

    def load(self) -> "ShopStore":
        if self.path and self.path.is_file():
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._records = {item["place_id"]: _record_from_dict(item) for item in raw if item.get("place_id")}
            logger.debug("store loaded {} records from {}", len(self._records), self.path)
        return self

    def save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [_record_to_dict(r) for r in self._records.values()]
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    def __len__(self) -> int:
        return len(self._records)

    def get(self, place_id: str) -> Optional[ShopRecord]:
        return self._records.get(place_id)

    def visible(self) -> List[ShopRecord]:
        return [r for r in self._records.values() if not r.is_hidden]

    def mark_seen(self, place_id: str, now: datetime) -> ShopRecord:
        record = self._records.get(place_id)
        if record is None:
            record = ShopRecord(place_id=place_id, first_seen_at=now)
            self._records[place_id] = record
        record.last_seen_at = now
        record.is_hidden = False
        return record

    def upsert_summary(self, summary: PlaceSummary, now: datetime) -> ShopRecord:
        record = self.mark_seen(summary.place_id, now)
        record.name = summary.name or "(no name)"
        record.address = summary.address
        record.lat = summary.lat
        record.lng = summary.lng
        record.types = list(summary.types)
        record.fetched_at = now
        return record

    def upsert_details(
        self,
        details: PlaceDetails,
        now: datetime,
        *,
        area: Optional[str],
        open_days: List[int],
        review_summary: Optional[str] = None,
    ) -> ShopRecord:
        record = self._records.get(details.place_id)
        if record is None:
            record = ShopRecord(place_id=details.place_id, first_seen_at=now, last_seen_at=now)
            self._records[details.place_id] = record
        record.is_hidden = False
        record.name = details.name or "(no name)"
        record.address = details.address
        record.area = area
        record.lat = details.lat
        record.lng = details.lng
        record.types = list(details.types)
        record.rating = details.rating
        record.user_rating_count = details.user_rating_count
        record.google_maps_uri = details.google_maps_uri
        record.opening_hours = details.opening_hours
        record.open_days = list(open_days)
        record.utc_offset_minutes = details.utc_offset_minutes
        record.review_summary = review_summary
        record.fetched_at = now
        return record

    def hide(self, place_id: str) -> None:
        """Hide a record and drop its cached details; identity and timestamps stay."""
        record = self._records.get(place_id)
        if record is None:
            return
        self._records[place_id] = ShopRecord(
            place_id=place_id,
            name=record.name,
            is_hidden=True,
            first_seen_at=record.first_seen_at,
            last_seen_at=record.last_seen_at,
        )

    def targets(self, take: int) -> List[str]:
        """Visible place ids, most recently seen first."""
        floor = datetime.min
        ordered = sorted(
            self.visible(),
            key=lambda r: (r.last_seen_at or floor).replace(tzinfo=None),
            reverse=True,
        )
        return [r.place_id for r in ordered[: max(0, take)]]

    def delete_all(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count

    def export_csv(self, path: str | Path) -> int:
        rows = sorted(
            self._records.values(),
            key=lambda r: (r.fetched_at or datetime.min).replace(tzinfo=None),
            reverse=True,
        )
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(["placeId", "name", "address", "lat", "lng", "fetchedAt"])
            for r in rows:
                writer.writerow(
                    [
                        r.place_id,
                        r.name,
                        r.address or "",
                        "" if r.lat is None else r.lat,
                        "" if r.lng is None else r.lng,
                        r.fetched_at.isoformat() if r.fetched_at else "",
                    ]
                )
        return len(rows)
