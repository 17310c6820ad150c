"""Ingestion: pull places upstream, classify them, refresh the cache."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from config import Configuration
from models import PlaceCandidate, PlaceSummary
from services.classifier import UdonShopClassifier
from services.opening_hours import compute_open_days
from services.places import GooglePlacesClient, PlacesError
from services.reviews import summarize_reviews
from services.store import ShopStore
from utils import extract_area, has_region_marker

# Search bias centers: Takamatsu, Marugame side (west), Sanuki side (east).
CENTERS: Tuple[Tuple[float, float], ...] = (
    (34.3428, 134.0466),
    (34.2840, 133.7850),
    (34.3000, 134.3000),
)

RADIUS_M = 50000.0

QUERIES: Tuple[str, ...] = (
    "香川県 うどん",
    "讃岐うどん 香川",
    "高松市 うどん",
    "丸亀市 うどん",
    "坂出市 うどん",
    "善通寺市 うどん",
    "観音寺市 うどん",
    "さぬき市 うどん",
    "三豊市 うどん",
    "東かがわ市 うどん",
    "宇多津町 うどん",
    "多度津町 うどん",
    "土庄町 うどん",
    "小豆島町 うどん",
    "三木町 うどん",
    "直島町 うどん",
    "綾川町 うどん",
    "琴平町 うどん",
    "まんのう町 うどん",
)

QUERY_DELAY_SEC = 0.25
RUN_LOG_PREFIX = "sync_details_"


def sync_places(
    client: GooglePlacesClient,
    store: ShopStore,
    *,
    queries: Iterable[str] = QUERIES,
    centers: Iterable[Tuple[float, float]] = CENTERS,
    radius_m: float = RADIUS_M,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, int]:
    now = now or datetime.now(timezone.utc)
    centers = list(centers)
    found: Dict[str, PlaceSummary] = {}

    for query in queries:
        for center in centers:
            for summary in client.search_text(query, center, radius_m=radius_m):
                if not has_region_marker(summary.address):
                    continue
                found[summary.place_id] = summary
            sleep(QUERY_DELAY_SEC)

    for summary in found.values():
        store.upsert_summary(summary, now)

    logger.info("sync_places: {} unique places upserted", len(found))
    return {"unique_places": len(found), "inserted_or_updated": len(found)}


class RunLog:
    """One JSON object per line for a single sync run, written through loguru."""

    def __init__(self, log_dir: str | Path, keep: int, started: datetime) -> None:
        self.dir = Path(log_dir)
        self.dir.mkdir(parents=True, exist_ok=True)
        self.file = self.dir / f"{RUN_LOG_PREFIX}{started:%Y%m%d_%H%M%S}.jsonl"
        self._run_id = f"{self.file.name}:{id(self)}"
        self._sink_id = logger.add(
            self.file,
            format="{extra[payload]}",
            filter=lambda record: record["extra"].get("sync_run") == self._run_id,
            level="DEBUG",
            encoding="utf-8",
        )
        _cleanup_run_logs(self.dir, keep)

    def write(self, level: str, event: str, **fields: Any) -> None:
        payload = {"level": level, "event": event, **fields}
        logger.bind(sync_run=self._run_id, payload=json.dumps(payload, ensure_ascii=False, default=str)).log(
            level, event
        )

    def close(self) -> None:
        logger.remove(self._sink_id)


def _cleanup_run_logs(log_dir: Path, keep: int) -> None:
    files = sorted(log_dir.glob(f"{RUN_LOG_PREFIX}*.jsonl"), reverse=True)
    for stale in files[max(keep, 1):]:
        try:
            stale.unlink()
        except OSError as exc:
            logger.warning("could not remove old run log {}: {}", stale, exc)


def sync_details(
    client: GooglePlacesClient,
    store: ShopStore,
    classifier: UdonShopClassifier,
    cfg: Configuration,
    *,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    ts = now.isoformat()
    run_log = RunLog(cfg.sync_log_dir, cfg.sync_log_keep, now)
    logger.info("sync_details log file: {}", run_log.file)

    pause = cfg.sync_details_sleep_ms / 1000.0
    targets: List[str] = store.targets(cfg.sync_details_take)
    total = len(targets)
    counts = {"ok": 0, "ng": 0, "skipped": 0, "invalid": 0, "warn_tentative": 0}

    try:
        for idx, place_id in enumerate(targets, start=1):
            try:
                details = client.get_details(place_id, with_reviews=cfg.sync_use_reviews)
                if details is None:
                    counts["invalid"] += 1
                    run_log.write("WARNING", "SKIP_INVALID_PLACE_ID", ts=ts, idx=idx, total=total, placeId=place_id)
                    sleep(pause)
                    continue

                area = extract_area(details.address)
                verdict = classifier.classify(
                    PlaceCandidate(
                        place_id=place_id,
                        name=details.name,
                        types=tuple(details.types),
                        address=details.address,
                    )
                )
                base = {
                    "ts": ts,
                    "idx": idx,
                    "total": total,
                    "placeId": place_id,
                    "name": details.name,
                    "address": details.address,
                    "area": area,
                    "types": details.types,
                    "rating": details.rating,
                    "userRatingCount": details.user_rating_count,
                    "classify": {
                        "isUdon": verdict.is_udon,
                        "reasons": verdict.reasons,
                        "matchedInclude": verdict.matched_include,
                        "matchedExclude": verdict.matched_exclude,
                    },
                }

                if not verdict.is_udon:
                    counts["skipped"] += 1
                    logger.info("skip(non-udon): {} {} {}", place_id, details.name or "(no name)", ", ".join(verdict.reasons))
                    run_log.write("INFO", "SKIP_NON_UDON", **base)
                    store.hide(place_id)
                    sleep(pause)
                    continue

                if verdict.matched_include:
                    run_log.write("INFO", "ALLOW_UDON", **base)
                else:
                    counts["warn_tentative"] += 1
                    run_log.write("WARNING", "TENTATIVE_ALLOW_NO_INCLUDE", **base)

                review_summary = summarize_reviews(details.reviews) if cfg.sync_use_reviews else None
                store.upsert_details(
                    details,
                    now,
                    area=area,
                    open_days=compute_open_days(details.opening_hours),
                    review_summary=review_summary,
                )
                counts["ok"] += 1
                sleep(pause)
            except (PlacesError, ValueError) as exc:
                counts["ng"] += 1
                logger.error("failed: {} {}", place_id, exc)
                run_log.write(
                    "ERROR",
                    "FAILED",
                    ts=datetime.now(timezone.utc).isoformat(),
                    placeId=place_id,
                    error=str(exc),
                )
                sleep(max(0.2, pause))

        summary: Dict[str, Any] = {
            **counts,
            "total": total,
            "log_file": str(run_log.file),
            "use_reviews": cfg.sync_use_reviews,
        }
        run_log.write("INFO", "SUMMARY", ts=datetime.now(timezone.utc).isoformat(), **summary)
    finally:
        run_log.close()

    logger.info("sync_details summary: {}", summary)
    return summary
