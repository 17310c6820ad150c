from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from models import ShopRecord
from services.opening_hours import (
    get_open_status_summary,
    is_closed_on_day,
    is_open_at_time_input,
    is_open_now,
    parse_time_input,
)
from services.ranking import rank_shops
from services.store import ShopStore


app = FastAPI(title="Kagawa Udon Guide")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_config() -> Configuration:
    return Configuration.from_env()


def get_store(cfg: Configuration = Depends(get_config)) -> ShopStore:
    return ShopStore(cfg.store_path).load()


class OpenStatusPayload(BaseModel):
    is_open_now: Optional[bool] = Field(None, description="None when opening hours are unknown")
    next_open_label: Optional[str] = None


class ShopPayload(BaseModel):
    place_id: str
    name: str
    address: Optional[str] = None
    area: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    rating: Optional[float] = None
    user_rating_count: Optional[int] = None
    google_maps_uri: Optional[str] = None
    open_days: List[int] = []
    weekday_descriptions: List[str] = []
    review_summary: Optional[str] = None
    status: OpenStatusPayload


class RankedShopPayload(BaseModel):
    rank: int
    score: float
    shop: ShopPayload


def _utc_offset(record: ShopRecord, cfg: Configuration) -> int:
    if record.utc_offset_minutes is None:
        return cfg.default_utc_offset_minutes
    return record.utc_offset_minutes


def _to_payload(record: ShopRecord, cfg: Configuration, now: datetime) -> ShopPayload:
    status = get_open_status_summary(record.opening_hours, _utc_offset(record, cfg), now)
    return ShopPayload(
        place_id=record.place_id,
        name=record.name,
        address=record.address,
        area=record.area,
        lat=record.lat,
        lng=record.lng,
        rating=record.rating,
        user_rating_count=record.user_rating_count,
        google_maps_uri=record.google_maps_uri,
        open_days=record.open_days,
        weekday_descriptions=(record.opening_hours.weekday_descriptions if record.opening_hours else []),
        review_summary=record.review_summary,
        status=OpenStatusPayload(is_open_now=status.is_open_now, next_open_label=status.next_open_label),
    )


@app.get("/healthz")
def healthz(cfg: Configuration = Depends(get_config)) -> dict:
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.get("/shops", response_model=List[ShopPayload])
def list_shops(
    area: Optional[str] = None,
    open_now: bool = False,
    time: Optional[str] = Query(None, description="HH:MM; ignored when it does not parse"),
    closed_day: Optional[int] = Query(None, ge=0, le=6),
    cfg: Configuration = Depends(get_config),
    store: ShopStore = Depends(get_store),
) -> List[ShopPayload]:
    now = datetime.now(timezone.utc)
    time_filter = time if parse_time_input(time) is not None else None
    if time and time_filter is None:
        logger.debug("ignoring unparseable time filter {!r}", time)

    results: list[ShopPayload] = []
    for record in store.visible():
        offset = _utc_offset(record, cfg)
        if area and record.area != area:
            continue
        if open_now and is_open_now(record.opening_hours, offset, now) is not True:
            continue
        if time_filter and is_open_at_time_input(record.opening_hours, offset, time_filter, now) is not True:
            continue
        if closed_day is not None and is_closed_on_day(record.opening_hours, closed_day) is not True:
            continue
        results.append(_to_payload(record, cfg, now))
    results.sort(key=lambda s: (-(s.rating or 0.0), s.name))
    return results


@app.get("/shops/{place_id}", response_model=ShopPayload)
def shop_detail(
    place_id: str,
    cfg: Configuration = Depends(get_config),
    store: ShopStore = Depends(get_store),
) -> ShopPayload:
    record = store.get(place_id)
    if record is None or record.is_hidden:
        raise HTTPException(status_code=404, detail="shop not found")
    return _to_payload(record, cfg, datetime.now(timezone.utc))


@app.get("/rankings/auto", response_model=List[RankedShopPayload])
def auto_ranking(
    limit: int = Query(20, ge=1, le=100),
    cfg: Configuration = Depends(get_config),
    store: ShopStore = Depends(get_store),
) -> List[RankedShopPayload]:
    now = datetime.now(timezone.utc)
    ranked = rank_shops(store.visible(), prior_count=cfg.ranking_prior_count, limit=limit)
    return [
        RankedShopPayload(rank=idx, score=score, shop=_to_payload(record, cfg, now))
        for idx, (record, score) in enumerate(ranked, start=1)
    ]


@app.get("/rankings/area/{area}", response_model=List[RankedShopPayload])
def area_ranking(
    area: str,
    limit: int = Query(50, ge=1, le=100),
    cfg: Configuration = Depends(get_config),
    store: ShopStore = Depends(get_store),
) -> List[RankedShopPayload]:
    """Rank one area against its own mean rating."""
    area = area.strip()
    if not area:
        raise HTTPException(status_code=400, detail="area is required")
    now = datetime.now(timezone.utc)
    in_area = [r for r in store.visible() if r.area == area]
    ranked = rank_shops(in_area, prior_count=cfg.ranking_prior_count, limit=limit)
    return [
        RankedShopPayload(rank=idx, score=score, shop=_to_payload(record, cfg, now))
        for idx, (record, score) in enumerate(ranked, start=1)
    ]


@app.get("/areas")
def list_areas(store: ShopStore = Depends(get_store)) -> Dict[str, int]:
    counts: dict[str, int] = {}
    for record in store.visible():
        if record.area:
            counts[record.area] = counts.get(record.area, 0) + 1
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))
