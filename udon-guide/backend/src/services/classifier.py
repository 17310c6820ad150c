from __future__ import annotations

import re
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from loguru import logger

from models import Classification, PlaceCandidate
from utils import REGION_MARKERS, has_region_marker


class Matcher(Protocol):
    def search(self, string: str):
        ...


DEFAULT_INCLUDE_NAME_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"うどん"),
    re.compile(r"\budon\b", re.I | re.A),
)

# Clearly a different kind of business. Shop-specific names live in the
# external exclude file instead.
DEFAULT_EXCLUDE_NAME_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(p)
    for p in (
        r"ラーメン",
        r"らぁ麺",
        r"中華",
        r"中国麺",
        r"そば",
        r"蕎麦",
        r"そうめん",
        r"カフェ",
        r"喫茶",
        r"珈琲",
        r"バー",
        r"居酒屋",
        r"焼肉",
        r"焼鳥",
        r"寿司",
        r"パン",
        r"お好み焼",
        r"たこやき",
        r"ところてん",
        r"餃子",
        r"ステーキ",
        r"台湾料理",
        r"四川",
        r"PIZZERIA",
        r"駐車場",
        r"土産販売所",
        r"イオンモール",
    )
)

DEFAULT_EXCLUDE_TYPE_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(rf"^{p}$")
    for p in (
        r"ramen_restaurant",
        r"sushi_restaurant",
        r"chinese_restaurant",
        r"pizza_restaurant",
        r"steak_house",
        r"barbecue_restaurant",
        r"bar",
        r"bakery",
        r"coffee_shop",
        r"parking",
        r"lodging",
        r"shopping_mall",
        r"supermarket",
        r"place_of_worship",
    )
)

DEFAULT_FOOD_TYPES: tuple[str, ...] = (
    "restaurant",
    "food",
    "meal_takeaway",
    "meal_delivery",
    "cafe",
)

REASON_TENTATIVE = "tentative allow - no include keyword but looks like food business"


def describe_pattern(pattern: Matcher) -> str:
    """Render a matcher as ``/body/flags`` for audit logs."""
    body = getattr(pattern, "pattern", None)
    if body is None:
        return str(pattern)
    flags = getattr(pattern, "flags", 0)
    suffix = ""
    if flags & re.I:
        suffix += "i"
    if flags & re.M:
        suffix += "m"
    if flags & re.S:
        suffix += "s"
    return f"/{body}/{suffix}"


class UdonShopClassifier:
    """Decides whether a place record is an udon shop.

    Rules run in a fixed order and the first decisive one wins:
    allowlist, denylist, region gate, include keyword, exclude keyword/type,
    then the food-type fallback. ``reasons`` only ever grows along the way.
    """

    def __init__(
        self,
        *,
        include_name_patterns: Optional[Sequence[Matcher]] = None,
        exclude_name_patterns: Optional[Sequence[Matcher]] = None,
        exclude_type_patterns: Optional[Sequence[Matcher]] = None,
        food_types: Optional[Iterable[str]] = None,
        require_region: bool = False,
        region_markers: tuple[str, ...] = REGION_MARKERS,
        allow_place_ids: Optional[Set[str]] = None,
        deny_place_ids: Optional[Set[str]] = None,
        require_food_type_when_no_include: bool = True,
    ) -> None:
        self.include_name_patterns = list(
            DEFAULT_INCLUDE_NAME_PATTERNS if include_name_patterns is None else include_name_patterns
        )
        self.exclude_name_patterns = list(
            DEFAULT_EXCLUDE_NAME_PATTERNS if exclude_name_patterns is None else exclude_name_patterns
        )
        self.exclude_type_patterns = list(
            DEFAULT_EXCLUDE_TYPE_PATTERNS if exclude_type_patterns is None else exclude_type_patterns
        )
        self.food_types = frozenset(DEFAULT_FOOD_TYPES if food_types is None else food_types)
        self.require_region = require_region
        self.region_markers = region_markers
        self.allow_place_ids = set(allow_place_ids or ())
        self.deny_place_ids = set(deny_place_ids or ())
        self.require_food_type_when_no_include = require_food_type_when_no_include

    @staticmethod
    def _match_name(patterns: List[Matcher], name: str) -> List[str]:
        if not name:
            return []
        return [describe_pattern(p) for p in patterns if p.search(name)]

    def _match_types(self, types: Sequence[str]) -> List[str]:
        hits: list[str] = []
        for tag in types:
            if any(p.search(tag) for p in self.exclude_type_patterns):
                hits.append(f"type:{tag}")
        return hits

    def _looks_like_food(self, types: Sequence[str]) -> bool:
        return any(t in self.food_types for t in types)

    def classify(self, candidate: PlaceCandidate) -> Classification:
        place_id = (candidate.place_id or "").strip()

        if place_id and place_id in self.allow_place_ids:
            return Classification(True, ["allowlist"], matched_include=["allowlist"])
        if place_id and place_id in self.deny_place_ids:
            return Classification(False, ["denylist"], matched_exclude=["denylist"])

        name = (candidate.name or "").strip()
        types = [t for t in (candidate.types or ()) if isinstance(t, str)]
        reasons: list[str] = []

        if self.require_region:
            if not has_region_marker(candidate.address, self.region_markers):
                return Classification(False, ["not in region"])
            reasons.append("region ok")

        matched_include = self._match_name(self.include_name_patterns, name)
        matched_exclude = self._match_name(self.exclude_name_patterns, name)
        looks_food = self._looks_like_food(types)

        if matched_include:
            reasons.append("name includes udon")
            if matched_exclude:
                reasons.append("exclude matched but include wins")
            if not looks_food:
                reasons.append("not food type despite include match")
                return Classification(False, reasons, matched_include, matched_exclude)
            return Classification(True, reasons, matched_include, matched_exclude)

        matched_exclude.extend(self._match_types(types))
        if matched_exclude:
            reasons.append("exclude matched")
            return Classification(False, reasons, matched_include, matched_exclude)

        if looks_food:
            reasons.append("food type ok")
        elif self.require_food_type_when_no_include:
            reasons.extend(["no include keyword", "not food type"])
            return Classification(False, reasons, matched_include, matched_exclude)

        reasons.append(REASON_TENTATIVE)
        logger.debug("tentative allow {} ({})", place_id or "-", name or "no name")
        return Classification(True, reasons, matched_include, matched_exclude)
