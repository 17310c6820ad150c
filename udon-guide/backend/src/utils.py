"""Utility helpers for the udon guide backend."""

from __future__ import annotations

import re
from typing import Optional


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


REGION_MARKERS: tuple[str, ...] = ("香川県", "kagawa")


def has_region_marker(address: Optional[str], markers: tuple[str, ...] = REGION_MARKERS) -> bool:
    """True when the address mentions one of the markers.

    ASCII markers compare case-insensitively, the rest literally.
    """
    text = (address or "").strip()
    if not text:
        return False
    lower = text.lower()
    for marker in markers:
        if not marker:
            continue
        if marker.isascii():
            if marker.lower() in lower:
                return True
        elif marker in text:
            return True
    return False


_AREA_JA = re.compile(r"香川県\s*([^\d\s,]+?(?:市|町|村))")
_AREA_EN = re.compile(r"\b([^,]+)\s*,\s*Kagawa\b", re.I)


def extract_area(address: Optional[str]) -> Optional[str]:
    """Pull the municipality out of a formatted address.

    Handles "香川県高松市..." as well as "Takamatsu, Kagawa ...".
    """
    if not address:
        return None
    match = _AREA_JA.search(address)
    if match:
        return match.group(1)
    match = _AREA_EN.search(address)
    if match:
        return match.group(1).strip()
    return None
