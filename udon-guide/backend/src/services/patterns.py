"""Load classifier settings (id lists, keyword files) at process start."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Set

from loguru import logger

from config import Configuration
from services.classifier import UdonShopClassifier

_SLASHED = re.compile(r"/(.+)/([gimsuy]*)", re.S)

_FLAG_MAP = {
    "i": re.I,
    "m": re.M,
    "s": re.S,
}


def parse_id_set(text: Optional[str]) -> Set[str]:
    """"a,b,c" -> {"a", "b", "c"}; blanks are dropped."""
    if not text:
        return set()
    return {part.strip() for part in text.split(",") if part.strip()}


def parse_pattern_token(token: Optional[str]) -> Optional[re.Pattern]:
    """Compile one keyword token.

    ``/body/flags`` tokens are full regular expressions; anything else is
    compiled as written. ``\\b`` and ``\\w`` always keep to ASCII, with or
    without the ``u`` flag, so ``\\budon\\b`` still fires inside ``讃岐udon``.
    Broken tokens give None.
    """
    if not token:
        return None
    trimmed = token.strip()
    if not trimmed:
        return None

    body = trimmed
    letters = ""
    match = _SLASHED.fullmatch(trimmed)
    if match:
        body, letters = match.group(1), match.group(2)

    flags = re.A
    for letter in letters:
        flags |= _FLAG_MAP.get(letter, 0)

    try:
        return re.compile(body, flags)
    except re.error as exc:
        logger.debug("skipping pattern {!r}: {}", trimmed, exc)
        return None


def load_pattern_file(path: Optional[str | Path]) -> Optional[List[re.Pattern]]:
    """Read comma-delimited pattern tokens, one or more per line.

    Returns None when the file is missing or holds no usable pattern, so the
    classifier keeps its built-in list.
    """
    if not path:
        return None
    file_path = Path(path)
    if not file_path.is_file():
        return None

    patterns: list[re.Pattern] = []
    for line in file_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        for token in stripped.split(","):
            compiled = parse_pattern_token(token)
            if compiled is not None:
                patterns.append(compiled)

    if not patterns:
        return None
    logger.info("loaded {} patterns from {}", len(patterns), file_path)
    return patterns


def build_classifier(cfg: Configuration) -> UdonShopClassifier:
    return UdonShopClassifier(
        include_name_patterns=load_pattern_file(cfg.udon_include_file),
        exclude_name_patterns=load_pattern_file(cfg.udon_exclude_file),
        require_region=cfg.udon_require_kagawa,
        allow_place_ids=parse_id_set(cfg.udon_allowlist),
        deny_place_ids=parse_id_set(cfg.udon_denylist),
        require_food_type_when_no_include=cfg.udon_require_food_type,
    )
