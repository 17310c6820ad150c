from __future__ import annotations

import re
from pathlib import Path

from config import Configuration
from models import PlaceCandidate
from services.classifier import DEFAULT_INCLUDE_NAME_PATTERNS
from services.patterns import build_classifier, load_pattern_file, parse_id_set, parse_pattern_token


def test_parse_id_set() -> None:
    assert parse_id_set(None) == set()
    assert parse_id_set("") == set()
    assert parse_id_set(" a, b ,,c ") == {"a", "b", "c"}


def test_slash_token_uses_flags() -> None:
    pattern = parse_pattern_token("/kamaage/i")
    assert pattern is not None
    assert pattern.search("KAMAAGE house")


def test_plain_token_is_compiled_as_written() -> None:
    pattern = parse_pattern_token("  製麺所 ")
    assert pattern is not None
    assert pattern.pattern == "製麺所"


def test_word_boundary_stays_ascii_with_or_without_u_flag() -> None:
    plain = parse_pattern_token(r"/\budon\b/i")
    with_u = parse_pattern_token(r"/\budon\b/iu")
    for pattern in (plain, with_u):
        assert pattern.search("讃岐UDON")
        assert not pattern.search("sanukiudon")


def test_broken_tokens_are_skipped() -> None:
    assert parse_pattern_token("") is None
    assert parse_pattern_token("   ") is None
    assert parse_pattern_token("(unclosed") is None
    assert parse_pattern_token("/[bad/i") is None


def test_load_pattern_file(tmp_path: Path) -> None:
    path = tmp_path / "include.csv"
    path.write_text("# comment\n\nうどん, /udon/i\n(broken,製麺\n", encoding="utf-8")
    patterns = load_pattern_file(path)
    assert patterns is not None
    assert [p.pattern for p in patterns] == ["うどん", "udon", "製麺"]


def test_load_pattern_file_missing_or_empty(tmp_path: Path) -> None:
    assert load_pattern_file(None) is None
    assert load_pattern_file(tmp_path / "nope.csv") is None
    empty = tmp_path / "empty.csv"
    empty.write_text("# only comments\n(\n", encoding="utf-8")
    assert load_pattern_file(empty) is None


def test_build_classifier_from_config(tmp_path: Path) -> None:
    exclude = tmp_path / "exclude.csv"
    exclude.write_text("いりこ屋\n", encoding="utf-8")
    cfg = Configuration(
        udon_require_kagawa=False,
        udon_allowlist="keep-me",
        udon_denylist="drop-me, keep-me",
        udon_include_file=str(tmp_path / "missing.csv"),
        udon_exclude_file=str(exclude),
    )
    clf = build_classifier(cfg)

    assert clf.include_name_patterns == list(DEFAULT_INCLUDE_NAME_PATTERNS)
    assert [p.pattern for p in clf.exclude_name_patterns] == ["いりこ屋"]
    assert clf.classify(PlaceCandidate("keep-me", name="いりこ屋")).is_udon is True
    assert clf.classify(PlaceCandidate("drop-me", name="うどん")).is_udon is False
    assert clf.classify(PlaceCandidate("x", name="いりこ屋", types=("restaurant",))).is_udon is False
    assert clf.require_region is False
    assert clf.require_food_type_when_no_include is True
    assert isinstance(clf.exclude_name_patterns[0], re.Pattern)
