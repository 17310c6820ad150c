"""Keyword-based review digest (no model, no morphological analysis)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

MAX_REVIEWS = 20
MAX_CHARS = 240
MAX_BULLETS = 5

ASPECTS: Dict[str, tuple[str, tuple[str, ...]]] = {
    "noodle": ("麺（コシ/食感）", ("麺", "コシ", "もちもち", "つるつる", "食感")),
    "dashi": ("出汁・つゆ", ("出汁|だし", "つゆ", "だし味", "スープ")),
    "price": ("値段・コスパ", ("安い", "高い", "コスパ", "値段", "価格", "料金")),
    "volume": ("量（ボリューム）", ("量", "ボリューム", "大盛", "普通", "並")),
    "service": ("接客・雰囲気", ("接客", "店員", "対応", "雰囲気", "店内")),
    "queue": ("混雑・待ち時間", ("行列", "混雑", "待ち", "並ぶ", "回転")),
    "parking": ("駐車場・アクセス", ("駐車場", "アクセス", "近い", "遠い")),
}

POSITIVE = tuple(re.compile(p) for p in ("美味しい", "うまい", "最高", "良い", "満足", "おすすめ", "好き", "丁寧", "親切"))
NEGATIVE = tuple(re.compile(p) for p in ("まずい", "微妙", "残念", "不満", "高い", "遅い", "愛想(が)?悪い", "汚い", "狭い"))

_COMPILED = {key: tuple(re.compile(k) for k in keys) for key, (_, keys) in ASPECTS.items()}


@dataclass
class _AspectStat:
    label: str
    hit: int = 0
    pos: int = 0
    neg: int = 0


def _clean(texts: Iterable[Optional[str]]) -> List[str]:
    out: list[str] = []
    for raw in texts:
        text = re.sub(r"\s+", " ", raw or "").strip()
        if not text:
            continue
        if len(text) > MAX_CHARS:
            text = text[:MAX_CHARS] + "…"
        out.append(text)
        if len(out) >= MAX_REVIEWS:
            break
    return out


def summarize_reviews(texts: Iterable[Optional[str]]) -> Optional[str]:
    cleaned = _clean(texts)
    if not cleaned:
        return None

    stats = {key: _AspectStat(label) for key, (label, _) in ASPECTS.items()}
    for text in cleaned:
        is_pos = any(p.search(text) for p in POSITIVE)
        is_neg = any(p.search(text) for p in NEGATIVE)
        for key, patterns in _COMPILED.items():
            if any(p.search(text) for p in patterns):
                stat = stats[key]
                stat.hit += 1
                stat.pos += int(is_pos)
                stat.neg += int(is_neg)

    ranked = sorted((s for s in stats.values() if s.hit > 0), key=lambda s: -s.hit)
    if not ranked:
        return "- 全体的な評価の傾向はレビュー本文を確認してください"

    bullets: list[str] = []
    for stat in ranked[:MAX_BULLETS]:
        tone = "言及が多い"
        if stat.pos > stat.neg and stat.pos >= 2:
            tone = "好意的な声が多い"
        if stat.neg > stat.pos and stat.neg >= 2:
            tone = "不満の声もある"
        bullets.append(f"- {stat.label}: {tone}")
    return "\n".join(bullets)
