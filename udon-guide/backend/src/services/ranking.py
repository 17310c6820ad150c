from __future__ import annotations

from typing import Iterable, List, Tuple

from models import ShopRecord


def bayes_score(rating: float, count: float, mean: float, prior_count: float) -> float:
    """Bayesian average of a shop rating.

    Few reviews pull the score toward ``mean``; many reviews toward ``rating``.
    """
    total = count + prior_count
    if total <= 0:
        return mean
    return (count / total) * rating + (prior_count / total) * mean


def rank_shops(
    records: Iterable[ShopRecord],
    *,
    prior_count: float = 50.0,
    limit: int = 20,
) -> List[Tuple[ShopRecord, float]]:
    rated = [
        r for r in records
        if not r.is_hidden and r.rating is not None and r.user_rating_count is not None
    ]
    if not rated:
        return []

    mean = sum(r.rating for r in rated) / len(rated)  # type: ignore[misc]
    scored = [
        (r, round(bayes_score(float(r.rating), float(r.user_rating_count), mean, prior_count), 4))  # type: ignore[arg-type]
        for r in rated
    ]
    scored.sort(key=lambda item: (-item[1], -item[0].user_rating_count, item[0].name))
    return scored[: max(1, limit)]
