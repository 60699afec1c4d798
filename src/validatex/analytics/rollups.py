"""Pure bucketing helpers behind the analytics and spending views.

Every series is sparse: a day or month with no activity has no bucket.
Keys are UTC ISO dates; a month is keyed by its first day.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from validatex.ledger.money import ZERO, to_money
from validatex.timeutils import ensure_utc

HIGH_REPUTATION = 80
MEDIUM_REPUTATION = 60

SENTIMENT_SCORES = {"LIKE": 1, "DISLIKE": -1}


@dataclass(frozen=True)
class Bucketable:
    created_at: datetime
    amount: Decimal = ZERO


def day_key(dt: datetime) -> str:
    return ensure_utc(dt).date().isoformat()


def month_key(dt: datetime) -> str:
    return ensure_utc(dt).date().replace(day=1).isoformat()


def _bucket(items: Iterable[Bucketable], key: Callable[[datetime], str]) -> list[dict[str, object]]:
    amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: Counter[str] = Counter()
    for item in items:
        k = key(item.created_at)
        amounts[k] += to_money(item.amount)
        counts[k] += 1
    return [{"key": k, "amount": amounts[k], "count": counts[k]} for k in sorted(counts)]


def bucket_by_day(items: Iterable[Bucketable]) -> list[dict[str, object]]:
    """Sum and count per UTC day, ascending."""
    return _bucket(items, day_key)


def bucket_by_month(items: Iterable[Bucketable]) -> list[dict[str, object]]:
    """Sum and count per UTC calendar month, ascending."""
    return _bucket(items, month_key)


def reputation_band(score: int) -> str:
    if score >= HIGH_REPUTATION:
        return "high"
    if score >= MEDIUM_REPUTATION:
        return "medium"
    return "low"


def quality_distribution(scores: Iterable[int]) -> dict[str, int]:
    """Count reviews per reviewer reputation band. Empty bands are omitted."""
    return dict(Counter(reputation_band(s) for s in scores))


def sentiment(vote: str | None) -> int:
    return SENTIMENT_SCORES.get(vote or "", 0)


def average_sentiment(votes: list[str | None]) -> float:
    if not votes:
        return 0.0
    return round(sum(sentiment(v) for v in votes) / len(votes), 4)


def group_by_category(
    posts: Iterable[tuple[int, str, str | None, Decimal]],
) -> list[dict[str, object]]:
    """Post count and budget per category.

    ``posts`` yields ``(category_id, category_name, icon, budget)`` tuples.
    Output is ordered by total budget, largest first.
    """
    groups: dict[int, dict[str, object]] = {}
    for category_id, name, icon, budget in posts:
        group = groups.setdefault(
            category_id,
            {
                "category_id": category_id,
                "category_name": name,
                "category_icon": icon,
                "post_count": 0,
                "total_budget": ZERO,
            },
        )
        group["post_count"] += 1  # type: ignore[operator]
        group["total_budget"] += to_money(budget)  # type: ignore[operator]
    for group in groups.values():
        group["avg_budget"] = to_money(group["total_budget"] / group["post_count"])  # type: ignore[operator]
    return sorted(groups.values(), key=lambda g: (-g["total_budget"], g["category_id"]))  # type: ignore[operator]
