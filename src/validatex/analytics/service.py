"""Read-only analytics and spending projections.

Rows are fetched with plain selects and bucketed in Python through
``validatex.analytics.rollups`` so day and month keys are computed the same
way on every database backend. Nothing here writes.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.analytics.rollups import (
    Bucketable,
    average_sentiment,
    bucket_by_day,
    bucket_by_month,
    day_key,
    group_by_category,
    quality_distribution,
)
from validatex.db.models import EntryStatus, EntryType, Post, Transaction, User, Validation, ValidationType
from validatex.ledger.money import ZERO, to_money
from validatex.ledger.rewards import (
    compute_detailed_budget,
    compute_normal_budget,
    compute_post_budget,
    compute_progress,
    compute_spent_so_far,
    split_budget,
)
from validatex.ledger.store import EARNING_TYPES
from validatex.posts.service import get_authored_post
from validatex.timeutils import days_ago, ensure_utc, months_ago

ENGAGEMENT_WINDOW_DAYS = 30
TOP_POSTS_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10


def _avg(total: Decimal, count: int) -> Decimal:
    return to_money(total / count) if count else ZERO


async def _posts_by_author(db: AsyncSession, author_id: int) -> list[Post]:
    result = await db.execute(
        select(Post).where(Post.author_id == author_id).order_by(desc(Post.created_at), desc(Post.id))
    )
    return list(result.scalars().all())


async def _validation_counts(db: AsyncSession, author_id: int) -> dict[int, int]:
    result = await db.execute(
        select(Validation.post_id, func.count(Validation.id))
        .join(Post, Post.id == Validation.post_id)
        .where(Post.author_id == author_id)
        .group_by(Validation.post_id)
    )
    return {post_id: int(count) for post_id, count in result.all()}


async def _post_payments(db: AsyncSession, user_id: int) -> list[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(
            Transaction.user_id == user_id,
            Transaction.type == EntryType.POST_PAYMENT,
            Transaction.status != EntryStatus.FAILED,
        )
        .order_by(Transaction.created_at)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Validator side
# ---------------------------------------------------------------------------


async def get_earnings_analytics(
    db: AsyncSession,
    user_id: int,
    days: int = 30,
    now: datetime | None = None,
) -> dict:
    """Daily earnings, earnings by entry type and review stats over ``days``."""
    if now is None:
        now = datetime.now(timezone.utc)
    start = days_ago(days, now)

    result = await db.execute(
        select(Transaction).where(
            Transaction.user_id == user_id,
            Transaction.type.in_(EARNING_TYPES),
            Transaction.status == EntryStatus.COMPLETED,
            Transaction.created_at >= start,
        )
    )
    entries = list(result.scalars().all())

    by_type: dict[str, dict[str, object]] = {}
    for entry in entries:
        bucket = by_type.setdefault(entry.type.value, {"amount": ZERO, "count": 0})
        bucket["amount"] += to_money(entry.amount)  # type: ignore[operator]
        bucket["count"] += 1  # type: ignore[operator]

    stats_result = await db.execute(
        select(
            Validation.type,
            Validation.status,
            func.count(Validation.id),
            func.sum(Validation.reward_amount),
        )
        .where(Validation.validator_id == user_id, Validation.created_at >= start)
        .group_by(Validation.type, Validation.status)
    )
    validation_stats = [
        {"type": vtype.value, "status": status.value, "count": int(count), "reward_amount": to_money(reward)}
        for vtype, status, count, reward in stats_result.all()
    ]

    return {
        "period_days": days,
        "total_earned": sum((to_money(e.amount) for e in entries), ZERO),
        "daily_earnings": bucket_by_day(Bucketable(e.created_at, e.amount) for e in entries),
        "earnings_by_type": by_type,
        "validation_stats": validation_stats,
    }


# ---------------------------------------------------------------------------
# Submitter side
# ---------------------------------------------------------------------------


async def get_submitter_analytics(
    db: AsyncSession,
    user_id: int,
    months: int = 6,
    now: datetime | None = None,
) -> dict:
    """Spending trend, engagement and category performance for a submitter."""
    if now is None:
        now = datetime.now(timezone.utc)

    posts = await _posts_by_author(db, user_id)
    counts = await _validation_counts(db, user_id)
    payments = await _post_payments(db, user_id)

    trend_start = months_ago(months, now)
    monthly_spending = bucket_by_month(
        Bucketable(p.created_at, p.amount) for p in payments if ensure_utc(p.created_at) >= trend_start
    )

    engagement_result = await db.execute(
        select(Validation.created_at, Validation.validator_id)
        .join(Post, Post.id == Validation.post_id)
        .where(Post.author_id == user_id, Validation.created_at >= days_ago(ENGAGEMENT_WINDOW_DAYS, now))
    )
    per_day: dict[str, list[int]] = defaultdict(list)
    for created_at, validator_id in engagement_result.all():
        per_day[day_key(created_at)].append(validator_id)
    daily_validations = [
        {"date": day, "validations": len(ids), "unique_validators": len(set(ids))}
        for day, ids in sorted(per_day.items())
    ]

    votes_result = await db.execute(
        select(Validation.vote, func.count(Validation.id))
        .join(Post, Post.id == Validation.post_id)
        .where(Post.author_id == user_id)
        .group_by(Validation.vote)
    )
    vote_distribution = [{"vote": vote, "count": int(count)} for vote, count in votes_result.all()]

    top_posts = sorted(posts, key=lambda p: (-counts.get(p.id, 0), p.id))[:TOP_POSTS_LIMIT]

    recent_result = await db.execute(
        select(Validation, Post.title, User.name)
        .join(Post, Post.id == Validation.post_id)
        .join(User, User.id == Validation.validator_id)
        .where(Post.author_id == user_id)
        .order_by(desc(Validation.created_at), desc(Validation.id))
        .limit(RECENT_ACTIVITY_LIMIT)
    )

    total_spent = sum((to_money(p.amount) for p in payments), ZERO)
    total_validations = sum(counts.values())

    return {
        "overview": {
            "total_posts": len(posts),
            "total_spent": total_spent,
            "total_validations": total_validations,
            "avg_validations_per_post": round(total_validations / len(posts), 2) if posts else 0.0,
            "avg_cost_per_validation": _avg(total_spent, total_validations),
        },
        "monthly_spending": monthly_spending,
        "daily_validations": daily_validations,
        "category_performance": group_by_category(
            (p.category_id, p.category.name, p.category.icon, compute_post_budget(p)) for p in posts
        ),
        "vote_distribution": vote_distribution,
        "top_posts": [
            {
                "id": p.id,
                "title": p.title,
                "category": p.category.name,
                "validation_count": counts.get(p.id, 0),
                "total_budget": compute_post_budget(p),
                "status": p.status.value,
                "created_at": p.created_at,
            }
            for p in top_posts
        ],
        "recent_activity": [
            {
                "id": v.id,
                "post_title": title,
                "validator_name": name,
                "vote": v.vote,
                "type": v.type.value,
                "reward_amount": to_money(v.reward_amount),
                "created_at": v.created_at,
            }
            for v, title, name in recent_result.all()
        ],
    }


async def get_post_analytics(db: AsyncSession, user_id: int, post_id: int) -> dict:
    """Per-post timeline with sentiment and reviewer quality bands."""
    post = await get_authored_post(db, user_id, post_id)

    result = await db.execute(
        select(Validation, User.name, User.reputation_score)
        .join(User, User.id == Validation.validator_id)
        .where(Validation.post_id == post.id)
        .order_by(desc(Validation.created_at), desc(Validation.id))
    )
    rows = result.all()

    votes_by_day: dict[str, list[str | None]] = defaultdict(list)
    for validation, _name, _score in rows:
        votes_by_day[day_key(validation.created_at)].append(validation.vote)

    return {
        "post": {
            "id": post.id,
            "title": post.title,
            "category": post.category.name,
            "status": post.status.value,
            "created_at": post.created_at,
            "total_budget": compute_post_budget(post),
        },
        "validation_timeline": [
            {"date": day, "validation_count": len(votes), "sentiment_score": average_sentiment(votes)}
            for day, votes in sorted(votes_by_day.items())
        ],
        "validator_quality_distribution": quality_distribution(score for _v, _n, score in rows),
        "validations": [
            {
                "id": v.id,
                "type": v.type.value,
                "vote": v.vote,
                "validator_name": name,
                "validator_reputation": score,
                "reward_amount": to_money(v.reward_amount),
                "created_at": v.created_at,
            }
            for v, name, score in rows
        ],
    }


async def get_submitter_spending(db: AsyncSession, user_id: int) -> dict:
    """What a submitter has paid, split between validators and the platform."""
    posts = await _posts_by_author(db, user_id)
    counts = await _validation_counts(db, user_id)
    payments = [p for p in await _post_payments(db, user_id) if p.post_id is not None]

    paid_per_post: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        paid_per_post[payment.post_id] += to_money(payment.amount)  # type: ignore[index]

    total_spent = sum(paid_per_post.values(), ZERO)
    split = split_budget(total_spent)

    post_spending = []
    for post in posts:
        spent = paid_per_post.get(post.id, ZERO)
        post_split = split_budget(spent)
        post_spending.append(
            {
                "id": post.id,
                "title": post.title,
                "category": {"name": post.category.name, "icon": post.category.icon},
                "status": post.status.value,
                "created_at": post.created_at,
                "validation_count": counts.get(post.id, 0),
                "total_spent": spent,
                "to_validators": post_split.to_validators,
                "platform_fee": post_split.platform_fee,
                "normal_budget": compute_normal_budget(post),
                "detailed_budget": compute_detailed_budget(post),
                "total_budget": compute_post_budget(post),
                "normal_reward": to_money(post.normal_reward),
                "detailed_reward": to_money(post.detailed_reward),
                "normal_validator_count": post.normal_validator_count,
                "detailed_validator_count": post.detailed_validator_count,
                "current_normal_count": post.current_normal_count,
                "current_detailed_count": post.current_detailed_count,
            }
        )

    return {
        "overview": {
            "total_posts": len(posts),
            "total_spent": total_spent,
            "total_to_validators": split.to_validators,
            "total_platform_fees": split.platform_fee,
            "total_validations": sum(counts.values()),
            "avg_spent_per_post": _avg(total_spent, len(posts)),
        },
        "posts": post_spending,
        "monthly_spending": bucket_by_month(Bucketable(p.created_at, p.amount) for p in payments),
    }


async def get_post_spending_details(db: AsyncSession, user_id: int, post_id: int) -> dict:
    """Spend, fulfilment progress and a daily review timeline for one post."""
    post = await get_authored_post(db, user_id, post_id)

    paid = await db.execute(
        select(func.sum(Transaction.amount)).where(
            Transaction.user_id == user_id,
            Transaction.post_id == post.id,
            Transaction.type == EntryType.POST_PAYMENT,
            Transaction.status != EntryStatus.FAILED,
        )
    )
    total_spent = to_money(paid.scalar_one())
    split = split_budget(total_spent)
    normal_spent, detailed_spent = compute_spent_so_far(post)

    result = await db.execute(
        select(Validation).where(Validation.post_id == post.id).order_by(Validation.created_at)
    )
    validations = list(result.scalars().all())

    timeline: dict[str, dict[str, object]] = {}
    for v in validations:
        day = timeline.setdefault(
            day_key(v.created_at),
            {"date": day_key(v.created_at), "normal_count": 0, "detailed_count": 0, "total_rewards": ZERO},
        )
        field = "normal_count" if v.type == ValidationType.NORMAL else "detailed_count"
        day[field] += 1  # type: ignore[operator]
        day["total_rewards"] += to_money(v.reward_amount)  # type: ignore[operator]

    progress = compute_progress(post)
    progress["total_validations"] = len(validations)

    return {
        "post": {
            "id": post.id,
            "title": post.title,
            "category": post.category.name,
            "category_icon": post.category.icon,
            "status": post.status.value,
            "created_at": post.created_at,
            "expiry_date": post.expiry_date,
        },
        "spending": {
            "total_spent": total_spent,
            "normal_spent": normal_spent,
            "detailed_spent": detailed_spent,
            "platform_fee": split.platform_fee,
            "to_validators": split.to_validators,
        },
        "progress": progress,
        "timeline": [timeline[k] for k in sorted(timeline)],
    }
