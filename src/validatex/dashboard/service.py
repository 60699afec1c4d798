"""Role dashboards for submitters and validators.

Each dashboard is one read-only projection: the caller's balance block, their
recent posts or reviews, and a compact analytics block with an earnings chart
built from the ledger.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import desc, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from validatex.analytics.rollups import Bucketable, bucket_by_day
from validatex.db.models import (
    Category,
    EntryStatus,
    EntryType,
    Post,
    PostStatus,
    Transaction,
    User,
    Validation,
    ValidationStatus,
)
from validatex.ledger.money import to_money
from validatex.ledger.rewards import compute_post_budget, split_budget
from validatex.ledger.store import get_user
from validatex.timeutils import ensure_utc

logger = structlog.get_logger()

EARNINGS_CHART_ENTRIES = 30
RECENT_REVIEWS_LIMIT = 5
VALIDATOR_HISTORY_LIMIT = 10
AVAILABLE_POSTS_LIMIT = 10
STREAK_LOOKBACK_DAYS = 366

# Reviews that were paid: normal reviews complete on submit, detailed ones on approval.
ACCEPTED_STATUSES = (ValidationStatus.COMPLETED, ValidationStatus.APPROVED)


def _rounded_ratio(part: int, whole: int, scale: int = 1) -> int:
    if not whole:
        return 0
    return int((Decimal(part * scale) / whole).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validation_streak(days: Iterable[date], today: date) -> int:
    """Consecutive UTC days with at least one review, counting back from ``today``.

    A day without reviews today means the streak is 0.
    """
    active = set(days)
    streak = 0
    day = today
    while day in active:
        streak += 1
        day -= timedelta(days=1)
    return streak


def _user_block(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "role": user.role.value,
        "total_balance": to_money(user.total_balance),
        "available_balance": to_money(user.available_balance),
        "reputation_score": user.reputation_score,
        "total_ideas_submitted": user.total_ideas_submitted,
        "total_validations": user.total_validations,
    }


async def _earnings_chart(db: AsyncSession, user_id: int) -> list[dict[str, object]]:
    """Most recent validation earnings, summed per UTC day, oldest day first."""
    result = await db.execute(
        select(Transaction.created_at, Transaction.amount)
        .where(
            Transaction.user_id == user_id,
            Transaction.type == EntryType.VALIDATION_EARNING,
            Transaction.status == EntryStatus.COMPLETED,
        )
        .order_by(desc(Transaction.created_at), desc(Transaction.id))
        .limit(EARNINGS_CHART_ENTRIES)
    )
    return bucket_by_day(Bucketable(created_at, amount) for created_at, amount in result.all())


async def get_submitter_dashboard(db: AsyncSession, user_id: int) -> dict:
    """Posts, review counts, spend and recent reviews for a submitter."""
    user = await get_user(db, user_id)

    posts = list(
        (
            await db.execute(
                select(Post).where(Post.author_id == user_id).order_by(desc(Post.created_at), desc(Post.id))
            )
        )
        .scalars()
        .all()
    )
    counts_result = await db.execute(
        select(Validation.post_id, func.count(Validation.id))
        .join(Post, Post.id == Validation.post_id)
        .where(Post.author_id == user_id)
        .group_by(Validation.post_id)
    )
    counts = {post_id: int(count) for post_id, count in counts_result.all()}

    spent_result = await db.execute(
        select(func.sum(Transaction.amount)).where(
            Transaction.user_id == user_id,
            Transaction.type == EntryType.POST_PAYMENT,
            Transaction.status != EntryStatus.FAILED,
        )
    )
    total_spent = to_money(spent_result.scalar_one())
    split = split_budget(total_spent)

    recent_result = await db.execute(
        select(Validation, Post.title, User.name)
        .join(Post, Post.id == Validation.post_id)
        .join(User, User.id == Validation.validator_id)
        .where(Post.author_id == user_id)
        .order_by(desc(Validation.created_at), desc(Validation.id))
        .limit(RECENT_REVIEWS_LIMIT)
    )

    total_validations = sum(counts.values())
    return {
        "user": _user_block(user),
        "posts": [
            {
                "id": post.id,
                "title": post.title,
                "status": post.status.value,
                "category": post.category.name,
                "validation_count": counts.get(post.id, 0),
                "created_at": post.created_at,
                "total_budget": compute_post_budget(post),
                "normal_reward": to_money(post.normal_reward),
                "detailed_reward": to_money(post.detailed_reward),
            }
            for post in posts
        ],
        "analytics": {
            "total_posts": len(posts),
            "total_validations": total_validations,
            "avg_validations_per_post": _rounded_ratio(total_validations, len(posts)),
            "total_spent": total_spent,
            "to_validators": split.to_validators,
            "platform_fees": split.platform_fee,
            "earnings_chart": await _earnings_chart(db, user_id),
        },
        "recent_validations": [
            {
                "id": v.id,
                "post_title": title,
                "validator_name": name,
                "type": v.type.value,
                "status": v.status.value,
                "rating": v.rating,
                "created_at": v.created_at,
            }
            for v, title, name in recent_result.all()
        ],
    }


async def _available_posts(db: AsyncSession, user_id: int, now: datetime) -> list[dict]:
    """Open, unexpired posts by others that the user has not reviewed yet."""
    already_reviewed = exists().where(Validation.post_id == Post.id, Validation.validator_id == user_id)
    result = await db.execute(
        select(Post, User.name)
        .join(User, User.id == Post.author_id)
        .where(
            Post.status == PostStatus.OPEN,
            Post.author_id != user_id,
            Post.expiry_date > now,
            ~already_reviewed,
        )
        .order_by(desc(Post.created_at), desc(Post.id))
        .limit(AVAILABLE_POSTS_LIMIT)
    )
    rows = result.unique().all()

    counts: dict[int, int] = {}
    if rows:
        counts_result = await db.execute(
            select(Validation.post_id, func.count(Validation.id))
            .where(Validation.post_id.in_([post.id for post, _name in rows]))
            .group_by(Validation.post_id)
        )
        counts = {post_id: int(count) for post_id, count in counts_result.all()}

    return [
        {
            "id": post.id,
            "title": post.title,
            "category": post.category.name,
            "author_name": author_name,
            "validation_count": counts.get(post.id, 0),
            "normal_reward": to_money(post.normal_reward),
            "detailed_reward": to_money(post.detailed_reward),
            "created_at": post.created_at,
        }
        for post, author_name in rows
    ]


async def get_validator_dashboard(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """Review history, open work, approval rate and streak for a validator."""
    if now is None:
        now = datetime.now(timezone.utc)
    user = await get_user(db, user_id)

    author = aliased(User, name="author")
    history_result = await db.execute(
        select(Validation, Post.title, Category.name, author.name)
        .join(Post, Post.id == Validation.post_id)
        .join(Category, Category.id == Post.category_id)
        .join(author, author.id == Post.author_id)
        .where(Validation.validator_id == user_id)
        .order_by(desc(Validation.created_at), desc(Validation.id))
        .limit(VALIDATOR_HISTORY_LIMIT)
    )

    status_result = await db.execute(
        select(Validation.status, func.count(Validation.id))
        .where(Validation.validator_id == user_id)
        .group_by(Validation.status)
    )
    by_status = {status: int(count) for status, count in status_result.all()}
    total = sum(by_status.values())
    accepted = sum(by_status.get(status, 0) for status in ACCEPTED_STATUSES)

    today = ensure_utc(now).date()
    recent_days = await db.execute(
        select(Validation.created_at).where(
            Validation.validator_id == user_id,
            Validation.created_at >= ensure_utc(now) - timedelta(days=STREAK_LOOKBACK_DAYS),
        )
    )
    streak = validation_streak((ensure_utc(created_at).date() for created_at in recent_days.scalars()), today)

    logger.debug("validator_dashboard_built", user_id=user_id, reviews=total, streak=streak)
    return {
        "user": _user_block(user),
        "validations": [
            {
                "id": v.id,
                "post_title": title,
                "post_category": category_name,
                "author_name": author_name,
                "type": v.type.value,
                "status": v.status.value,
                "rating": v.rating,
                "created_at": v.created_at,
                "reward_amount": to_money(v.reward_amount),
            }
            for v, title, category_name, author_name in history_result.all()
        ],
        "available_posts": await _available_posts(db, user_id, now),
        "analytics": {
            "total_validations": total,
            "approved_validations": accepted,
            "pending_validations": by_status.get(ValidationStatus.PENDING, 0),
            "rejected_validations": by_status.get(ValidationStatus.REJECTED, 0),
            "approval_rate": _rounded_ratio(accepted, total, scale=100),
            "validation_streak": streak,
            "earnings_chart": await _earnings_chart(db, user_id),
        },
    }
