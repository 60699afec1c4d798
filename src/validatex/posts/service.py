"""Post creation and the submitter's payment entry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.db.models import Category, EntryType, Post, PostStatus
from validatex.errors import NotFoundError, PermissionDenied, ValidationFailure
from validatex.ledger.money import ZERO, parse_amount
from validatex.ledger.rewards import allocate_rewards
from validatex.ledger.store import atomic, get_user, record_entry

logger = structlog.get_logger()


@dataclass(frozen=True)
class PostDraft:
    title: str
    category_id: int
    total_budget: Decimal
    normal_validator_count: int
    detailed_validator_count: int
    description: str = ""
    detailed_approval_required: bool = True
    expiry_days: int = 7


async def get_post(db: AsyncSession, post_id: int, *, for_update: bool = False) -> Post:
    query = select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    post = (await db.execute(query)).unique().scalar_one_or_none()
    if post is None:
        msg = "Post not found"
        raise NotFoundError(msg)
    return post


async def get_authored_post(db: AsyncSession, author_id: int, post_id: int) -> Post:
    """A post the caller wrote. Someone else's post reads as not found."""
    post = await get_post(db, post_id)
    if post.author_id != author_id:
        msg = "Post not found or access denied"
        raise NotFoundError(msg)
    return post


async def create_post(
    db: AsyncSession,
    author_id: int,
    draft: PostDraft,
    now: datetime | None = None,
) -> Post:
    """Create a post, derive per-validation rewards, and record the payment."""
    budget = parse_amount(draft.total_budget)
    if budget <= ZERO:
        msg = "Budget must be greater than zero"
        raise ValidationFailure(msg)
    if draft.normal_validator_count < 0 or draft.detailed_validator_count < 0:
        msg = "Validator counts cannot be negative"
        raise ValidationFailure(msg)
    if draft.normal_validator_count + draft.detailed_validator_count == 0:
        msg = "At least one validator is required"
        raise ValidationFailure(msg)
    if now is None:
        now = datetime.now(timezone.utc)

    allocation = allocate_rewards(budget, draft.normal_validator_count, draft.detailed_validator_count)
    if (draft.normal_validator_count and allocation.normal_reward <= ZERO) or (
        draft.detailed_validator_count and allocation.detailed_reward <= ZERO
    ):
        msg = "Budget is too small for the requested number of validators"
        raise ValidationFailure(msg)

    async with atomic(db, "create_post", user_id=author_id):
        author = await get_user(db, author_id, for_update=True)
        category = await db.get(Category, draft.category_id)
        if category is None:
            msg = "Category not found"
            raise NotFoundError(msg)

        post = Post(
            author_id=author.id,
            category_id=category.id,
            title=draft.title,
            description=draft.description,
            status=PostStatus.OPEN,
            normal_reward=allocation.normal_reward,
            detailed_reward=allocation.detailed_reward,
            normal_validator_count=draft.normal_validator_count,
            detailed_validator_count=draft.detailed_validator_count,
            current_normal_count=0,
            current_detailed_count=0,
            budget_paid=budget,
            platform_fee=allocation.platform_fee,
            detailed_approval_required=draft.detailed_approval_required,
            expiry_date=now + timedelta(days=draft.expiry_days),
            created_at=now,
        )
        post.category = category
        db.add(post)
        await db.flush()

        await record_entry(
            db,
            author.id,
            budget,
            EntryType.POST_PAYMENT,
            description=f"Payment for post: {draft.title}",
            post_id=post.id,
            now=now,
        )
        author.total_ideas_submitted += 1
        await db.flush()

    logger.info("post_created", post_id=post.id, author_id=author_id, budget=str(budget))
    return post


async def close_post(db: AsyncSession, author_id: int, post_id: int) -> Post:
    """Stop accepting validations before the quotas are met."""
    async with atomic(db, "close_post", post_id=post_id):
        post = await get_post(db, post_id, for_update=True)
        if post.author_id != author_id:
            msg = "Only the author can close this post"
            raise PermissionDenied(msg)
        post.status = PostStatus.CLOSED
        await db.flush()
    return post
