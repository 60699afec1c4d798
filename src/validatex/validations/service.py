"""Validation submission and author decisions.

Normal validations are paid as soon as they are submitted. Detailed ones
wait for the post author's approval unless the post waives it. Payment goes
through ``credit_earning`` so the validator's counters and the ledger entry
are written together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.db.models import Post, PostStatus, User, Validation, ValidationStatus, ValidationType
from validatex.errors import NotFoundError, PermissionDenied, ValidationFailure
from validatex.ledger.balances import credit_earning
from validatex.ledger.store import atomic, get_user
from validatex.posts.service import get_post
from validatex.timeutils import ensure_utc

logger = structlog.get_logger()

NORMAL_REPUTATION_GAIN = 1
DETAILED_REPUTATION_GAIN = 5
REJECTION_REPUTATION_LOSS = 2


@dataclass(frozen=True)
class ValidationDraft:
    post_id: int
    type: ValidationType
    vote: str | None = None
    short_comment: str | None = None
    detailed_feedback: str | None = None
    rating: int | None = None


async def _pay(
    db: AsyncSession,
    validator: User,
    validation: Validation,
    post: Post,
    gain: int,
    now: datetime,
) -> None:
    await credit_earning(
        db,
        validator,
        validation.reward_amount,
        description=f"Validation reward for: {post.title}",
        validation_id=validation.id,
        post_id=post.id,
        now=now,
    )
    validation.is_paid = True
    validator.reputation_score += gain


async def _already_validated(db: AsyncSession, post_id: int, validator_id: int) -> bool:
    existing = await db.execute(
        select(Validation.id).where(
            Validation.post_id == post_id,
            Validation.validator_id == validator_id,
        )
    )
    return existing.scalar_one_or_none() is not None


async def submit_validation(
    db: AsyncSession,
    validator_id: int,
    draft: ValidationDraft,
    now: datetime | None = None,
) -> Validation:
    """Record a review, update the post's fulfilment count, pay when due.

    The post row lock is taken before the duplicate check, so two reviews
    from the same validator on one post are serialized behind it. The unique
    constraint on (post, validator) backs this up and is reported the same way.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    duplicate = "You have already validated this post"

    async with atomic(db, "submit_validation", user_id=validator_id, post_id=draft.post_id):
        post = await get_post(db, draft.post_id, for_update=True)
        if await _already_validated(db, post.id, validator_id):
            raise ValidationFailure(duplicate)
        if post.author_id == validator_id:
            msg = "You cannot validate your own post"
            raise ValidationFailure(msg)
        if post.status != PostStatus.OPEN or ensure_utc(post.expiry_date) < ensure_utc(now):
            msg = "Post is no longer accepting validations"
            raise ValidationFailure(msg)

        if draft.type == ValidationType.NORMAL:
            if post.current_normal_count >= post.normal_validator_count:
                msg = "Validation limit reached for this type"
                raise ValidationFailure(msg)
            reward = post.normal_reward
            needs_approval = False
            post.current_normal_count += 1
        else:
            if post.current_detailed_count >= post.detailed_validator_count:
                msg = "Validation limit reached for this type"
                raise ValidationFailure(msg)
            reward = post.detailed_reward
            needs_approval = post.detailed_approval_required
            post.current_detailed_count += 1
        await db.flush()

        validation = Validation(
            post_id=post.id,
            validator_id=validator_id,
            type=draft.type,
            status=ValidationStatus.PENDING if needs_approval else ValidationStatus.COMPLETED,
            vote=draft.vote,
            short_comment=draft.short_comment,
            detailed_feedback=draft.detailed_feedback,
            rating=draft.rating,
            reward_amount=reward,
            is_paid=False,
            created_at=now,
        )
        db.add(validation)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ValidationFailure(duplicate) from exc

        validator = await get_user(db, validator_id, for_update=True)
        validator.total_validations += 1
        if not needs_approval:
            gain = NORMAL_REPUTATION_GAIN if draft.type == ValidationType.NORMAL else DETAILED_REPUTATION_GAIN
            await _pay(db, validator, validation, post, gain, now)

        if (
            post.current_normal_count >= post.normal_validator_count
            and post.current_detailed_count >= post.detailed_validator_count
        ):
            post.status = PostStatus.CLOSED
        await db.flush()

    logger.info(
        "validation_submitted",
        validation_id=validation.id,
        post_id=post.id,
        validator_id=validator_id,
        paid=validation.is_paid,
    )
    return validation


async def _load_for_decision(db: AsyncSession, author_id: int, validation_id: int) -> tuple[Validation, Post]:
    result = await db.execute(
        select(Validation)
        .where(Validation.id == validation_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    validation = result.scalar_one_or_none()
    if validation is None:
        msg = "Validation not found"
        raise NotFoundError(msg)
    post = await get_post(db, validation.post_id)
    if post.author_id != author_id:
        msg = "Only the post author can decide on this validation"
        raise PermissionDenied(msg)
    if validation.status != ValidationStatus.PENDING:
        msg = f"Validation is already {validation.status.value}"
        raise ValidationFailure(msg)
    return validation, post


async def approve_validation(
    db: AsyncSession,
    author_id: int,
    validation_id: int,
    reason: str | None = None,
) -> Validation:
    """Approve a pending detailed review and release its reward."""
    now = datetime.now(timezone.utc)
    async with atomic(db, "approve_validation", user_id=author_id, validation_id=validation_id):
        validation, post = await _load_for_decision(db, author_id, validation_id)
        validator = await get_user(db, validation.validator_id, for_update=True)
        validation.status = ValidationStatus.APPROVED
        validation.approval_reason = reason
        validation.decided_at = now
        await _pay(db, validator, validation, post, DETAILED_REPUTATION_GAIN, now)
        await db.flush()

    logger.info("validation_approved", validation_id=validation_id, author_id=author_id)
    return validation


async def reject_validation(
    db: AsyncSession,
    author_id: int,
    validation_id: int,
    reason: str,
) -> Validation:
    """Reject a pending detailed review. No reward is paid."""
    async with atomic(db, "reject_validation", user_id=author_id, validation_id=validation_id):
        validation, _post = await _load_for_decision(db, author_id, validation_id)
        validator = await get_user(db, validation.validator_id, for_update=True)
        validation.status = ValidationStatus.REJECTED
        validation.approval_reason = reason
        validation.decided_at = datetime.now(timezone.utc)
        validator.reputation_score -= REJECTION_REPUTATION_LOSS
        await db.flush()

    logger.info("validation_rejected", validation_id=validation_id, author_id=author_id)
    return validation


async def list_pending_for_author(db: AsyncSession, author_id: int) -> list[Validation]:
    """Detailed reviews on the author's posts that await a decision."""
    result = await db.execute(
        select(Validation)
        .join(Post, Post.id == Validation.post_id)
        .where(
            Post.author_id == author_id,
            Validation.status == ValidationStatus.PENDING,
            Validation.type == ValidationType.DETAILED,
        )
        .order_by(Validation.created_at.desc())
    )
    return list(result.scalars().all())
