"""Post endpoints: create (with payment) and close."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.auth.dependencies import require_submitter
from validatex.database import get_session
from validatex.db.models import Post, User
from validatex.ledger.rewards import compute_post_budget
from validatex.posts.schemas import PostCreateRequest, PostResponse
from validatex.posts.service import PostDraft, close_post, create_post

router = APIRouter(prefix="/api/v1/posts", tags=["Posts"])


def _post_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        category_id=post.category_id,
        title=post.title,
        description=post.description,
        status=post.status,
        normal_reward=post.normal_reward,
        detailed_reward=post.detailed_reward,
        normal_validator_count=post.normal_validator_count,
        detailed_validator_count=post.detailed_validator_count,
        current_normal_count=post.current_normal_count,
        current_detailed_count=post.current_detailed_count,
        total_budget=compute_post_budget(post),
        budget_paid=post.budget_paid,
        platform_fee=post.platform_fee,
        detailed_approval_required=post.detailed_approval_required,
        expiry_date=post.expiry_date,
        created_at=post.created_at,
    )


@router.post("", response_model=PostResponse, status_code=201)
async def create_post_endpoint(
    body: PostCreateRequest,
    user: User = Depends(require_submitter),
    db: AsyncSession = Depends(get_session),
) -> PostResponse:
    """Create a post and record the author's payment for it."""
    draft = PostDraft(**body.model_dump())
    post = await create_post(db, user.id, draft)
    return _post_response(post)


@router.post("/{post_id}/close", response_model=PostResponse)
async def close_post_endpoint(
    post_id: int,
    user: User = Depends(require_submitter),
    db: AsyncSession = Depends(get_session),
) -> PostResponse:
    return _post_response(await close_post(db, user.id, post_id))
