"""Analytics and spending endpoints. Read-only projections over the ledger."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.analytics.schemas import (
    EarningsAnalyticsResponse,
    PostAnalyticsResponse,
    PostSpendingResponse,
    SpendingResponse,
    SubmitterAnalyticsResponse,
)
from validatex.analytics.service import (
    get_earnings_analytics,
    get_post_analytics,
    get_post_spending_details,
    get_submitter_analytics,
    get_submitter_spending,
)
from validatex.auth.dependencies import get_current_user, require_submitter
from validatex.database import get_session
from validatex.db.models import User

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])
spending_router = APIRouter(prefix="/api/v1/spending", tags=["Spending"])


@router.get("/earnings", response_model=EarningsAnalyticsResponse)
async def earnings(
    days: int = Query(30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Daily earnings and review stats for the current validator."""
    return EarningsAnalyticsResponse.model_validate(await get_earnings_analytics(db, user.id, days))


@router.get("/submitter", response_model=SubmitterAnalyticsResponse)
async def submitter(
    months: int = Query(6, ge=1, le=24),
    user: User = Depends(require_submitter),
    db: AsyncSession = Depends(get_session),
):
    return SubmitterAnalyticsResponse.model_validate(await get_submitter_analytics(db, user.id, months))


@router.get("/posts/{post_id}", response_model=PostAnalyticsResponse)
async def post_analytics(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return PostAnalyticsResponse.model_validate(await get_post_analytics(db, user.id, post_id))


@spending_router.get("", response_model=SpendingResponse)
async def spending(
    user: User = Depends(require_submitter),
    db: AsyncSession = Depends(get_session),
):
    """Total spend with the validator/platform split, per post and per month."""
    return SpendingResponse.model_validate(await get_submitter_spending(db, user.id))


@spending_router.get("/{post_id}", response_model=PostSpendingResponse)
async def post_spending(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return PostSpendingResponse.model_validate(await get_post_spending_details(db, user.id, post_id))
