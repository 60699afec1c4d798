"""Dashboard endpoints: one view per marketplace role."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.auth.dependencies import get_current_user, require_submitter
from validatex.dashboard.schemas import SubmitterDashboardResponse, ValidatorDashboardResponse
from validatex.dashboard.service import get_submitter_dashboard, get_validator_dashboard
from validatex.database import get_session
from validatex.db.models import User

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("/submitter", response_model=SubmitterDashboardResponse)
async def submitter_dashboard(
    user: User = Depends(require_submitter),
    db: AsyncSession = Depends(get_session),
):
    """Posts, spend and the latest reviews received."""
    return SubmitterDashboardResponse.model_validate(await get_submitter_dashboard(db, user.id))


@router.get("/validator", response_model=ValidatorDashboardResponse)
async def validator_dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Review history, posts open for review, approval rate and streak."""
    return ValidatorDashboardResponse.model_validate(await get_validator_dashboard(db, user.id))
