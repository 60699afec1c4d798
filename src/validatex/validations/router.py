"""Validation endpoints: submit, approve and reject."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.auth.dependencies import get_current_user, require_submitter
from validatex.database import get_session
from validatex.db.models import User
from validatex.validations.schemas import (
    DecisionRequest,
    RejectRequest,
    ValidationCreateRequest,
    ValidationResponse,
)
from validatex.validations.service import (
    ValidationDraft,
    approve_validation,
    list_pending_for_author,
    reject_validation,
    submit_validation,
)

router = APIRouter(prefix="/api/v1/validations", tags=["Validations"])


@router.post("", response_model=ValidationResponse, status_code=201)
async def submit(
    body: ValidationCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ValidationResponse:
    """Submit a review. Normal reviews are paid immediately."""
    validation = await submit_validation(db, user.id, ValidationDraft(**body.model_dump()))
    return ValidationResponse.model_validate(validation)


@router.get("/pending", response_model=list[ValidationResponse])
async def pending_for_me(
    user: User = Depends(require_submitter),
    db: AsyncSession = Depends(get_session),
) -> list[ValidationResponse]:
    """Detailed reviews on my posts awaiting approval."""
    return [ValidationResponse.model_validate(v) for v in await list_pending_for_author(db, user.id)]


@router.post("/{validation_id}/approve", response_model=ValidationResponse)
async def approve(
    validation_id: int,
    body: DecisionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ValidationResponse:
    validation = await approve_validation(db, user.id, validation_id, body.reason)
    return ValidationResponse.model_validate(validation)


@router.post("/{validation_id}/reject", response_model=ValidationResponse)
async def reject(
    validation_id: int,
    body: RejectRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ValidationResponse:
    validation = await reject_validation(db, user.id, validation_id, body.reason)
    return ValidationResponse.model_validate(validation)
