"""Validation Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from validatex.db.models import ValidationStatus, ValidationType
from validatex.ledger.schemas import Money


class ValidationCreateRequest(BaseModel):
    post_id: int
    type: ValidationType
    vote: str | None = Field(None, pattern="^(LIKE|DISLIKE|NEUTRAL)$")
    short_comment: str | None = Field(None, max_length=500)
    detailed_feedback: str | None = Field(None, max_length=20_000)
    rating: int | None = Field(None, ge=1, le=5)


class DecisionRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    validator_id: int
    type: ValidationType
    status: ValidationStatus
    vote: str | None = None
    rating: int | None = None
    reward_amount: Money
    is_paid: bool
    approval_reason: str | None = None
    created_at: datetime
