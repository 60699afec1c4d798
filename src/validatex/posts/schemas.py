"""Post Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from validatex.db.models import PostStatus
from validatex.ledger.schemas import Money


class PostCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=10_000)
    category_id: int
    total_budget: Decimal = Field(..., max_digits=12, decimal_places=2)
    normal_validator_count: int = Field(0, ge=0, le=1000)
    detailed_validator_count: int = Field(0, ge=0, le=1000)
    detailed_approval_required: bool = True
    expiry_days: int = Field(7, ge=1, le=90)


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    category_id: int
    title: str
    description: str
    status: PostStatus
    normal_reward: Money
    detailed_reward: Money
    normal_validator_count: int
    detailed_validator_count: int
    current_normal_count: int
    current_detailed_count: int
    total_budget: Money
    budget_paid: Money
    platform_fee: Money
    detailed_approval_required: bool
    expiry_date: datetime
    created_at: datetime
