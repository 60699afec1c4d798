"""Dashboard Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from validatex.analytics.schemas import AmountBucket
from validatex.ledger.schemas import Money


class DashboardUser(BaseModel):
    """Balance and activity counters shown at the top of both dashboards."""

    id: int
    name: str | None = None
    role: str
    total_balance: Money
    available_balance: Money
    reputation_score: int
    total_ideas_submitted: int
    total_validations: int


# ── Submitter ──


class SubmitterPostItem(BaseModel):
    id: int
    title: str
    status: str
    category: str
    validation_count: int
    created_at: datetime
    total_budget: Money
    normal_reward: Money
    detailed_reward: Money


class ReceivedReview(BaseModel):
    """A review left on one of the submitter's posts."""

    id: int
    post_title: str
    validator_name: str | None = None
    type: str
    status: str
    rating: int | None = None
    created_at: datetime


class SubmitterDashboardAnalytics(BaseModel):
    total_posts: int
    total_validations: int
    avg_validations_per_post: int
    total_spent: Money
    to_validators: Money
    platform_fees: Money
    earnings_chart: list[AmountBucket]


class SubmitterDashboardResponse(BaseModel):
    user: DashboardUser
    posts: list[SubmitterPostItem]
    analytics: SubmitterDashboardAnalytics
    recent_validations: list[ReceivedReview]


# ── Validator ──


class GivenReview(BaseModel):
    """A review the validator wrote, with what it paid."""

    id: int
    post_title: str
    post_category: str
    author_name: str | None = None
    type: str
    status: str
    rating: int | None = None
    created_at: datetime
    reward_amount: Money


class AvailablePost(BaseModel):
    id: int
    title: str
    category: str
    author_name: str | None = None
    validation_count: int
    normal_reward: Money
    detailed_reward: Money
    created_at: datetime


class ValidatorDashboardAnalytics(BaseModel):
    total_validations: int
    approved_validations: int
    pending_validations: int
    rejected_validations: int
    approval_rate: int
    validation_streak: int
    earnings_chart: list[AmountBucket]


class ValidatorDashboardResponse(BaseModel):
    user: DashboardUser
    validations: list[GivenReview]
    available_posts: list[AvailablePost]
    analytics: ValidatorDashboardAnalytics
