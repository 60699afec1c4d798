"""Analytics and spending Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from validatex.ledger.schemas import Money


class AmountBucket(BaseModel):
    """One sparse day or month bucket. ``key`` is the UTC ISO date."""

    key: str
    amount: Money
    count: int


class TypeTotal(BaseModel):
    amount: Money
    count: int


class ValidationStat(BaseModel):
    type: str
    status: str
    count: int
    reward_amount: Money


class EarningsAnalyticsResponse(BaseModel):
    """Validator earnings over a trailing window of days."""

    period_days: int
    total_earned: Money
    daily_earnings: list[AmountBucket]
    earnings_by_type: dict[str, TypeTotal]
    validation_stats: list[ValidationStat]


# ── Submitter analytics ──


class SubmitterOverview(BaseModel):
    total_posts: int
    total_spent: Money
    total_validations: int
    avg_validations_per_post: float
    avg_cost_per_validation: Money


class DailyValidations(BaseModel):
    date: str
    validations: int
    unique_validators: int


class CategoryPerformance(BaseModel):
    category_id: int
    category_name: str
    category_icon: str | None = None
    post_count: int
    total_budget: Money
    avg_budget: Money


class VoteCount(BaseModel):
    vote: str | None = None
    count: int


class TopPost(BaseModel):
    id: int
    title: str
    category: str
    validation_count: int
    total_budget: Money
    status: str
    created_at: datetime


class ReviewActivity(BaseModel):
    """A recent review on one of the submitter's posts."""

    id: int
    post_title: str
    validator_name: str | None = None
    vote: str | None = None
    type: str
    reward_amount: Money
    created_at: datetime


class SubmitterAnalyticsResponse(BaseModel):
    """Spending trend, engagement and category performance for a submitter."""

    overview: SubmitterOverview
    monthly_spending: list[AmountBucket]
    daily_validations: list[DailyValidations]
    category_performance: list[CategoryPerformance]
    vote_distribution: list[VoteCount]
    top_posts: list[TopPost]
    recent_activity: list[ReviewActivity]


# ── Per-post analytics ──


class PostSummary(BaseModel):
    id: int
    title: str
    category: str
    status: str
    created_at: datetime
    total_budget: Money


class TimelinePoint(BaseModel):
    date: str
    validation_count: int
    sentiment_score: float


class PostReview(BaseModel):
    id: int
    type: str
    vote: str | None = None
    validator_name: str | None = None
    validator_reputation: int
    reward_amount: Money
    created_at: datetime


class PostAnalyticsResponse(BaseModel):
    """Per-post review timeline with sentiment and reviewer quality bands."""

    post: PostSummary
    validation_timeline: list[TimelinePoint]
    validator_quality_distribution: dict[str, int]
    validations: list[PostReview]


# ── Spending ──


class SpendingOverview(BaseModel):
    total_posts: int
    total_spent: Money
    total_to_validators: Money
    total_platform_fees: Money
    total_validations: int
    avg_spent_per_post: Money


class CategoryRef(BaseModel):
    name: str
    icon: str | None = None


class PostSpendingRow(BaseModel):
    """What one post cost and how far its review quotas have been filled."""

    id: int
    title: str
    category: CategoryRef
    status: str
    created_at: datetime
    validation_count: int
    total_spent: Money
    to_validators: Money
    platform_fee: Money
    normal_budget: Money
    detailed_budget: Money
    total_budget: Money
    normal_reward: Money
    detailed_reward: Money
    normal_validator_count: int
    detailed_validator_count: int
    current_normal_count: int
    current_detailed_count: int


class SpendingResponse(BaseModel):
    overview: SpendingOverview
    posts: list[PostSpendingRow]
    monthly_spending: list[AmountBucket]


class SpendingPostInfo(BaseModel):
    id: int
    title: str
    category: str
    category_icon: str | None = None
    status: str
    created_at: datetime
    expiry_date: datetime


class SpendingBreakdown(BaseModel):
    total_spent: Money
    normal_spent: Money
    detailed_spent: Money
    platform_fee: Money
    to_validators: Money


class SpendingProgress(BaseModel):
    normal_validations: str
    detailed_validations: str
    normal_progress: float
    detailed_progress: float
    total_validations: int


class SpendingDay(BaseModel):
    date: str
    normal_count: int
    detailed_count: int
    total_rewards: Money


class PostSpendingResponse(BaseModel):
    """Spend, fulfilment progress and a daily review timeline for one post."""

    post: SpendingPostInfo
    spending: SpendingBreakdown
    progress: SpendingProgress
    timeline: list[SpendingDay]
