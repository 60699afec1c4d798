"""Reward split and post budget arithmetic.

This is the only place the platform fee is applied. Dashboard, spending and
analytics views all call into here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from validatex.ledger.money import ZERO, floor_money, to_money

PLATFORM_FEE_RATE = Decimal("0.10")

# Share of the post-fee budget that funds each validation type.
NORMAL_POOL_SHARE = Decimal("0.60")
DETAILED_POOL_SHARE = Decimal("0.40")


class PostBudget(Protocol):
    normal_reward: Decimal
    detailed_reward: Decimal
    normal_validator_count: int
    detailed_validator_count: int
    current_normal_count: int
    current_detailed_count: int


@dataclass(frozen=True)
class BudgetSplit:
    to_validators: Decimal
    platform_fee: Decimal


@dataclass(frozen=True)
class RewardAllocation:
    normal_reward: Decimal
    detailed_reward: Decimal
    platform_fee: Decimal


def split_budget(total_spent: Decimal) -> BudgetSplit:
    """Split spend into validator payout and platform fee (90/10).

    The validator share is derived by subtraction so both parts always add up
    to ``total_spent`` exactly.
    """
    total = to_money(total_spent)
    fee = to_money(total * PLATFORM_FEE_RATE)
    return BudgetSplit(to_validators=total - fee, platform_fee=fee)


def compute_normal_budget(post: PostBudget) -> Decimal:
    return to_money(post.normal_reward) * post.normal_validator_count


def compute_detailed_budget(post: PostBudget) -> Decimal:
    return to_money(post.detailed_reward) * post.detailed_validator_count


def compute_post_budget(post: PostBudget) -> Decimal:
    """normalReward * normalValidatorCount + detailedReward * detailedValidatorCount."""
    return compute_normal_budget(post) + compute_detailed_budget(post)


def compute_spent_so_far(post: PostBudget) -> tuple[Decimal, Decimal]:
    """(normal, detailed) amounts committed to fulfilled validations."""
    normal = to_money(post.normal_reward) * post.current_normal_count
    detailed = to_money(post.detailed_reward) * post.current_detailed_count
    return normal, detailed


def _percent(current: int, target: int) -> float:
    if target <= 0:
        return 0.0
    return round(current / target * 100, 2)


def compute_progress(post: PostBudget) -> dict[str, object]:
    """Fulfilment per validation type, as counts and percentages."""
    return {
        "normal_validations": f"{post.current_normal_count}/{post.normal_validator_count}",
        "detailed_validations": f"{post.current_detailed_count}/{post.detailed_validator_count}",
        "normal_progress": _percent(post.current_normal_count, post.normal_validator_count),
        "detailed_progress": _percent(post.current_detailed_count, post.detailed_validator_count),
    }


def allocate_rewards(total_budget: Decimal, normal_count: int, detailed_count: int) -> RewardAllocation:
    """Derive per-validation rewards from what the author pays.

    After the platform fee, 60% of the remainder funds normal validations and
    40% funds detailed ones. When a type has no validators its pool goes to
    the other type. Per-validation rewards are rounded down to the cent, so
    ``compute_post_budget`` never exceeds the validator share.
    """
    split = split_budget(total_budget)
    pool = split.to_validators

    if normal_count > 0 and detailed_count > 0:
        normal_pool = pool * NORMAL_POOL_SHARE
        detailed_pool = pool * DETAILED_POOL_SHARE
    elif normal_count > 0:
        normal_pool, detailed_pool = pool, ZERO
    else:
        normal_pool, detailed_pool = ZERO, pool

    normal_reward = floor_money(normal_pool / normal_count) if normal_count > 0 else ZERO
    detailed_reward = floor_money(detailed_pool / detailed_count) if detailed_count > 0 else ZERO
    return RewardAllocation(
        normal_reward=normal_reward,
        detailed_reward=detailed_reward,
        platform_fee=split.platform_fee,
    )
