"""Balance counters and the reconciliation fold over the ledger.

Balances are read from the persisted counters on ``users``. Each operation
that changes a counter records the ledger entry that explains it inside the
same transaction. ``reconcile_balances`` recomputes the counters from the
ledger and reports any drift.

Folding rules:
    total      = earnings + bonuses - completed cashouts
    opted_out  = sum of opt-outs
    available  = total - opted_out - pending cashouts
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.config import get_settings
from validatex.db.models import EntryStatus, EntryType, Transaction, User
from validatex.errors import InsufficientBalance, ValidationFailure
from validatex.ledger.money import ZERO, parse_amount, to_money
from validatex.ledger.store import atomic, get_user, record_entry

logger = structlog.get_logger()


@dataclass(frozen=True)
class BalanceSnapshot:
    total: Decimal
    available: Decimal
    opted_out: Decimal
    currency: str


@dataclass(frozen=True)
class BalanceMismatch:
    user_id: int
    field: str
    stored: Decimal
    expected: Decimal


async def get_balances(db: AsyncSession, user_id: int) -> BalanceSnapshot:
    """Current balances from the user's persisted counters."""
    user = await get_user(db, user_id)
    return BalanceSnapshot(
        total=to_money(user.total_balance),
        available=to_money(user.available_balance),
        opted_out=to_money(user.opted_out_balance),
        currency=get_settings().currency,
    )


async def get_monthly_earnings(
    db: AsyncSession,
    user_id: int,
    month_start: datetime,
    now: datetime | None = None,
) -> tuple[Decimal, int]:
    """Sum and count of validation earnings in ``[month_start, now)``."""
    if now is None:
        now = datetime.now(timezone.utc)
    result = await db.execute(
        select(func.sum(Transaction.amount), func.count(Transaction.id)).where(
            Transaction.user_id == user_id,
            Transaction.type == EntryType.VALIDATION_EARNING,
            Transaction.status == EntryStatus.COMPLETED,
            Transaction.created_at >= month_start,
            Transaction.created_at < now,
        )
    )
    total, count = result.one()
    return to_money(total), int(count or 0)


async def credit_earning(
    db: AsyncSession,
    user: User,
    amount: Decimal,
    *,
    description: str,
    entry_type: EntryType = EntryType.VALIDATION_EARNING,
    validation_id: int | None = None,
    post_id: int | None = None,
    now: datetime | None = None,
) -> Transaction:
    """Credit ``user`` and append the matching entry. Caller holds the row lock and the unit of work."""
    entry = await record_entry(
        db,
        user.id,
        amount,
        entry_type,
        description=description,
        validation_id=validation_id,
        post_id=post_id,
        now=now,
    )
    user.total_balance = to_money(user.total_balance) + entry.amount
    user.available_balance = to_money(user.available_balance) + entry.amount
    await db.flush()
    return entry


async def grant_bonus(db: AsyncSession, user_id: int, amount: Decimal, description: str) -> Transaction:
    """Credit a platform bonus to a user's available balance."""
    async with atomic(db, "grant_bonus", user_id=user_id):
        user = await get_user(db, user_id, for_update=True)
        entry = await credit_earning(db, user, amount, description=description, entry_type=EntryType.BONUS)
    logger.info("bonus_granted", user_id=user_id, amount=str(entry.amount))
    return entry


async def opt_out_balance(db: AsyncSession, user_id: int, amount: Decimal) -> BalanceSnapshot:
    """Move funds from available to opted-out and record one OPT_OUT entry."""
    value = parse_amount(amount)
    if value <= ZERO:
        msg = "Opt-out amount must be greater than zero"
        raise ValidationFailure(msg)

    async with atomic(db, "opt_out_balance", user_id=user_id):
        user = await get_user(db, user_id, for_update=True)
        if value > to_money(user.available_balance):
            msg = "Insufficient available balance"
            raise InsufficientBalance(msg)

        await record_entry(
            db,
            user.id,
            value,
            EntryType.OPT_OUT,
            description=f"Opted out {value} {get_settings().currency} from available balance",
        )
        user.available_balance = to_money(user.available_balance) - value
        user.opted_out_balance = to_money(user.opted_out_balance) + value
        await db.flush()

    logger.info("balance_opted_out", user_id=user_id, amount=str(value))
    return await get_balances(db, user_id)


def _fold(rows: list[tuple[EntryType, EntryStatus, Decimal]]) -> dict[str, Decimal]:
    """Expected counters from one user's ledger rows."""
    earned = ZERO
    completed_cashouts = ZERO
    pending_cashouts = ZERO
    opted_out = ZERO
    for entry_type, status, amount in rows:
        amount = to_money(amount)
        if entry_type in (EntryType.VALIDATION_EARNING, EntryType.BONUS) and status == EntryStatus.COMPLETED:
            earned += amount
        elif entry_type == EntryType.OPT_OUT and status == EntryStatus.COMPLETED:
            opted_out += amount
        elif entry_type == EntryType.CASHOUT:
            if status == EntryStatus.COMPLETED:
                completed_cashouts += amount
            elif status == EntryStatus.PENDING:
                pending_cashouts += amount
    total = earned - completed_cashouts
    return {
        "total_balance": total,
        "opted_out_balance": opted_out,
        "available_balance": total - opted_out - pending_cashouts,
    }


async def reconcile_balances(db: AsyncSession, user_id: int | None = None) -> list[BalanceMismatch]:
    """Compare stored counters against the ledger fold. Read-only."""
    entries_query = select(
        Transaction.user_id, Transaction.type, Transaction.status, func.sum(Transaction.amount)
    ).group_by(Transaction.user_id, Transaction.type, Transaction.status)
    users_query = select(User)
    if user_id is not None:
        entries_query = entries_query.where(Transaction.user_id == user_id)
        users_query = users_query.where(User.id == user_id)

    per_user: dict[int, list[tuple[EntryType, EntryStatus, Decimal]]] = defaultdict(list)
    for uid, entry_type, status, amount in (await db.execute(entries_query)).all():
        per_user[uid].append((entry_type, status, amount))

    users = (await db.execute(users_query.execution_options(populate_existing=True))).scalars().all()

    mismatches: list[BalanceMismatch] = []
    for user in users:
        expected = _fold(per_user.get(user.id, []))
        for field, value in expected.items():
            stored = to_money(getattr(user, field))
            if stored != value:
                mismatches.append(BalanceMismatch(user.id, field, stored, value))
                logger.warning(
                    "balance_drift_detected",
                    user_id=user.id,
                    field=field,
                    stored=str(stored),
                    expected=str(value),
                )
    return mismatches
