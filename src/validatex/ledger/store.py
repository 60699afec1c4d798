"""Append-only ledger entry store.

Entries are inserted, never deleted, and only their ``status`` may move
forward (PENDING -> COMPLETED | FAILED). Mutating operations elsewhere in the
package wrap the ledger insert and the matching balance-counter update in a
single ``atomic`` block, so either both land or neither does.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.config import get_settings
from validatex.db.models import EntryStatus, EntryType, PaymentMethod, Transaction, User
from validatex.errors import NotFoundError, PersistenceFailure, ValidationFailure
from validatex.ledger.money import ZERO, parse_amount, to_money

logger = structlog.get_logger()

_ALLOWED_TRANSITIONS = {
    EntryStatus.PENDING: frozenset({EntryStatus.COMPLETED, EntryStatus.FAILED}),
}

EARNING_TYPES = (EntryType.VALIDATION_EARNING, EntryType.BONUS)


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str = "ledger_write", **context: object) -> AsyncIterator[AsyncSession]:
    """Run a block as one unit of work: commit on success, roll back on any error.

    Storage errors surface as ``PersistenceFailure`` and are logged with the
    supplied context. Domain errors are re-raised untouched after rollback.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("persistence_failure", operation=operation, error=str(exc), exc_info=exc, **context)
        msg = "Failed to save changes. Please try again later."
        raise PersistenceFailure(msg) from exc
    except BaseException:
        await db.rollback()
        raise


async def get_user(db: AsyncSession, user_id: int, *, for_update: bool = False) -> User:
    """Load a user row fresh from the database.

    ``for_update`` takes a row lock for the rest of the transaction so that
    check-then-write sequences on the balance counters are serialized.
    """
    query = select(User).where(User.id == user_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    user = result.scalar_one_or_none()
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)
    return user


async def record_entry(
    db: AsyncSession,
    user_id: int,
    amount: Decimal,
    entry_type: EntryType,
    *,
    description: str,
    post_id: int | None = None,
    validation_id: int | None = None,
    status: EntryStatus = EntryStatus.COMPLETED,
    method: PaymentMethod | None = None,
    currency: str | None = None,
    now: datetime | None = None,
) -> Transaction:
    """Append one ledger entry. Does not commit; callers own the unit of work.

    Pass ``now`` when the entry must share a timestamp with rows written
    alongside it.
    """
    value = parse_amount(amount)
    if value <= ZERO:
        msg = "Ledger amounts must be positive"
        raise ValidationFailure(msg)

    entry = Transaction(
        user_id=user_id,
        post_id=post_id,
        validation_id=validation_id,
        amount=value,
        currency=currency or get_settings().currency,
        type=entry_type,
        status=status,
        method=method,
        description=description,
        created_at=now or datetime.now(timezone.utc),
    )
    db.add(entry)
    await db.flush()
    return entry


def transition_entry(entry: Transaction, new_status: EntryStatus, now: datetime | None = None) -> None:
    """Move an entry to a later status. Amount and type are never touched."""
    allowed = _ALLOWED_TRANSITIONS.get(entry.status, frozenset())
    if new_status not in allowed:
        msg = f"Cannot move a {entry.status.value} entry to {new_status.value}"
        raise ValidationFailure(msg)
    entry.status = new_status
    entry.updated_at = now or datetime.now(timezone.utc)


async def get_entry(db: AsyncSession, entry_id: int) -> Transaction:
    result = await db.execute(select(Transaction).where(Transaction.id == entry_id))
    entry = result.scalar_one_or_none()
    if entry is None:
        msg = "Ledger entry not found"
        raise NotFoundError(msg)
    return entry


async def list_transactions(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int | None = None,
    entry_type: EntryType | None = None,
) -> tuple[list[Transaction], int]:
    """Newest-first page of a user's ledger entries plus the total count."""
    settings = get_settings()
    per_page = min(per_page or settings.history_page_size, settings.history_max_page_size)
    page = max(page, 1)

    conditions = [Transaction.user_id == user_id]
    if entry_type is not None:
        conditions.append(Transaction.type == entry_type)

    total_result = await db.execute(select(func.count(Transaction.id)).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Transaction)
        .where(*conditions)
        .order_by(desc(Transaction.created_at), desc(Transaction.id))
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def transaction_summary(db: AsyncSession, user_id: int) -> dict[str, object]:
    """Totals by entry family plus entry count. Failed entries are ignored."""
    result = await db.execute(
        select(Transaction.type, func.sum(Transaction.amount), func.count(Transaction.id))
        .where(Transaction.user_id == user_id, Transaction.status != EntryStatus.FAILED)
        .group_by(Transaction.type)
    )
    summary: dict[str, object] = {
        "total_earnings": ZERO,
        "total_cashouts": ZERO,
        "total_spent": ZERO,
        "total_transactions": 0,
    }
    for entry_type, amount, count in result.all():
        amount = to_money(amount)
        if entry_type in EARNING_TYPES:
            summary["total_earnings"] += amount  # type: ignore[operator]
        elif entry_type == EntryType.CASHOUT:
            summary["total_cashouts"] += amount  # type: ignore[operator]
        elif entry_type == EntryType.POST_PAYMENT:
            summary["total_spent"] += amount  # type: ignore[operator]
        summary["total_transactions"] += count  # type: ignore[operator]
    return summary
