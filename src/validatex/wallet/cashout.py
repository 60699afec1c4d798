"""Cashout eligibility gate and request lifecycle.

A user is either eligible (never cashed out, or the cooldown has elapsed) or
cooling down. Requests are checked in a fixed order and the first failing
rule decides the error:

    1. cooldown elapsed
    2. amount >= minimum cashout
    3. amount <= available balance
    4. destination details present for the method

A successful request reserves the funds immediately: ``available_balance``
drops by the amount and a PENDING CASHOUT entry is written. Settlement later
either completes the payout (``total_balance`` drops) or fails it (the
reservation is returned to ``available_balance``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.config import get_settings
from validatex.db.models import CashoutRequest, EntryStatus, EntryType, PaymentMethod, User
from validatex.errors import CooldownActive, InsufficientBalance, NotFoundError, ValidationFailure
from validatex.ledger.money import parse_amount, to_money
from validatex.ledger.store import atomic, get_entry, get_user, record_entry, transition_entry
from validatex.timeutils import ensure_utc

logger = structlog.get_logger()

UPI_METHODS = frozenset({PaymentMethod.UPI, PaymentMethod.RAZORPAY, PaymentMethod.PHONEPE, PaymentMethod.PAYTM})
SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class CashoutEligibility:
    eligible: bool
    next_allowed_at: datetime | None
    remaining_days: int


@dataclass(frozen=True)
class CashoutCommand:
    amount: Decimal
    method: PaymentMethod
    upi_id: str | None = None
    mobile_number: str | None = None
    wallet_address: str | None = None


@dataclass(frozen=True)
class Destination:
    upi_id: str | None
    mobile_number: str | None
    wallet_address: str | None


def cashout_status(
    last_cashout_at: datetime | None,
    now: datetime | None = None,
    cooldown_days: int | None = None,
) -> CashoutEligibility:
    """Where a user stands in the cooldown cycle."""
    if last_cashout_at is None:
        return CashoutEligibility(eligible=True, next_allowed_at=None, remaining_days=0)
    if now is None:
        now = datetime.now(timezone.utc)
    if cooldown_days is None:
        cooldown_days = get_settings().cashout_cooldown_days

    next_allowed = ensure_utc(last_cashout_at) + timedelta(days=cooldown_days)
    now = ensure_utc(now)
    if now >= next_allowed:
        return CashoutEligibility(eligible=True, next_allowed_at=next_allowed, remaining_days=0)
    remaining = math.ceil((next_allowed - now).total_seconds() / SECONDS_PER_DAY)
    return CashoutEligibility(eligible=False, next_allowed_at=next_allowed, remaining_days=remaining)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_destination(user: User, command: CashoutCommand) -> Destination:
    """Destination for the payout: supplied details first, then saved ones."""
    destination = Destination(
        upi_id=_clean(command.upi_id) or user.upi_id,
        mobile_number=_clean(command.mobile_number) or user.mobile_number,
        wallet_address=_clean(command.wallet_address) or user.wallet_address,
    )
    if command.method in UPI_METHODS:
        if not destination.upi_id and not destination.mobile_number:
            msg = "UPI ID or mobile number required"
            raise ValidationFailure(msg)
        return Destination(destination.upi_id, destination.mobile_number, None)
    if command.method == PaymentMethod.POLYGON:
        if not destination.wallet_address:
            msg = "Wallet address required for crypto cashout"
            raise ValidationFailure(msg)
        return Destination(None, None, destination.wallet_address)
    return destination


def _save_payment_details(user: User, command: CashoutCommand) -> None:
    """Remember newly supplied destination details as the user's preference."""
    user.preferred_payment_method = command.method
    if _clean(command.upi_id):
        user.upi_id = _clean(command.upi_id)
    if _clean(command.mobile_number):
        user.mobile_number = _clean(command.mobile_number)
    if _clean(command.wallet_address):
        user.wallet_address = _clean(command.wallet_address)


async def request_cashout(
    db: AsyncSession,
    user_id: int,
    command: CashoutCommand,
    now: datetime | None = None,
) -> CashoutRequest:
    """Validate and file a cashout request, reserving the funds."""
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)
    amount = parse_amount(command.amount)

    async with atomic(db, "request_cashout", user_id=user_id):
        user = await get_user(db, user_id, for_update=True)

        status = cashout_status(user.last_cashout_at, now, settings.cashout_cooldown_days)
        if not status.eligible:
            raise CooldownActive(status.remaining_days, status.next_allowed_at.isoformat())  # type: ignore[union-attr]

        if amount < settings.min_cashout_amount:
            msg = f"Minimum cashout amount is {to_money(settings.min_cashout_amount)} {settings.currency}"
            raise ValidationFailure(msg)

        if amount > to_money(user.available_balance):
            msg = "Insufficient balance"
            raise InsufficientBalance(msg)

        destination = resolve_destination(user, command)

        entry = await record_entry(
            db,
            user.id,
            amount,
            EntryType.CASHOUT,
            description=f"Cashout request via {command.method.value}",
            status=EntryStatus.PENDING,
            method=command.method,
            now=now,
        )
        request = CashoutRequest(
            user_id=user.id,
            transaction_id=entry.id,
            amount=amount,
            currency=settings.currency,
            method=command.method,
            upi_id=destination.upi_id,
            mobile_number=destination.mobile_number,
            wallet_address=destination.wallet_address,
            status=EntryStatus.PENDING,
            created_at=now,
        )
        db.add(request)

        user.available_balance = to_money(user.available_balance) - amount
        user.last_cashout_at = now
        _save_payment_details(user, command)
        await db.flush()

    logger.info(
        "cashout_requested",
        user_id=user_id,
        cashout_id=request.id,
        amount=str(amount),
        method=command.method.value,
    )
    return request


async def settle_cashout(
    db: AsyncSession,
    request_id: int,
    outcome: EntryStatus,
    now: datetime | None = None,
) -> CashoutRequest:
    """Complete or fail a PENDING cashout request."""
    if outcome not in (EntryStatus.COMPLETED, EntryStatus.FAILED):
        msg = "Cashouts can only be settled as COMPLETED or FAILED"
        raise ValidationFailure(msg)
    if now is None:
        now = datetime.now(timezone.utc)

    async with atomic(db, "settle_cashout", cashout_id=request_id):
        result = await db.execute(
            select(CashoutRequest)
            .where(CashoutRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None:
            msg = "Cashout request not found"
            raise NotFoundError(msg)
        if request.status != EntryStatus.PENDING:
            msg = f"Cashout request is already {request.status.value}"
            raise ValidationFailure(msg)

        user = await get_user(db, request.user_id, for_update=True)
        entry = await get_entry(db, request.transaction_id)
        transition_entry(entry, outcome, now)
        request.status = outcome
        request.processed_at = now

        amount = to_money(request.amount)
        if outcome == EntryStatus.COMPLETED:
            user.total_balance = to_money(user.total_balance) - amount
        else:
            user.available_balance = to_money(user.available_balance) + amount
        await db.flush()

    logger.info("cashout_settled", cashout_id=request_id, user_id=request.user_id, outcome=outcome.value)
    return request


async def list_cashouts(db: AsyncSession, user_id: int, limit: int = 50) -> list[CashoutRequest]:
    result = await db.execute(
        select(CashoutRequest)
        .where(CashoutRequest.user_id == user_id)
        .order_by(desc(CashoutRequest.created_at), desc(CashoutRequest.id))
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_pending_cashouts(db: AsyncSession, limit: int = 100) -> list[CashoutRequest]:
    """Oldest-first queue for the payout operator."""
    result = await db.execute(
        select(CashoutRequest)
        .where(CashoutRequest.status == EntryStatus.PENDING)
        .order_by(CashoutRequest.created_at, CashoutRequest.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def update_payment_preferences(
    db: AsyncSession,
    user_id: int,
    method: PaymentMethod,
    upi_id: str | None = None,
    mobile_number: str | None = None,
    wallet_address: str | None = None,
) -> User:
    async with atomic(db, "update_payment_preferences", user_id=user_id):
        user = await get_user(db, user_id, for_update=True)
        user.preferred_payment_method = method
        user.upi_id = _clean(upi_id)
        user.mobile_number = _clean(mobile_number)
        user.wallet_address = _clean(wallet_address)
        await db.flush()
    return user
