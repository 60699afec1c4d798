"""Wallet endpoints: balances, history, opt-out, cashouts and settlement."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.auth.dependencies import get_current_user, require_admin
from validatex.config import get_settings
from validatex.database import get_session
from validatex.db.models import EntryType, User
from validatex.ledger.balances import (
    get_balances,
    get_monthly_earnings,
    grant_bonus,
    opt_out_balance,
    reconcile_balances,
)
from validatex.ledger.schemas import (
    BalanceMismatchResponse,
    BalanceResponse,
    ReconciliationResponse,
    TransactionHistoryResponse,
    TransactionResponse,
    TransactionSummary,
)
from validatex.ledger.store import list_transactions, transaction_summary
from validatex.timeutils import start_of_month
from validatex.wallet.cashout import (
    CashoutCommand,
    cashout_status,
    list_cashouts,
    list_pending_cashouts,
    request_cashout,
    settle_cashout,
    update_payment_preferences,
)
from validatex.wallet.schemas import (
    AdminCashoutResponse,
    BonusRequest,
    CashoutCreateRequest,
    CashoutEligibilityResponse,
    CashoutResponse,
    OptOutRequest,
    PaymentPreferencesRequest,
    PaymentPreferencesResponse,
    SettleCashoutRequest,
    WalletResponse,
)

router = APIRouter(prefix="/api/v1/wallet", tags=["Wallet"])


def _payment_response(user: User) -> PaymentPreferencesResponse:
    return PaymentPreferencesResponse(
        preferred_payment_method=user.preferred_payment_method,
        upi_id=user.upi_id,
        mobile_number=user.mobile_number,
        wallet_address=user.wallet_address,
    )


# ---------------------------------------------------------------------------
# Balances & history
# ---------------------------------------------------------------------------


@router.get("", response_model=WalletResponse)
async def wallet_overview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WalletResponse:
    """Balances, this month's earnings, recent entries and cashout eligibility."""
    settings = get_settings()
    now = datetime.now(timezone.utc)

    balances = await get_balances(db, user.id)
    monthly_total, monthly_count = await get_monthly_earnings(db, user.id, start_of_month(now), now)
    recent, _ = await list_transactions(db, user.id, page=1, per_page=settings.recent_transactions_limit)
    status = cashout_status(user.last_cashout_at, now, settings.cashout_cooldown_days)

    return WalletResponse(
        balances=BalanceResponse.model_validate(balances),
        monthly_earnings=monthly_total,
        monthly_validations=monthly_count,
        payment=_payment_response(user),
        cashout=CashoutEligibilityResponse(
            eligible=status.eligible,
            next_allowed_at=status.next_allowed_at,
            remaining_days=status.remaining_days,
            min_amount=settings.min_cashout_amount,
        ),
        recent_transactions=[TransactionResponse.model_validate(t) for t in recent],
    )


@router.get("/balances", response_model=BalanceResponse)
async def wallet_balances(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    return BalanceResponse.model_validate(await get_balances(db, user.id))


@router.get("/transactions", response_model=TransactionHistoryResponse)
async def transaction_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=50),
    type: EntryType | None = Query(None),  # noqa: A002
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TransactionHistoryResponse:
    """Paginated ledger history, newest first, with per-type totals."""
    items, total = await list_transactions(db, user.id, page, per_page, type)
    summary = await transaction_summary(db, user.id)
    return TransactionHistoryResponse(
        transactions=[TransactionResponse.model_validate(t) for t in items],
        total=total,
        page=page,
        per_page=per_page,
        summary=TransactionSummary(**summary),
    )


@router.put("/payment-preferences", response_model=PaymentPreferencesResponse)
async def set_payment_preferences(
    body: PaymentPreferencesRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PaymentPreferencesResponse:
    updated = await update_payment_preferences(
        db, user.id, body.preferred_payment_method, body.upi_id, body.mobile_number, body.wallet_address
    )
    return _payment_response(updated)


@router.post("/opt-out", response_model=BalanceResponse)
async def opt_out(
    body: OptOutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    """Set part of the available balance aside."""
    return BalanceResponse.model_validate(await opt_out_balance(db, user.id, body.amount))


# ---------------------------------------------------------------------------
# Cashouts
# ---------------------------------------------------------------------------


@router.post("/cashouts", response_model=CashoutResponse, status_code=201)
async def create_cashout(
    body: CashoutCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CashoutResponse:
    """Request a withdrawal. Funds are reserved until the payout is settled."""
    command = CashoutCommand(
        amount=body.amount,
        method=body.method,
        upi_id=body.upi_id,
        mobile_number=body.mobile_number,
        wallet_address=body.wallet_address,
    )
    request = await request_cashout(db, user.id, command)
    return CashoutResponse.model_validate(request)


@router.get("/cashouts", response_model=list[CashoutResponse])
async def my_cashouts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[CashoutResponse]:
    return [CashoutResponse.model_validate(c) for c in await list_cashouts(db, user.id)]


@router.get("/cashouts/pending", response_model=list[AdminCashoutResponse])
async def pending_cashouts(
    limit: int = Query(100, ge=1, le=500),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AdminCashoutResponse]:
    """Payout queue, oldest first (admin only)."""
    return [AdminCashoutResponse.model_validate(c) for c in await list_pending_cashouts(db, limit)]


@router.post("/cashouts/{cashout_id}/settle", response_model=AdminCashoutResponse)
async def settle(
    cashout_id: int,
    body: SettleCashoutRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminCashoutResponse:
    """Mark a pending payout COMPLETED or FAILED (admin only)."""
    request = await settle_cashout(db, cashout_id, body.outcome)
    return AdminCashoutResponse.model_validate(request)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.post("/bonuses", response_model=TransactionResponse, status_code=201)
async def create_bonus(
    body: BonusRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> TransactionResponse:
    entry = await grant_bonus(db, body.user_id, body.amount, body.description)
    return TransactionResponse.model_validate(entry)


@router.get("/reconciliation", response_model=ReconciliationResponse)
async def reconciliation(
    user_id: int | None = Query(None),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ReconciliationResponse:
    """Compare stored balance counters with the ledger (admin only)."""
    mismatches = await reconcile_balances(db, user_id)
    return ReconciliationResponse(
        consistent=not mismatches,
        mismatches=[BalanceMismatchResponse.model_validate(m) for m in mismatches],
    )
