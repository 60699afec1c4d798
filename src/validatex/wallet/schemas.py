"""Wallet Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from validatex.db.models import EntryStatus, PaymentMethod
from validatex.ledger.schemas import BalanceResponse, Money, TransactionResponse


class CashoutCreateRequest(BaseModel):
    """Cashout request body. Amount rules are enforced by the eligibility gate."""

    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    method: PaymentMethod
    upi_id: str | None = Field(None, max_length=128)
    mobile_number: str | None = Field(None, max_length=20)
    wallet_address: str | None = Field(None, max_length=128)


class CashoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: Money
    currency: str
    method: PaymentMethod
    status: EntryStatus
    upi_id: str | None = None
    mobile_number: str | None = None
    wallet_address: str | None = None
    transaction_id: int
    created_at: datetime
    processed_at: datetime | None = None


class AdminCashoutResponse(CashoutResponse):
    user_id: int


class SettleCashoutRequest(BaseModel):
    outcome: EntryStatus


class OptOutRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)


class BonusRequest(BaseModel):
    user_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: str = Field("Platform bonus", max_length=500)


class PaymentPreferencesRequest(BaseModel):
    preferred_payment_method: PaymentMethod
    upi_id: str | None = Field(None, max_length=128)
    mobile_number: str | None = Field(None, max_length=20)
    wallet_address: str | None = Field(None, max_length=128)


class PaymentPreferencesResponse(PaymentPreferencesRequest):
    preferred_payment_method: PaymentMethod | None = None


class CashoutEligibilityResponse(BaseModel):
    eligible: bool
    next_allowed_at: datetime | None = None
    remaining_days: int
    min_amount: Money


class WalletResponse(BaseModel):
    """Balances, this month's earnings, recent activity and cashout status."""

    balances: BalanceResponse
    monthly_earnings: Money
    monthly_validations: int
    payment: PaymentPreferencesResponse
    cashout: CashoutEligibilityResponse
    recent_transactions: list[TransactionResponse]
