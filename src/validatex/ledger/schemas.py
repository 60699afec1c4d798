"""Ledger Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer

from validatex.db.models import EntryStatus, EntryType, PaymentMethod

# Stored as fixed-point, sent over the wire as a JSON number.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class TransactionResponse(BaseModel):
    """Single ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    post_id: int | None = None
    validation_id: int | None = None
    amount: Money
    currency: str
    type: EntryType
    status: EntryStatus
    method: PaymentMethod | None = None
    description: str
    created_at: datetime


class TransactionSummary(BaseModel):
    total_earnings: Money
    total_cashouts: Money
    total_spent: Money
    total_transactions: int


class TransactionHistoryResponse(BaseModel):
    """Paginated ledger history, newest first."""

    transactions: list[TransactionResponse]
    total: int
    page: int
    per_page: int
    summary: TransactionSummary


class BalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: Money
    available: Money
    opted_out: Money
    currency: str


class BalanceMismatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    field: str
    stored: Money
    expected: Money


class ReconciliationResponse(BaseModel):
    consistent: bool
    mismatches: list[BalanceMismatchResponse]
