"""ORM models for users, posts, validations and the money ledger.

Balances on ``users`` are denormalized running counters. Every write to them
happens in the same database transaction as the ledger row that explains it
(see ``validatex.ledger.store.atomic``).
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from validatex.db.base import Base, BigIntPK, Money


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(enum_cls, name=name, native_enum=False, length=24)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class UserRole(str, enum.Enum):
    SUBMITTER = "SUBMITTER"
    USER = "USER"
    ADMIN = "ADMIN"


class PaymentMethod(str, enum.Enum):
    UPI = "UPI"
    RAZORPAY = "RAZORPAY"
    PHONEPE = "PHONEPE"
    PAYTM = "PAYTM"
    POLYGON = "POLYGON"


class PostStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ValidationType(str, enum.Enum):
    NORMAL = "NORMAL"
    DETAILED = "DETAILED"


class ValidationStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class EntryType(str, enum.Enum):
    POST_PAYMENT = "POST_PAYMENT"
    VALIDATION_EARNING = "VALIDATION_EARNING"
    CASHOUT = "CASHOUT"
    BONUS = "BONUS"
    OPT_OUT = "OPT_OUT"


class EntryStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Marketplace account. Submitters pay for posts, validators earn rewards."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("available_balance >= 0", name="ck_users_available_non_negative"),
        CheckConstraint("opted_out_balance >= 0", name="ck_users_opted_out_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    role: Mapped[UserRole] = mapped_column(_enum(UserRole, "user_role"), nullable=False, default=UserRole.USER)
    reputation_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_validations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_ideas_submitted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Balance counters ---
    total_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    available_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    opted_out_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    last_cashout_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # --- Payment destination ---
    preferred_payment_method: Mapped[PaymentMethod | None] = mapped_column(
        _enum(PaymentMethod, "payment_method"), nullable=True
    )
    upi_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    mobile_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)


class Post(Base):
    """A submission paid for by its author and reviewed by validators."""

    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("current_normal_count <= normal_validator_count", name="ck_posts_normal_quota"),
        CheckConstraint("current_detailed_count <= detailed_validator_count", name="ck_posts_detailed_quota"),
        Index("ix_posts_author_id", "author_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[PostStatus] = mapped_column(_enum(PostStatus, "post_status"), nullable=False, default=PostStatus.OPEN)

    normal_reward: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    detailed_reward: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    normal_validator_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    detailed_validator_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_normal_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_detailed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # What the author actually paid, and the fee retained from it.
    budget_paid: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    platform_fee: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    detailed_approval_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    category: Mapped[Category] = relationship("Category", lazy="joined", innerjoin=True)


class Validation(Base):
    """One review of a post by one validator."""

    __tablename__ = "validations"
    __table_args__ = (
        UniqueConstraint("post_id", "validator_id", name="uq_validations_post_validator"),
        Index("ix_validations_validator_id", "validator_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    validator_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[ValidationType] = mapped_column(_enum(ValidationType, "validation_type"), nullable=False)
    status: Mapped[ValidationStatus] = mapped_column(
        _enum(ValidationStatus, "validation_status"), nullable=False, default=ValidationStatus.PENDING
    )
    vote: Mapped[str | None] = mapped_column(String(16), nullable=True)
    short_comment: Mapped[str | None] = mapped_column(String(500), nullable=True)
    detailed_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reward_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approval_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class Transaction(Base):
    """Immutable ledger entry. Only ``status`` (and ``updated_at``) ever change."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_user_created", "user_id", "created_at"),
        Index("ix_transactions_post_id", "post_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    post_id: Mapped[int | None] = mapped_column(ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    validation_id: Mapped[int | None] = mapped_column(
        ForeignKey("validations.id", ondelete="SET NULL"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    type: Mapped[EntryType] = mapped_column(_enum(EntryType, "entry_type"), nullable=False)
    status: Mapped[EntryStatus] = mapped_column(
        _enum(EntryStatus, "entry_status"), nullable=False, default=EntryStatus.COMPLETED
    )
    method: Mapped[PaymentMethod | None] = mapped_column(_enum(PaymentMethod, "payment_method"), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class CashoutRequest(Base):
    """Withdrawal request awaiting settlement by the payout operator."""

    __tablename__ = "cashout_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_cashout_requests_amount_positive"),
        Index("ix_cashout_requests_user_id", "user_id"),
        Index("ix_cashout_requests_status", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id"), nullable=False, unique=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod, "payment_method"), nullable=False)
    upi_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    mobile_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[EntryStatus] = mapped_column(
        _enum(EntryStatus, "cashout_status"), nullable=False, default=EntryStatus.PENDING
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
