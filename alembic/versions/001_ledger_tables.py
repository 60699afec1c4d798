"""Users, posts, validations and the money ledger.

Creates users (with balance counters and payment destination), categories,
posts, validations, transactions (ledger entries) and cashout_requests.

Revision ID: 001_ledger_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_ledger_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

MONEY = sa.Numeric(12, 2)
ENUM = sa.String(24)


def upgrade() -> None:
    """Create ledger schema."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("role", ENUM, nullable=False, server_default="USER"),
        sa.Column("reputation_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_validations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_ideas_submitted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("available_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("opted_out_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("last_cashout_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("preferred_payment_method", ENUM, nullable=True),
        sa.Column("upi_id", sa.String(128), nullable=True),
        sa.Column("mobile_number", sa.String(20), nullable=True),
        sa.Column("wallet_address", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("available_balance >= 0", name="ck_users_available_non_negative"),
        sa.CheckConstraint("opted_out_balance >= 0", name="ck_users_opted_out_non_negative"),
    )

    # --- categories ---
    op.create_table(
        "categories",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
        sa.Column("icon", sa.String(16), nullable=True),
    )

    # --- posts ---
    op.create_table(
        "posts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category_id", sa.BigInteger(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", ENUM, nullable=False, server_default="OPEN"),
        sa.Column("normal_reward", MONEY, nullable=False, server_default="0"),
        sa.Column("detailed_reward", MONEY, nullable=False, server_default="0"),
        sa.Column("normal_validator_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("detailed_validator_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_normal_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_detailed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("budget_paid", MONEY, nullable=False, server_default="0"),
        sa.Column("platform_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("detailed_approval_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("current_normal_count <= normal_validator_count", name="ck_posts_normal_quota"),
        sa.CheckConstraint("current_detailed_count <= detailed_validator_count", name="ck_posts_detailed_quota"),
    )
    op.create_index("ix_posts_author_id", "posts", ["author_id"])

    # --- validations ---
    op.create_table(
        "validations",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("post_id", sa.BigInteger(), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("validator_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", ENUM, nullable=False),
        sa.Column("status", ENUM, nullable=False, server_default="PENDING"),
        sa.Column("vote", sa.String(16), nullable=True),
        sa.Column("short_comment", sa.String(500), nullable=True),
        sa.Column("detailed_feedback", sa.Text(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("reward_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approval_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("post_id", "validator_id", name="uq_validations_post_validator"),
    )
    op.create_index("ix_validations_validator_id", "validations", ["validator_id"])

    # --- transactions (ledger) ---
    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("post_id", sa.BigInteger(), sa.ForeignKey("posts.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "validation_id",
            sa.BigInteger(),
            sa.ForeignKey("validations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("type", ENUM, nullable=False),
        sa.Column("status", ENUM, nullable=False, server_default="COMPLETED"),
        sa.Column("method", ENUM, nullable=True),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_user_created", "transactions", ["user_id", "created_at"])
    op.create_index("ix_transactions_post_id", "transactions", ["post_id"])

    # --- cashout_requests ---
    op.create_table(
        "cashout_requests",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "transaction_id",
            sa.BigInteger(),
            sa.ForeignKey("transactions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("method", ENUM, nullable=False),
        sa.Column("upi_id", sa.String(128), nullable=True),
        sa.Column("mobile_number", sa.String(20), nullable=True),
        sa.Column("wallet_address", sa.String(128), nullable=True),
        sa.Column("status", ENUM, nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_cashout_requests_amount_positive"),
    )
    op.create_index("ix_cashout_requests_user_id", "cashout_requests", ["user_id"])
    op.create_index("ix_cashout_requests_status", "cashout_requests", ["status"])


def downgrade() -> None:
    """Drop ledger schema."""
    op.drop_table("cashout_requests")
    op.drop_table("transactions")
    op.drop_table("validations")
    op.drop_table("posts")
    op.drop_table("categories")
    op.drop_table("users")
