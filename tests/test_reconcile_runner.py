"""Standalone reconciliation runner."""

from decimal import Decimal

import pytest
from sqlalchemy import update

from validatex.db.models import PaymentMethod, User, UserRole, ValidationType
from validatex.validations.service import ValidationDraft, submit_validation
from validatex.wallet.cashout import CashoutCommand, request_cashout
from validatex.workers.reconcile_runner import reconcile_once


@pytest.mark.asyncio
async def test_clean_ledger(db_session, make_user, make_post) -> None:
    author = await make_user(role=UserRole.SUBMITTER)
    validator = await make_user(balance="200")
    post = await make_post(author)
    await submit_validation(db_session, validator.id, ValidationDraft(post_id=post.id, type=ValidationType.NORMAL))
    await request_cashout(
        db_session,
        validator.id,
        CashoutCommand(amount=Decimal("150"), method=PaymentMethod.UPI, upi_id="v@okbank"),
    )

    assert await reconcile_once() == []


@pytest.mark.asyncio
async def test_reports_drift(db_session, make_user) -> None:
    user = await make_user(balance="100")
    await db_session.execute(update(User).where(User.id == user.id).values(available_balance=Decimal("90")))
    await db_session.commit()

    mismatches = await reconcile_once(user.id)

    assert [(m.field, m.stored, m.expected) for m in mismatches] == [
        ("available_balance", Decimal("90.00"), Decimal("100.00"))
    ]
