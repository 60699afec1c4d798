"""Post payment, validation rewards and author decisions."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.db.models import EntryType, PostStatus, UserRole, ValidationStatus, ValidationType
from validatex.errors import NotFoundError, PermissionDenied, ValidationFailure
from validatex.ledger.balances import get_balances, reconcile_balances
from validatex.ledger.store import get_user, list_transactions, transaction_summary
from validatex.posts.service import PostDraft, close_post, create_post, get_post
from validatex.timeutils import ensure_utc
from validatex.validations import service
from validatex.validations.service import (
    ValidationDraft,
    approve_validation,
    list_pending_for_author,
    reject_validation,
    submit_validation,
)


def normal(post_id: int, vote: str = "LIKE") -> ValidationDraft:
    return ValidationDraft(post_id=post_id, type=ValidationType.NORMAL, vote=vote, short_comment="Looks good")


def detailed(post_id: int) -> ValidationDraft:
    return ValidationDraft(
        post_id=post_id,
        type=ValidationType.DETAILED,
        vote="LIKE",
        detailed_feedback="Market is crowded but the angle is new.",
        rating=4,
    )


class TestCreatePost:
    @pytest.mark.asyncio
    async def test_records_payment_and_rewards(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        post = await make_post(author)

        assert post.status == PostStatus.OPEN
        assert post.platform_fee == Decimal("100.00")
        assert post.normal_reward == Decimal("54.00")
        assert post.detailed_reward == Decimal("72.00")
        assert post.budget_paid == Decimal("1000.00")

        entries, total = await list_transactions(db_session, author.id, entry_type=EntryType.POST_PAYMENT)
        assert total == 1
        assert entries[0].amount == Decimal("1000.00")
        assert entries[0].post_id == post.id

        summary = await transaction_summary(db_session, author.id)
        assert summary["total_spent"] == Decimal("1000.00")

        refreshed = await get_user(db_session, author.id)
        assert refreshed.total_ideas_submitted == 1

    @pytest.mark.asyncio
    async def test_payment_leaves_balances_untouched(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER, balance="50")
        await make_post(author)

        balances = await get_balances(db_session, author.id)
        assert balances.total == Decimal("50.00")
        assert balances.available == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_budget_too_small(self, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        with pytest.raises(ValidationFailure, match="Budget is too small"):
            await make_post(author, total_budget="1", normal=100, detailed=0)

    @pytest.mark.asyncio
    async def test_budget_in_fractions_of_a_cent(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        with pytest.raises(ValidationFailure, match="more than 2 decimal places"):
            await make_post(author, total_budget="1000.005")
        _, total = await list_transactions(db_session, author.id)
        assert total == 0

    @pytest.mark.asyncio
    async def test_requires_validators(self, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        with pytest.raises(ValidationFailure, match="At least one validator"):
            await make_post(author, normal=0, detailed=0)

    @pytest.mark.asyncio
    async def test_unknown_category(self, db_session: AsyncSession, make_user) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        draft = PostDraft(
            title="Orphan",
            category_id=999,
            total_budget=Decimal("100"),
            normal_validator_count=1,
            detailed_validator_count=0,
        )
        with pytest.raises(NotFoundError):
            await create_post(db_session, author.id, draft)

        _, total = await list_transactions(db_session, author.id)
        assert total == 0


class TestNormalValidation:
    @pytest.mark.asyncio
    async def test_paid_on_submit(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)

        validation = await submit_validation(db_session, validator.id, normal(post.id))

        assert validation.status == ValidationStatus.COMPLETED
        assert validation.is_paid is True
        assert validation.reward_amount == Decimal("54.00")

        balances = await get_balances(db_session, validator.id)
        assert balances.total == Decimal("54.00")
        assert balances.available == Decimal("54.00")

        refreshed = await get_user(db_session, validator.id)
        assert refreshed.reputation_score == 1
        assert refreshed.total_validations == 1

        entries, _ = await list_transactions(db_session, validator.id)
        assert entries[0].type == EntryType.VALIDATION_EARNING
        assert entries[0].validation_id == validation.id

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        await submit_validation(db_session, validator.id, normal(post.id))

        with pytest.raises(ValidationFailure, match="already validated"):
            await submit_validation(db_session, validator.id, detailed(post.id))

        balances = await get_balances(db_session, validator.id)
        assert balances.total == Decimal("54.00")

    @pytest.mark.asyncio
    async def test_duplicate_caught_by_constraint(
        self, db_session: AsyncSession, make_user, make_post, monkeypatch
    ) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        await submit_validation(db_session, validator.id, normal(post.id))

        async def not_seen(*_args) -> bool:
            return False

        # a concurrent submit that passed the lookup before the first one committed
        monkeypatch.setattr(service, "_already_validated", not_seen)
        with pytest.raises(ValidationFailure, match="already validated"):
            await submit_validation(db_session, validator.id, normal(post.id))

        assert (await get_post(db_session, post.id)).current_normal_count == 1
        _, total = await list_transactions(db_session, validator.id, entry_type=EntryType.VALIDATION_EARNING)
        assert total == 1

    @pytest.mark.asyncio
    async def test_earning_stamped_with_submit_time(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        when = post.created_at + timedelta(hours=3)

        validation = await submit_validation(db_session, validator.id, normal(post.id), now=when)

        entries, _ = await list_transactions(db_session, validator.id, entry_type=EntryType.VALIDATION_EARNING)
        assert ensure_utc(entries[0].created_at) == ensure_utc(when)
        assert ensure_utc(validation.created_at) == ensure_utc(when)

    @pytest.mark.asyncio
    async def test_own_post_rejected(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        post = await make_post(author)
        with pytest.raises(ValidationFailure, match="your own post"):
            await submit_validation(db_session, author.id, normal(post.id))

    @pytest.mark.asyncio
    async def test_quota_then_closed(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        first, second, third = await make_user(), await make_user(), await make_user()
        post = await make_post(author, total_budget="100", normal=1, detailed=1, detailed_approval_required=False)
        assert post.detailed_reward == Decimal("36.00")

        await submit_validation(db_session, first.id, normal(post.id))
        with pytest.raises(ValidationFailure, match="Validation limit reached for this type"):
            await submit_validation(db_session, second.id, normal(post.id))

        await submit_validation(db_session, second.id, detailed(post.id))
        assert (await get_post(db_session, post.id)).status == PostStatus.CLOSED

        with pytest.raises(ValidationFailure, match="no longer accepting"):
            await submit_validation(db_session, third.id, normal(post.id))

    @pytest.mark.asyncio
    async def test_expired_post(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author, expiry_days=7)

        with pytest.raises(ValidationFailure, match="no longer accepting"):
            await submit_validation(
                db_session, validator.id, normal(post.id), now=post.created_at + timedelta(days=8)
            )

    @pytest.mark.asyncio
    async def test_closed_by_author(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        other = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)

        with pytest.raises(PermissionDenied):
            await close_post(db_session, other.id, post.id)
        await close_post(db_session, author.id, post.id)

        with pytest.raises(ValidationFailure, match="no longer accepting"):
            await submit_validation(db_session, validator.id, normal(post.id))


class TestDetailedValidation:
    @pytest.mark.asyncio
    async def test_pending_until_approved(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)

        validation = await submit_validation(db_session, validator.id, detailed(post.id))
        assert validation.status == ValidationStatus.PENDING
        assert validation.is_paid is False
        assert (await get_balances(db_session, validator.id)).available == Decimal("0.00")

        pending = await list_pending_for_author(db_session, author.id)
        assert [v.id for v in pending] == [validation.id]

        approved = await approve_validation(db_session, author.id, validation.id, "Thorough")
        assert approved.status == ValidationStatus.APPROVED
        assert approved.is_paid is True
        assert approved.approval_reason == "Thorough"

        balances = await get_balances(db_session, validator.id)
        assert balances.total == Decimal("72.00")
        assert balances.available == Decimal("72.00")
        assert (await get_user(db_session, validator.id)).reputation_score == 5
        assert await list_pending_for_author(db_session, author.id) == []

    @pytest.mark.asyncio
    async def test_approve_twice(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        validation = await submit_validation(db_session, validator.id, detailed(post.id))
        await approve_validation(db_session, author.id, validation.id)

        with pytest.raises(ValidationFailure, match="already APPROVED"):
            await approve_validation(db_session, author.id, validation.id)

        assert (await get_balances(db_session, validator.id)).total == Decimal("72.00")

    @pytest.mark.asyncio
    async def test_reject(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user(reputation=10)
        post = await make_post(author)
        validation = await submit_validation(db_session, validator.id, detailed(post.id))

        rejected = await reject_validation(db_session, author.id, validation.id, "Off topic")

        assert rejected.status == ValidationStatus.REJECTED
        assert rejected.is_paid is False
        refreshed = await get_user(db_session, validator.id)
        assert refreshed.reputation_score == 8
        assert (await get_balances(db_session, validator.id)).total == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_only_author_decides(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        validation = await submit_validation(db_session, validator.id, detailed(post.id))

        with pytest.raises(PermissionDenied):
            await approve_validation(db_session, validator.id, validation.id)
        with pytest.raises(NotFoundError):
            await reject_validation(db_session, author.id, 999, "Missing")

    @pytest.mark.asyncio
    async def test_approval_waived(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author, detailed_approval_required=False)

        validation = await submit_validation(db_session, validator.id, detailed(post.id))

        assert validation.status == ValidationStatus.COMPLETED
        assert validation.is_paid is True
        assert (await get_balances(db_session, validator.id)).available == Decimal("72.00")
        assert (await get_user(db_session, validator.id)).reputation_score == 5


@pytest.mark.asyncio
async def test_ledger_reconciles_after_reviews(db_session: AsyncSession, make_user, make_post) -> None:
    author = await make_user(role=UserRole.SUBMITTER, balance="20")
    reviewers = [await make_user() for _ in range(3)]
    post = await make_post(author)

    await submit_validation(db_session, reviewers[0].id, normal(post.id))
    pending = await submit_validation(db_session, reviewers[1].id, detailed(post.id))
    rejected = await submit_validation(db_session, reviewers[2].id, detailed(post.id))
    await approve_validation(db_session, author.id, pending.id)
    await reject_validation(db_session, author.id, rejected.id, "Too short")

    assert await reconcile_balances(db_session) == []


class TestPostAndValidationApi:
    @pytest.mark.asyncio
    async def test_create_post_requires_submitter(
        self, client: AsyncClient, make_user, category, auth_headers
    ) -> None:
        user = await make_user()
        payload = {
            "title": "Solar kiosks",
            "category_id": category.id,
            "total_budget": 1000,
            "normal_validator_count": 10,
            "detailed_validator_count": 5,
        }
        response = await client.post("/api/v1/posts", json=payload, headers=auth_headers(user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_and_validate(self, client: AsyncClient, make_user, category, auth_headers) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        payload = {
            "title": "Solar kiosks",
            "category_id": category.id,
            "total_budget": "1000.00",
            "normal_validator_count": 10,
            "detailed_validator_count": 5,
        }
        created = await client.post("/api/v1/posts", json=payload, headers=auth_headers(author))
        assert created.status_code == 201
        post = created.json()
        assert post["normal_reward"] == 54.0
        assert post["detailed_reward"] == 72.0
        assert post["platform_fee"] == 100.0
        assert post["total_budget"] == 900.0

        review = await client.post(
            "/api/v1/validations",
            json={"post_id": post["id"], "type": "NORMAL", "vote": "LIKE"},
            headers=auth_headers(validator),
        )
        assert review.status_code == 201
        assert review.json()["is_paid"] is True
        assert review.json()["reward_amount"] == 54.0

        duplicate = await client.post(
            "/api/v1/validations",
            json={"post_id": post["id"], "type": "NORMAL", "vote": "LIKE"},
            headers=auth_headers(validator),
        )
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"] == "You have already validated this post"

        wallet = await client.get("/api/v1/wallet/balances", headers=auth_headers(validator))
        assert wallet.json()["available"] == 54.0

    @pytest.mark.asyncio
    async def test_invalid_vote(self, client: AsyncClient, make_user, make_post, auth_headers) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        response = await client.post(
            "/api/v1/validations",
            json={"post_id": post.id, "type": "NORMAL", "vote": "MAYBE"},
            headers=auth_headers(validator),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_approval_over_http(self, client: AsyncClient, make_user, make_post, auth_headers) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)

        review = await client.post(
            "/api/v1/validations",
            json={"post_id": post.id, "type": "DETAILED", "detailed_feedback": "Solid", "rating": 5},
            headers=auth_headers(validator),
        )
        assert review.json()["status"] == "PENDING"
        validation_id = review.json()["id"]

        pending = await client.get("/api/v1/validations/pending", headers=auth_headers(author))
        assert [v["id"] for v in pending.json()] == [validation_id]

        forbidden = await client.post(
            f"/api/v1/validations/{validation_id}/approve", json={}, headers=auth_headers(validator)
        )
        assert forbidden.status_code == 403

        approved = await client.post(
            f"/api/v1/validations/{validation_id}/approve", json={"reason": "Great"}, headers=auth_headers(author)
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"

        again = await client.post(
            f"/api/v1/validations/{validation_id}/reject", json={"reason": "Late"}, headers=auth_headers(author)
        )
        assert again.status_code == 400

    @pytest.mark.asyncio
    async def test_close_post(self, client: AsyncClient, make_user, make_post, auth_headers) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        other = await make_user(role=UserRole.SUBMITTER)
        post = await make_post(author)

        denied = await client.post(f"/api/v1/posts/{post.id}/close", headers=auth_headers(other))
        assert denied.status_code == 403

        closed = await client.post(f"/api/v1/posts/{post.id}/close", headers=auth_headers(author))
        assert closed.status_code == 200
        assert closed.json()["status"] == "CLOSED"
