"""Submitter and validator dashboards."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.dashboard.service import get_submitter_dashboard, get_validator_dashboard
from validatex.db.models import UserRole, ValidationType
from validatex.posts.service import close_post
from validatex.timeutils import ensure_utc
from validatex.validations.service import ValidationDraft, submit_validation


def review(post_id: int, kind: ValidationType = ValidationType.NORMAL) -> ValidationDraft:
    return ValidationDraft(post_id=post_id, type=kind, vote="LIKE", detailed_feedback="Solid", rating=4)


class TestSubmitterDashboard:
    @pytest.mark.asyncio
    async def test_posts_counts_and_spend(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        first, second = await make_user(), await make_user()
        busy = await make_post(author, title="Busy")
        await make_post(author, title="Quiet")
        now = datetime.now(timezone.utc)
        await submit_validation(db_session, first.id, review(busy.id), now=now - timedelta(hours=2))
        await submit_validation(db_session, second.id, review(busy.id, ValidationType.DETAILED), now=now)

        data = await get_submitter_dashboard(db_session, author.id)

        assert data["user"]["role"] == "SUBMITTER"
        assert data["user"]["total_ideas_submitted"] == 2
        assert [p["title"] for p in data["posts"]] == ["Quiet", "Busy"]
        assert data["posts"][1]["validation_count"] == 2
        assert data["posts"][1]["total_budget"] == Decimal("900.00")

        analytics = data["analytics"]
        assert analytics["total_posts"] == 2
        assert analytics["total_validations"] == 2
        assert analytics["avg_validations_per_post"] == 1
        assert analytics["total_spent"] == Decimal("2000.00")
        assert analytics["to_validators"] == Decimal("1800.00")
        assert analytics["platform_fees"] == Decimal("200.00")
        assert analytics["earnings_chart"] == []

        recent = data["recent_validations"]
        assert [r["type"] for r in recent] == ["DETAILED", "NORMAL"]
        assert recent[0]["status"] == "PENDING"
        assert recent[0]["rating"] == 4
        assert recent[0]["validator_name"] == second.name

    @pytest.mark.asyncio
    async def test_average_rounds_half_up(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        await make_post(author)
        await submit_validation(db_session, validator.id, review(post.id))

        data = await get_submitter_dashboard(db_session, author.id)

        assert data["analytics"]["avg_validations_per_post"] == 1

    @pytest.mark.asyncio
    async def test_new_submitter(self, db_session: AsyncSession, make_user) -> None:
        author = await make_user(role=UserRole.SUBMITTER)

        data = await get_submitter_dashboard(db_session, author.id)

        assert data["posts"] == []
        assert data["analytics"]["avg_validations_per_post"] == 0
        assert data["analytics"]["total_spent"] == Decimal("0.00")
        assert data["recent_validations"] == []


class TestValidatorDashboard:
    @pytest.mark.asyncio
    async def test_history_rate_and_streak(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user(balance="10")
        older = await make_post(author, title="Older")
        newer = await make_post(author, title="Newer")
        now = datetime.now(timezone.utc)
        await submit_validation(db_session, validator.id, review(older.id), now=now - timedelta(days=1))
        await submit_validation(db_session, validator.id, review(newer.id, ValidationType.DETAILED), now=now)

        data = await get_validator_dashboard(db_session, validator.id, now=now)

        assert [v["post_title"] for v in data["validations"]] == ["Newer", "Older"]
        assert data["validations"][0]["post_category"] == "Technology"
        assert data["validations"][0]["author_name"] == author.name
        assert data["validations"][1]["reward_amount"] == Decimal("54.00")

        analytics = data["analytics"]
        assert analytics["total_validations"] == 2
        assert analytics["approved_validations"] == 1
        assert analytics["pending_validations"] == 1
        assert analytics["rejected_validations"] == 0
        assert analytics["approval_rate"] == 50
        assert analytics["validation_streak"] == 2

        # the opening bonus is not a review earning
        [bucket] = analytics["earnings_chart"]
        assert bucket["key"] == (ensure_utc(now) - timedelta(days=1)).date().isoformat()
        assert bucket["amount"] == Decimal("54.00")

    @pytest.mark.asyncio
    async def test_streak_breaks_without_a_review_today(
        self, db_session: AsyncSession, make_user, make_post
    ) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user()
        post = await make_post(author)
        now = datetime.now(timezone.utc)
        await submit_validation(db_session, validator.id, review(post.id), now=now)

        data = await get_validator_dashboard(db_session, validator.id, now=now + timedelta(days=1))

        assert data["analytics"]["validation_streak"] == 0

    @pytest.mark.asyncio
    async def test_available_posts(self, db_session: AsyncSession, make_user, make_post) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user(role=UserRole.SUBMITTER)
        reviewed = await make_post(author, title="Reviewed")
        closed = await make_post(author, title="Closed")
        await make_post(author, title="Expiring", expiry_days=1)
        await make_post(validator, title="Mine")
        open_one = await make_post(author, title="Open")
        await submit_validation(db_session, validator.id, review(reviewed.id))
        await close_post(db_session, author.id, closed.id)
        other = await make_user()
        await submit_validation(db_session, other.id, review(open_one.id))

        data = await get_validator_dashboard(
            db_session, validator.id, now=datetime.now(timezone.utc) + timedelta(days=2)
        )

        [post] = data["available_posts"]
        assert post["title"] == "Open"
        assert post["author_name"] == author.name
        assert post["validation_count"] == 1
        assert post["normal_reward"] == Decimal("54.00")

    @pytest.mark.asyncio
    async def test_new_validator(self, db_session: AsyncSession, make_user) -> None:
        validator = await make_user()

        data = await get_validator_dashboard(db_session, validator.id)

        assert data["validations"] == []
        assert data["available_posts"] == []
        assert data["analytics"]["approval_rate"] == 0
        assert data["analytics"]["validation_streak"] == 0


class TestDashboardApi:
    @pytest.mark.asyncio
    async def test_submitter_view_requires_submitter(self, client: AsyncClient, make_user, auth_headers) -> None:
        user = await make_user()
        response = await client.get("/api/v1/dashboard/submitter", headers=auth_headers(user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/dashboard/validator")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_both_views_over_http(
        self, client: AsyncClient, db_session: AsyncSession, make_user, make_post, auth_headers
    ) -> None:
        author = await make_user(role=UserRole.SUBMITTER)
        validator = await make_user(balance="10")
        post = await make_post(author)
        await submit_validation(db_session, validator.id, review(post.id))

        submitter = await client.get("/api/v1/dashboard/submitter", headers=auth_headers(author))
        assert submitter.status_code == 200
        body = submitter.json()
        assert body["analytics"]["total_spent"] == 1000.0
        assert body["posts"][0]["normal_reward"] == 54.0
        assert body["recent_validations"][0]["status"] == "COMPLETED"

        reviewer = await client.get("/api/v1/dashboard/validator", headers=auth_headers(validator))
        assert reviewer.status_code == 200
        body = reviewer.json()
        assert body["user"]["available_balance"] == 64.0
        assert body["analytics"]["validation_streak"] == 1
        assert body["analytics"]["earnings_chart"][0]["amount"] == 54.0
        assert body["validations"][0]["reward_amount"] == 54.0
