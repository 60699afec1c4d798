"""Consecutive-day review streak."""

from __future__ import annotations

from datetime import date, timedelta

from validatex.dashboard.service import validation_streak

TODAY = date(2026, 6, 10)


def _days(*offsets: int) -> list[date]:
    return [TODAY - timedelta(days=o) for o in offsets]


class TestValidationStreak:
    def test_no_reviews(self):
        assert validation_streak([], TODAY) == 0

    def test_today_only(self):
        assert validation_streak(_days(0), TODAY) == 1

    def test_consecutive_days(self):
        assert validation_streak(_days(0, 1, 2, 3), TODAY) == 4

    def test_gap_ends_the_streak(self):
        assert validation_streak(_days(0, 1, 3, 4), TODAY) == 2

    def test_nothing_today_means_no_streak(self):
        assert validation_streak(_days(1, 2, 3), TODAY) == 0

    def test_repeated_days_count_once(self):
        assert validation_streak(_days(0, 0, 1, 1, 1), TODAY) == 2

    def test_crosses_month_boundary(self):
        days = [date(2026, 7, 1), date(2026, 6, 30), date(2026, 6, 29)]
        assert validation_streak(days, date(2026, 7, 1)) == 3
