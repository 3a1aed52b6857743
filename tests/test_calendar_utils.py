"""
Unit tests for training-year months and Monday-anchored weeks.
"""

import pytest
from datetime import date
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.calendar_utils import (
    current_training_year, default_training_years, find_month, format_week_label,
    month_key, months_for_training_year, parse_iso, week_for_scope, weeks_for_month
)
from domain.hour_rates import hours_for


class TestTrainingYear:
    """Tests for training-year helpers."""

    def test_current_year_from_september(self):
        assert current_training_year(date(2024, 9, 1)) == "2024-2025"

    def test_current_year_before_september(self):
        assert current_training_year(date(2025, 8, 31)) == "2024-2025"

    def test_default_years_newest_first(self):
        years = default_training_years(date(2024, 10, 1))
        assert years == ["2024-2025", "2023-2024", "2022-2023", "2021-2022", "2020-2021"]


class TestMonths:
    """Tests for months_for_training_year."""

    def test_september_to_july(self):
        months = months_for_training_year("2024-2025")

        assert len(months) == 11
        assert months[0].value == "2024-09"
        assert months[0].label == "Septembre 2024"
        assert months[3].value == "2024-12"
        assert months[4].value == "2025-01"
        assert months[-1].value == "2025-07"
        assert months[-1].label == "Juillet 2025"

    def test_find_month(self):
        assert find_month("2024-2025", "2025-02").label == "Février 2025"
        assert find_month("2024-2025", "2025-08") is None


class TestWeeks:
    """Tests for weeks_for_month / week_for_scope."""

    def test_weeks_start_on_monday_of_month(self):
        weeks = weeks_for_month("2024-09")

        # Mondays: 2, 9, 16, 23, 30
        assert len(weeks) == 5
        assert all(week[0].weekday() == 0 for week in weeks)
        assert all(len(week) == 6 for week in weeks)

    def test_last_week_overflows_into_next_month(self):
        weeks = weeks_for_month("2024-09")
        assert weeks[-1][0] == date(2024, 9, 30)
        assert weeks[-1][-1] == date(2024, 10, 5)

    def test_week_not_shared_between_months(self):
        october = weeks_for_month("2024-10")
        assert october[0][0] == date(2024, 10, 7)

    def test_malformed_month_gives_no_weeks(self):
        assert weeks_for_month("") == []
        assert weeks_for_month("2024") == []
        assert weeks_for_month("2024-13") == []

    def test_week_index_out_of_range(self):
        assert week_for_scope("2024-10", 4) == []
        assert week_for_scope("2024-10", -1) == []
        assert week_for_scope("2024-10", 0)[0] == date(2024, 10, 7)

    def test_week_label(self):
        week = week_for_scope("2024-09", 0)
        assert format_week_label(week) == "Semaine du 02/09 au 07/09/2024"
        assert format_week_label([]) == ""


class TestHelpers:
    """Tests for ISO helpers and session hours."""

    def test_parse_iso(self):
        assert parse_iso("2024-09-02") == date(2024, 9, 2)
        assert parse_iso("not a date") is None

    def test_month_key(self):
        assert month_key("2024-09-02") == "2024-09"

    @pytest.mark.parametrize("iso_date,expected", [
        ("2024-09-02", 2.5),  # Monday
        ("2024-09-06", 2.5),  # Friday
        ("2024-09-07", 5.0),  # Saturday
        ("2024-09-08", 0.0),  # Sunday
        ("garbage", 0.0),
    ])
    def test_hours_for(self, iso_date, expected):
        assert hours_for(iso_date) == expected

    def test_hours_for_custom_table(self):
        assert hours_for("2024-09-02", {0: 4.0}) == 4.0
