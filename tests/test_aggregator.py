"""
Unit tests for the weekly aggregator and absence ledger.
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.absence_ledger import absence_dates, absences_within, is_absent, set_absence
from domain.aggregator import (
    absence_hours, absence_rate, compute_week_scope, groups_for_scope
)
from domain.entities import ALL_GROUPS, Participant, WeekScope


YEAR = "2024-2025"


def make_participant(cef, group="A", year=YEAR, annual_hours=500):
    return Participant(
        cef=cef, last_name=f"Nom{cef}", first_name="Test", group=group,
        annual_hours=annual_hours, registration_fee=200, tuition_fee=2500,
        training_year=year,
    )


@pytest.fixture
def participants():
    return [
        make_participant("P1", "A"),
        make_participant("P2", "A"),
        make_participant("P3", "B"),
        make_participant("P9", "C", year="2023-2024"),
    ]


class TestAbsenceLedger:
    """Tests for ledger flag operations."""

    def test_set_absence_returns_new_ledger(self):
        ledger = {}
        updated = set_absence(ledger, "P1", "2024-09-02", True)

        assert ledger == {}
        assert updated == {"P1": {"2024-09-02": True}}

    def test_unset_keeps_false_flag(self):
        ledger = set_absence({}, "P1", "2024-09-02", True)
        ledger = set_absence(ledger, "P1", "2024-09-02", False)

        assert ledger["P1"]["2024-09-02"] is False
        assert not is_absent(ledger, "P1", "2024-09-02")

    def test_only_strict_true_counts(self):
        ledger = {"P1": {"2024-09-02": True, "2024-09-03": False, "2024-09-04": 1}}
        assert absence_dates(ledger, "P1") == ["2024-09-02"]

    def test_absences_within_dates(self):
        ledger = {"P1": {"2024-09-02": True, "2024-10-01": True}}
        assert absences_within(ledger, "P1", ["2024-09-02", "2024-09-03"]) == {"2024-09-02": True}


class TestGroupsForScope:
    """Tests for groups_for_scope."""

    def test_all_groups_of_year_in_roster_order(self, participants):
        scope = WeekScope(YEAR, "2024-09", 0, ALL_GROUPS)
        assert groups_for_scope(participants, scope) == ["A", "B"]

    def test_single_group(self, participants):
        assert groups_for_scope(participants, WeekScope(YEAR, "2024-09", 0, "B")) == ["B"]

    def test_unknown_group_gives_nothing(self, participants):
        assert groups_for_scope(participants, WeekScope(YEAR, "2024-09", 0, "C")) == []


class TestComputeWeekScope:
    """Tests for compute_week_scope."""

    def test_only_true_dates_of_the_week_are_kept(self):
        participants = [make_participant("P1", "A")]
        ledger = {"P1": {"2024-09-02": True, "2024-09-03": False}}

        snapshot = compute_week_scope(ledger, participants, WeekScope(YEAR, "2024-09", 0, "A"))

        assert snapshot.week_dates[0] == "2024-09-02"
        assert snapshot.week_dates[-1] == "2024-09-07"
        assert snapshot.groups == {"A": {"P1": {"2024-09-02": True}}}

    def test_participant_without_absence_is_excluded(self, participants):
        ledger = {
            "P1": {"2024-09-02": True},
            "P2": {"2024-09-03": False, "2024-09-10": True},
        }

        snapshot = compute_week_scope(ledger, participants, WeekScope(YEAR, "2024-09", 0, ALL_GROUPS))

        assert "P2" not in snapshot.groups["A"]
        assert snapshot.groups["B"] == {}

    def test_dates_outside_week_are_ignored(self, participants):
        ledger = {"P1": {"2024-09-09": True}}
        snapshot = compute_week_scope(ledger, participants, WeekScope(YEAR, "2024-09", 0, "A"))
        assert snapshot.groups == {"A": {}}

    def test_invalid_week_index_gives_empty_snapshot(self, participants):
        ledger = {"P1": {"2024-09-02": True}}
        snapshot = compute_week_scope(ledger, participants, WeekScope(YEAR, "2024-09", 7, "A"))

        assert snapshot.is_empty
        assert snapshot.week_dates == []

    def test_other_year_participants_ignored(self, participants):
        ledger = {"P9": {"2024-09-02": True}}
        snapshot = compute_week_scope(ledger, participants, WeekScope(YEAR, "2024-09", 0, ALL_GROUPS))
        assert "C" not in snapshot.groups


class TestHoursAndRates:
    """Tests for weighted hours and absence rates."""

    def test_absence_hours_weighted_by_weekday(self):
        days = {"2024-09-02": True, "2024-09-07": True, "2024-09-03": False}
        assert absence_hours(days) == 7.5

    def test_rate(self):
        assert absence_rate(50, 500) == pytest.approx(0.1)

    @pytest.mark.parametrize("annual", [0, 0.0, -10, float("nan"), float("inf"), None])
    def test_zero_allotted_hours_gives_zero_rate(self, annual):
        assert absence_rate(12.5, annual) == 0.0
