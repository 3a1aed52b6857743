"""
Unit tests for StatisticsCalculator and participant sorting.
"""

import pytest
from datetime import date, datetime, timezone
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.aggregator import compute_week_scope
from domain.entities import ALL_GROUPS, Participant, WeekScope
from domain.history_store import commit_week
from domain.sorting import sort_by_name
from domain.statistics import StatisticsCalculator, filter_participants, groups_of_year


YEAR = "2024-2025"


def make_participant(cef, last_name, group="A", annual_hours=100.0, year=YEAR):
    return Participant(cef=cef, last_name=last_name, first_name="X", group=group,
                       annual_hours=annual_hours, training_year=year)


@pytest.fixture
def calculator():
    return StatisticsCalculator()


class TestParticipantStatistics:
    """Tests for per-participant statistics."""

    def test_hours_rate_and_threshold(self, calculator):
        participants = [make_participant("P1", "Alpha", annual_hours=20), make_participant("P2", "Beta")]
        # Monday 2.5h + Saturday 5h = 7.5h
        ledger = {"P1": {"2024-09-02": True, "2024-09-07": True}, "P2": {"2024-09-02": True}}

        stats = calculator.participant_statistics(participants, ledger)

        assert [s.participant.cef for s in stats] == ["P1", "P2"]
        assert stats[0].total_hours == 7.5
        assert stats[0].absence_rate == pytest.approx(0.375)
        assert stats[0].over_threshold is True
        assert stats[1].absence_rate == pytest.approx(0.025)
        assert stats[1].over_threshold is False
        assert calculator.count_over_threshold(stats) == 1

    def test_zero_annual_hours_gives_zero_rate(self, calculator):
        participants = [make_participant("P1", "Alpha", annual_hours=0)]
        stats = calculator.participant_statistics(participants, {"P1": {"2024-09-02": True}})

        assert stats[0].absence_rate == 0.0
        assert stats[0].over_threshold is False

    def test_sort_by_name(self, calculator):
        participants = [make_participant("P1", "Zola"), make_participant("P2", "Émile")]
        stats = calculator.participant_statistics(participants, {"P1": {"2024-09-02": True}}, sort_by="name")
        assert [s.participant.cef for s in stats] == ["P2", "P1"]

    def test_overall_rate(self, calculator):
        participants = [make_participant("P1", "A", annual_hours=50), make_participant("P2", "B", annual_hours=50)]
        stats = calculator.participant_statistics(participants, {"P1": {"2024-09-07": True}})

        assert calculator.overall_absence_rate(stats) == pytest.approx(5.0)
        assert calculator.overall_absence_rate([]) == 0.0
        assert not calculator.is_rate_over_threshold(5.0)
        assert calculator.is_rate_over_threshold(31.0)

    def test_custom_session_hours(self):
        calculator = StatisticsCalculator(session_hours={0: 4.0})
        stats = calculator.participant_statistics(
            [make_participant("P1", "A")], {"P1": {"2024-09-02": True, "2024-09-07": True}}
        )
        assert stats[0].total_hours == 4.0


class TestMonthlyAbsences:
    """Tests for monthly totals."""

    def test_hours_per_month_and_top_months(self, calculator):
        participants = [make_participant("P1", "A")]
        ledger = {"P1": {
            "2024-09-02": True,
            "2024-10-05": True,
            "2024-10-07": True,
            "2025-08-04": True,  # outside the training months
        }}

        monthly = calculator.monthly_absence_hours(participants, ledger, YEAR)
        by_value = {m.value: m.total_hours for m in monthly}

        assert len(monthly) == 11
        assert by_value["2024-09"] == 2.5
        assert by_value["2024-10"] == 7.5
        top = calculator.top_absent_months(monthly)
        assert [m.value for m in top] == ["2024-10", "2024-09"]
        assert top[0].short_name == "Octobre"


class TestMonthlyHistorySummary:
    """Tests for monthly_history_summary."""

    def test_reads_committed_weeks(self, calculator):
        participants = [make_participant("P2", "Beta"), make_participant("P1", "Alpha")]
        ledger = {"P1": {"2024-09-02": True, "2024-09-09": True}}
        scope = WeekScope(YEAR, "2024-09", 0, "A")
        snapshot = compute_week_scope(ledger, participants, scope)
        history = commit_week([], snapshot, scope, "Septembre 2024", "w0",
                              now=datetime(2024, 9, 8, tzinfo=timezone.utc))

        summary = calculator.monthly_history_summary(YEAR, "2024-09", "A", history, participants)

        assert summary.month_label == "Septembre 2024"
        assert len(summary.week_labels) == 5
        assert [r.participant.cef for r in summary.rows] == ["P1", "P2"]
        # Week 1 is not committed, so its ledger absence is not counted
        assert summary.rows[0].weekly_hours == [2.5, 0.0, 0.0, 0.0, 0.0]
        assert summary.rows[0].total_hours == 2.5
        assert summary.rows[1].total_hours == 0.0

    def test_month_outside_year(self, calculator):
        assert calculator.monthly_history_summary(YEAR, "2025-08", "A", [], []) is None

    @pytest.mark.parametrize("group", [ALL_GROUPS, ""])
    def test_requires_a_single_group(self, calculator, group):
        participants = [make_participant("P1", "Alpha")]
        assert calculator.monthly_history_summary(YEAR, "2024-09", group, [], participants) is None


class TestAbsenceReceipt:
    """Tests for absence_receipt."""

    def test_inclusive_period(self, calculator):
        participant = make_participant("P1", "A")
        ledger = {"P1": {
            "2024-09-07": True,
            "2024-09-02": True,
            "2024-09-03": False,
            "2024-09-09": True,
        }}

        receipt = calculator.absence_receipt(participant, ledger, date(2024, 9, 2), date(2024, 9, 7))

        assert [line.date for line in receipt.absences] == [date(2024, 9, 2), date(2024, 9, 7)]
        assert receipt.total_hours == 7.5


class TestFilters:
    """Tests for filter and sorting helpers."""

    def test_filter_participants(self):
        participants = [
            make_participant("P1", "A", group="G1"),
            make_participant("P2", "B", group="G2"),
            make_participant("P3", "C", group="G1", year="2023-2024"),
        ]
        assert [p.cef for p in filter_participants(participants, YEAR)] == ["P1", "P2"]
        assert [p.cef for p in filter_participants(participants, YEAR, "G1")] == ["P1"]
        assert [p.cef for p in filter_participants(participants, YEAR, cef="P2")] == ["P2"]
        assert groups_of_year(participants, YEAR) == ["G1", "G2"]

    def test_sort_by_name_ignores_accents_and_case(self):
        participants = [make_participant("1", "martin"), make_participant("2", "Élise"), make_participant("3", "Dupont")]
        assert [p.last_name for p in sort_by_name(participants)] == ["Dupont", "Élise", "martin"]
