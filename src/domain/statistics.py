"""
Statistics Module

Read-only projections over the absence ledger and the roster: absence
hours and rates, threshold flags, monthly totals, monthly history
summaries and absence receipts.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from .aggregator import absence_hours, absence_rate
from .calendar_utils import (
    find_month, format_week_label, month_key, months_for_training_year,
    parse_iso, weeks_for_month
)
from .entities import ALL_GROUPS, AbsenceLedger, HistoryEntry, Participant
from .history_store import find_entry, history_entry_id
from .hour_rates import ABSENCE_THRESHOLD, SESSION_HOURS, hours_for
from .sorting import sort_by_name, sort_statistics


@dataclass
class ParticipantStatistics:
    """
    Absence statistics of one participant.

    Attributes:
        participant: The participant
        total_hours: Weighted absence hours
        absence_rate: total_hours / annual allotted hours (0 if none allotted)
        over_threshold: True when the rate exceeds the tolerated threshold
    """
    participant: Participant
    total_hours: float = 0.0
    absence_rate: float = 0.0
    over_threshold: bool = False


@dataclass
class MonthlyAbsence:
    """Absence hours of one month of a training year."""
    value: str
    label: str
    total_hours: float = 0.0

    @property
    def short_name(self) -> str:
        return self.label.split(" ")[0]


@dataclass
class SummaryRow:
    """One participant's weekly hours in a monthly history summary."""
    participant: Participant
    weekly_hours: List[float] = field(default_factory=list)
    total_hours: float = 0.0


@dataclass
class MonthlySummary:
    """Monthly history summary of a group."""
    training_year: str
    month_label: str
    group: str
    week_labels: List[str] = field(default_factory=list)
    rows: List[SummaryRow] = field(default_factory=list)


@dataclass
class ReceiptLine:
    date: date
    hours: float


@dataclass
class AbsenceReceipt:
    """Absences of a participant over an inclusive period."""
    participant: Participant
    start: date
    end: date
    absences: List[ReceiptLine] = field(default_factory=list)
    total_hours: float = 0.0


def filter_participants(
    participants: List[Participant],
    training_year: str,
    group: str = ALL_GROUPS,
    cef: str = ALL_GROUPS,
) -> List[Participant]:
    """Filter a roster by training year, group and participant ("all" keeps every value)."""
    return [
        p for p in participants
        if p.training_year == training_year
        and (group == ALL_GROUPS or p.group == group)
        and (cef == ALL_GROUPS or p.cef == cef)
    ]


def groups_of_year(participants: List[Participant], training_year: str) -> List[str]:
    """Sorted distinct groups of a training year."""
    return sorted({p.group for p in participants if p.training_year == training_year})


class StatisticsCalculator:
    """
    Computes absence statistics.

    Provides:
    - Per-participant absence hours and rates with threshold flags
    - Overall absence rate of a selection
    - Monthly absence hours over a training year
    - Monthly summaries from committed history
    - Absence receipts over a period
    """

    def __init__(
        self,
        session_hours: Optional[Dict[int, float]] = None,
        threshold: float = ABSENCE_THRESHOLD,
    ):
        """
        Initialize calculator.

        Args:
            session_hours: Hours per weekday (default SESSION_HOURS)
            threshold: Tolerated absence rate as a fraction
        """
        self.session_hours = SESSION_HOURS if session_hours is None else session_hours
        self.threshold = threshold

    def participant_statistics(
        self,
        participants: List[Participant],
        ledger: AbsenceLedger,
        sort_by: str = "absence_rate",
    ) -> List[ParticipantStatistics]:
        """
        Compute statistics for each participant.

        Returns:
            List sorted by absence rate, highest first (or by name)
        """
        stats = []
        for participant in participants:
            hours = absence_hours(ledger.get(participant.cef, {}), self.session_hours)
            rate = absence_rate(hours, participant.annual_hours)
            stats.append(ParticipantStatistics(
                participant=participant,
                total_hours=hours,
                absence_rate=rate,
                over_threshold=rate > self.threshold,
            ))
        return sort_statistics(stats, sort_by)

    @staticmethod
    def overall_absence_rate(stats: List[ParticipantStatistics]) -> float:
        """
        Overall absence rate of a selection as a percentage.

        Returns 0 when no hours are planned.
        """
        planned = sum(s.participant.annual_hours for s in stats)
        absent = sum(s.total_hours for s in stats)
        if planned <= 0:
            return 0.0
        return absent / planned * 100

    @staticmethod
    def count_over_threshold(stats: List[ParticipantStatistics]) -> int:
        return sum(1 for s in stats if s.over_threshold)

    def is_rate_over_threshold(self, percentage: float) -> bool:
        return percentage > self.threshold * 100

    def monthly_absence_hours(
        self,
        participants: List[Participant],
        ledger: AbsenceLedger,
        training_year: str,
    ) -> List[MonthlyAbsence]:
        """Sum absence hours per month of a training year."""
        months = months_for_training_year(training_year)
        monthly = {m.value: MonthlyAbsence(value=m.value, label=m.label) for m in months}

        for participant in participants:
            for d, flag in ledger.get(participant.cef, {}).items():
                if flag is not True:
                    continue
                entry = monthly.get(month_key(d))
                if entry is not None:
                    entry.total_hours += hours_for(d, self.session_hours)

        return [monthly[m.value] for m in months]

    @staticmethod
    def top_absent_months(monthly: List[MonthlyAbsence], limit: int = 3) -> List[MonthlyAbsence]:
        """Months with the most absence hours, ignoring months without any."""
        with_hours = [m for m in monthly if m.total_hours > 0]
        return sorted(with_hours, key=lambda m: -m.total_hours)[:limit]

    def monthly_history_summary(
        self,
        training_year: str,
        month_value: str,
        group: str,
        history: List[HistoryEntry],
        participants: List[Participant],
    ) -> Optional[MonthlySummary]:
        """
        Weekly absence hours of a group over a month, read from history.

        Weeks without a committed entry count as 0 hours.

        Returns:
            MonthlySummary, or None if the month is not part of the year
            or no single group is selected
        """
        if not group or group == ALL_GROUPS:
            return None
        month = find_month(training_year, month_value)
        if month is None:
            return None

        weeks = weeks_for_month(month.value)
        entries = [
            find_entry(history, history_entry_id(training_year, month.value, i, group))
            for i in range(len(weeks))
        ]
        members = sort_by_name([
            p for p in participants
            if p.training_year == training_year and p.group == group
        ])

        rows = []
        for participant in members:
            weekly = []
            for entry in entries:
                days = entry.attendance.get(participant.cef, {}) if entry else {}
                weekly.append(absence_hours(days, self.session_hours))
            rows.append(SummaryRow(participant=participant, weekly_hours=weekly, total_hours=sum(weekly)))

        return MonthlySummary(
            training_year=training_year,
            month_label=month.label,
            group=group,
            week_labels=[format_week_label(w) for w in weeks],
            rows=rows,
        )

    def absence_receipt(
        self,
        participant: Participant,
        ledger: AbsenceLedger,
        start: date,
        end: date,
    ) -> AbsenceReceipt:
        """List the absences of a participant between two dates (inclusive)."""
        lines = []
        for d, flag in ledger.get(participant.cef, {}).items():
            day = parse_iso(d)
            if flag is True and day is not None and start <= day <= end:
                lines.append(ReceiptLine(date=day, hours=hours_for(d, self.session_hours)))
        lines.sort(key=lambda line: line.date)

        return AbsenceReceipt(
            participant=participant,
            start=start,
            end=end,
            absences=lines,
            total_hours=sum(line.hours for line in lines),
        )
