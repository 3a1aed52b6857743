"""
Weekly Aggregator Module

Computes the week-scoped absences of a selection (training year, month,
week, group) and converts absence days into weighted hours.
"""

import math
from typing import Dict, Iterable, List, Optional

from .absence_ledger import absences_within
from .calendar_utils import to_iso, week_for_scope
from .entities import ALL_GROUPS, AbsenceLedger, Participant, WeekScope, WeekSnapshot
from .hour_rates import hours_for
from infrastructure.logger import get_logger

logger = get_logger("WeeklyAggregator")


def groups_for_scope(participants: List[Participant], scope: WeekScope) -> List[str]:
    """
    Get the groups implied by a scope.

    For ALL_GROUPS, every distinct group among the participants of the
    scope's training year, in order of first appearance. A single group
    is kept only if it exists in that training year.
    """
    groups: List[str] = []
    for participant in participants:
        if participant.training_year == scope.training_year and participant.group not in groups:
            groups.append(participant.group)

    if scope.group == ALL_GROUPS:
        return groups
    if scope.group in groups:
        return [scope.group]
    logger.warning(f"Groupe '{scope.group}' introuvable pour l'année {scope.training_year}")
    return []


def week_attendance_for_group(
    ledger: AbsenceLedger,
    participants: List[Participant],
    training_year: str,
    group: str,
    week_dates: Iterable[str],
) -> AbsenceLedger:
    """
    Extract the absences of one group for one week.

    Only dates of the week flagged True are kept, and only participants
    with at least one such date are included.
    """
    week_dates = list(week_dates)
    attendance: AbsenceLedger = {}
    for participant in participants:
        if participant.training_year != training_year or participant.group != group:
            continue
        absences = absences_within(ledger, participant.cef, week_dates)
        if absences:
            attendance[participant.cef] = absences
    return attendance


def compute_week_scope(
    ledger: AbsenceLedger,
    participants: List[Participant],
    scope: WeekScope,
) -> WeekSnapshot:
    """
    Compute the snapshot of a week for every group of the scope.

    Args:
        ledger: Full absence ledger
        participants: Roster (other training years are ignored)
        scope: Selected training year, month, week and group

    Returns:
        WeekSnapshot; empty when the week index is not valid for the month
    """
    week = week_for_scope(scope.month_value, scope.week_index)
    if not week:
        return WeekSnapshot()

    week_dates = [to_iso(d) for d in week]
    groups: Dict[str, AbsenceLedger] = {}
    for group in groups_for_scope(participants, scope):
        if not group:
            continue
        groups[group] = week_attendance_for_group(
            ledger, participants, scope.training_year, group, week_dates
        )
    return WeekSnapshot(week_dates=week_dates, groups=groups)


def absence_hours(
    days: Dict[str, bool],
    session_hours: Optional[Dict[int, float]] = None,
) -> float:
    """Sum the session hours of the True entries of a date map."""
    return sum(hours_for(d, session_hours) for d, flag in days.items() if flag is True)


def absence_rate(total_hours: float, annual_hours: float) -> float:
    """
    Absence rate as a fraction of the annual allotted hours.

    Returns 0 when no hours are allotted or either value is not finite.
    """
    if not annual_hours or not math.isfinite(annual_hours) or annual_hours <= 0:
        return 0.0
    if not math.isfinite(total_hours):
        return 0.0
    return total_hours / annual_hours
