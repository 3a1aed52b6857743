"""
History Store Module

Append/update log of committed weekly snapshots. Each (training year,
month, week, group) has at most one entry; a later commit updates it
in place, a new one is inserted at the front.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .entities import HistoryEntry, WeekScope, WeekSnapshot
from infrastructure.logger import get_logger

logger = get_logger("HistoryStore")


def history_entry_id(training_year: str, month_value: str, week_index: int, group: str) -> str:
    """Composite key of a history entry."""
    return f"{training_year}-{month_value}-{week_index}-{group}"


def _timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat()


def commit_week(
    history: List[HistoryEntry],
    snapshot: WeekSnapshot,
    scope: WeekScope,
    month_label: str,
    week_label: str,
    now: Optional[datetime] = None,
) -> List[HistoryEntry]:
    """
    Upsert one history entry per group of a snapshot.

    Existing entries keep their id, list position and original labels;
    their timestamp, attendance and week dates are replaced. New entries
    are inserted at the front. The returned list is built on a copy, so
    the caller's list is untouched if anything fails.

    Args:
        history: Current history (not modified)
        snapshot: Output of compute_week_scope
        scope: Scope the snapshot was computed for
        month_label: Label stored on new entries
        week_label: Label stored on new entries
        now: Commit time (default: current UTC time)

    Returns:
        The new history list
    """
    if snapshot.is_empty:
        logger.info(f"Aucune semaine à enregistrer pour {scope.month_value} (semaine {scope.week_index})")
        return list(history)

    timestamp = _timestamp(now)
    updated = list(history)
    positions: Dict[str, int] = {entry.id: i for i, entry in enumerate(updated)}

    for group, attendance in snapshot.groups.items():
        if not group:
            continue

        entry_id = history_entry_id(scope.training_year, scope.month_value, scope.week_index, group)
        week_attendance = {cef: dict(days) for cef, days in attendance.items()}

        if entry_id in positions:
            index = positions[entry_id]
            updated[index] = replace(
                updated[index],
                date=timestamp,
                attendance=week_attendance,
                week_dates=list(snapshot.week_dates),
            )
            logger.debug(f"Historique mis à jour: {entry_id}")
        else:
            updated.insert(0, HistoryEntry(
                id=entry_id,
                date=timestamp,
                training_year=scope.training_year,
                month=month_label,
                week_label=week_label,
                group=group,
                attendance=week_attendance,
                week_dates=list(snapshot.week_dates),
            ))
            positions = {entry.id: i for i, entry in enumerate(updated)}
            logger.debug(f"Historique créé: {entry_id}")

    return updated


def find_entry(history: List[HistoryEntry], entry_id: str) -> Optional[HistoryEntry]:
    for entry in history:
        if entry.id == entry_id:
            return entry
    return None


def group_history(history: List[HistoryEntry]) -> Dict[str, Dict[str, Dict[str, List[HistoryEntry]]]]:
    """
    Group entries by training year, month label and group.

    Entries within each group are ordered by commit time, newest first.
    """
    grouped: Dict[str, Dict[str, Dict[str, List[HistoryEntry]]]] = {}
    for entry in sorted(history, key=lambda e: e.date, reverse=True):
        months = grouped.setdefault(entry.training_year, {})
        groups = months.setdefault(entry.month, {})
        groups.setdefault(entry.group, []).append(entry)
    return grouped
