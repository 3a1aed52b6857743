"""
Absence Ledger Module

Day-level absence flags per participant. The ledger is the single source
of truth for attendance; a date counts as an absence only when its flag
is strictly True.
"""

from typing import Dict, List

from .entities import AbsenceLedger


def set_absence(ledger: AbsenceLedger, cef: str, iso_date: str, is_absent: bool) -> AbsenceLedger:
    """
    Record the absence flag of a participant for a date.

    Args:
        ledger: Current ledger (not modified)
        cef: Participant identifier
        iso_date: "YYYY-MM-DD"
        is_absent: New flag

    Returns:
        A new ledger with the flag stored
    """
    updated = dict(ledger)
    days = dict(updated.get(cef, {}))
    days[iso_date] = bool(is_absent)
    updated[cef] = days
    return updated


def is_absent(ledger: AbsenceLedger, cef: str, iso_date: str) -> bool:
    return ledger.get(cef, {}).get(iso_date) is True


def absence_dates(ledger: AbsenceLedger, cef: str) -> List[str]:
    """Get the sorted dates a participant is recorded absent."""
    return sorted(d for d, flag in ledger.get(cef, {}).items() if flag is True)


def absences_within(ledger: AbsenceLedger, cef: str, dates) -> Dict[str, bool]:
    """Get the absences of a participant restricted to a set of dates."""
    wanted = set(dates)
    return {
        d: True
        for d, flag in ledger.get(cef, {}).items()
        if flag is True and d in wanted
    }
