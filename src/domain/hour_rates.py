"""
Hour Rates Module

Session duration per weekday, used to weigh absence days into hours.
"""

from typing import Dict, Optional

from .calendar_utils import parse_iso


# Session hours by weekday (0=Monday ... 5=Saturday); Sunday has no session
SESSION_HOURS: Dict[int, float] = {
    0: 2.5,
    1: 2.5,
    2: 2.5,
    3: 2.5,
    4: 2.5,
    5: 5.0,
}

# Tolerated absence rate; above it a participant is flagged
ABSENCE_THRESHOLD = 0.30


def hours_for(iso_date: str, session_hours: Optional[Dict[int, float]] = None) -> float:
    """
    Get the session hours of a date.

    Args:
        iso_date: "YYYY-MM-DD"
        session_hours: Optional table overriding SESSION_HOURS

    Returns:
        Hours for the weekday of the date, 0 when unknown or unparseable
    """
    table = SESSION_HOURS if session_hours is None else session_hours
    day = parse_iso(iso_date)
    if day is None:
        return 0.0
    return table.get(day.weekday(), 0.0)
