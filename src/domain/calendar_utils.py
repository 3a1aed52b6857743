"""
Calendar Utilities Module

Maps a training year (September to August) to its months and each month
to its Monday-anchored weeks.
"""

from calendar import monthrange
from datetime import date, timedelta
from typing import List, Optional

from .entities import MonthOption


MONTH_NAMES_FR = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]

WEEKDAY_NAMES_FR = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]

# Training years start in September
TRAINING_YEAR_START_MONTH = 9

# September to July; August is not a training month
MONTHS_PER_TRAINING_YEAR = 11

# Sessions run Monday to Saturday
DAYS_PER_WEEK = 6


def current_training_year(today: Optional[date] = None) -> str:
    """Get the training year containing the given day (default: today)."""
    today = today or date.today()
    if today.month >= TRAINING_YEAR_START_MONTH:
        return f"{today.year}-{today.year + 1}"
    return f"{today.year - 1}-{today.year}"


def default_training_years(today: Optional[date] = None, count: int = 5) -> List[str]:
    """
    Get the current training year and the previous ones, newest first.

    Args:
        today: Reference day (default: today)
        count: Number of years to return

    Returns:
        List like ["2024-2025", "2023-2024", ...]
    """
    end_year = int(current_training_year(today).split("-")[1])
    return [f"{end_year - i - 1}-{end_year - i}" for i in range(count)]


def start_year_of(training_year: str) -> int:
    """Get the first calendar year of a "YYYY-YYYY" training year."""
    return int(training_year.split("-")[0])


def month_label(year: int, month: int) -> str:
    """French month label with a capital first letter, e.g. "Septembre 2024"."""
    return f"{MONTH_NAMES_FR[month - 1].capitalize()} {year}"


def months_for_training_year(training_year: str) -> List[MonthOption]:
    """
    Get the ordered months of a training year.

    Args:
        training_year: "YYYY-YYYY"

    Returns:
        MonthOption list from September of the first year to July of the second
    """
    start_year = start_year_of(training_year)
    months = []
    for i in range(MONTHS_PER_TRAINING_YEAR):
        month = (TRAINING_YEAR_START_MONTH - 1 + i) % 12 + 1
        year = start_year if month >= TRAINING_YEAR_START_MONTH else start_year + 1
        months.append(MonthOption(value=f"{year}-{month:02d}", label=month_label(year, month)))
    return months


def find_month(training_year: str, month_value: str) -> Optional[MonthOption]:
    """Find a month of a training year by its "YYYY-MM" value."""
    for option in months_for_training_year(training_year):
        if option.value == month_value:
            return option
    return None


def weeks_for_month(year_month: str) -> List[List[date]]:
    """
    Get the weeks belonging to a month.

    A week belongs to the month containing its Monday, so no week is
    shared between two months. Each week runs Monday to Saturday.

    Args:
        year_month: "YYYY-MM"

    Returns:
        List of weeks, each a list of 6 dates; empty for a malformed month
    """
    if not year_month:
        return []
    try:
        year, month = (int(part) for part in year_month.split("-"))
        _, num_days = monthrange(year, month)
    except (ValueError, TypeError):
        return []

    weeks = []
    for day in range(1, num_days + 1):
        d = date(year, month, day)
        if d.weekday() == 0:
            weeks.append([d + timedelta(days=i) for i in range(DAYS_PER_WEEK)])
    return weeks


def week_for_scope(year_month: str, week_index: int) -> List[date]:
    """Get one week of a month, or an empty list if the index is out of range."""
    weeks = weeks_for_month(year_month)
    if 0 <= week_index < len(weeks):
        return weeks[week_index]
    return []


def format_week_label(week: List[date]) -> str:
    """Format a week as "Semaine du 02/09 au 07/09/2024"."""
    if not week:
        return ""
    start = week[0].strftime("%d/%m")
    end = week[-1].strftime("%d/%m/%Y")
    return f"Semaine du {start} au {end}"


def to_iso(d: date) -> str:
    return d.isoformat()


def parse_iso(value: str) -> Optional[date]:
    """Parse a "YYYY-MM-DD" string, returning None on failure."""
    try:
        return date.fromisoformat(value[:10])
    except (ValueError, TypeError):
        return None


def month_key(value: str) -> str:
    """Get the "YYYY-MM" key of an ISO date string."""
    return value[:7]
