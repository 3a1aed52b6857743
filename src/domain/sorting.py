"""
Sorting Utilities Module

Provides sorting functions for participant lists and statistics output.
"""

import unicodedata
from typing import List

from .entities import Participant


def _fold(text: str) -> str:
    """Case- and accent-insensitive sort key ("Élodie" sorts with "Elodie")."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def get_name_key(participant: Participant) -> tuple:
    """
    Get sort key for a participant by last name, then first name.
    Returns tuple of folded names plus the CEF for stable sorting.
    """
    return (_fold(participant.last_name), _fold(participant.first_name), participant.cef)


def sort_by_name(participants: List[Participant]) -> List[Participant]:
    """Sort participants by name (new list, does not modify original)."""
    return sorted(participants, key=get_name_key)


def sort_statistics(stats: list, sort_by: str = "absence_rate") -> list:
    """
    Sort participant statistics by specified criteria.

    Args:
        stats: List of ParticipantStatistics objects
        sort_by: Sorting method - "absence_rate" or "name"

    Returns:
        Sorted list (new list, does not modify original)
    """
    if sort_by == "name":
        return sorted(stats, key=lambda s: get_name_key(s.participant))
    # Default: highest absence rate first
    return sorted(stats, key=lambda s: -s.absence_rate)
