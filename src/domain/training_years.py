"""
Training Years Module

Known training years and cascade deletion of a year with every record
that depends on it.
"""

import re
from dataclasses import replace
from typing import List

from .entities import AppState
from .exceptions import ValidationError
from infrastructure.logger import get_logger

logger = get_logger("TrainingYears")

TRAINING_YEAR_PATTERN = re.compile(r"^\d{4}-\d{4}$")


def validate_training_year(year: str) -> str:
    """
    Check the "YYYY-YYYY" format of a training year.

    Raises:
        ValidationError: If the format is invalid
    """
    year = (year or "").strip()
    if not TRAINING_YEAR_PATTERN.match(year):
        raise ValidationError("Format invalide. Utilisez AAAA-AAAA (ex: 2024-2025).")
    return year


def add_training_year(years: List[str], year: str) -> List[str]:
    """
    Add a training year, keeping the list newest first.

    Raises:
        ValidationError: Invalid format or year already present
    """
    year = validate_training_year(year)
    if year in years:
        raise ValidationError(f"L'année {year} existe déjà.")
    return sorted(list(years) + [year], reverse=True)


def delete_training_year(state: AppState, year: str) -> AppState:
    """
    Delete a training year and all records that depend on it.

    Removes the year's participants and history entries, then the
    accounts, ledger entries and financial records of their CEFs, and
    finally the year itself. The new state is built in one step; the
    given state is not modified.

    Args:
        state: Current state
        year: Training year to delete

    Returns:
        New state without any record of the year
    """
    cefs = {p.cef for p in state.participants if p.training_year == year}

    new_state = replace(
        state,
        participants=[p for p in state.participants if p.training_year != year],
        history=[h for h in state.history if h.training_year != year],
        users=[u for u in state.users if not u.participant_cef or u.participant_cef not in cefs],
        attendance={cef: days for cef, days in state.attendance.items() if cef not in cefs},
        financials={cef: rec for cef, rec in state.financials.items() if cef not in cefs},
        training_years=[y for y in state.training_years if y != year],
    )

    logger.info(
        f"Année {year} supprimée: {len(cefs)} participants, "
        f"{len(state.history) - len(new_state.history)} entrées d'historique, "
        f"{len(state.users) - len(new_state.users)} comptes"
    )
    return new_state
