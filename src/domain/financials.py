"""
Financial Ledger Module

Registration and monthly tuition payments per participant. Only payments
and the registration status are stored; totals and balances are
projections recomputed on every read.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Union

from .entities import (
    InscriptionPayment, InscriptionStatus, MonthlyPayment,
    MonthOption, Participant, ParticipantFinancials
)
from infrastructure.logger import get_logger

logger = get_logger("FinancialLedger")

FinancialUpdate = Union[MonthlyPayment, InscriptionPayment]


def get_financials(financials: Dict[str, ParticipantFinancials], cef: str) -> ParticipantFinancials:
    """Get the record of a participant, or a default record if none exists."""
    return financials.get(cef) or ParticipantFinancials()


def inscription_status_for(amount: float, registration_fee: float) -> InscriptionStatus:
    if amount >= registration_fee:
        return InscriptionStatus.PAID
    return InscriptionStatus.PENDING


def apply_financial_update(
    financials: Dict[str, ParticipantFinancials],
    participants: List[Participant],
    cef: str,
    action: FinancialUpdate,
) -> Dict[str, ParticipantFinancials]:
    """
    Apply a payment update to a participant's record.

    Args:
        financials: Current records (not modified)
        participants: Roster, used to read the registration fee
        cef: Participant identifier
        action: MonthlyPayment or InscriptionPayment

    Returns:
        New records; unchanged when an inscription update targets an
        unknown participant
    """
    existing = get_financials(financials, cef)

    if isinstance(action, MonthlyPayment):
        payments = dict(existing.monthly_payments)
        if action.amount > 0:
            payments[action.month] = action.amount
        else:
            payments.pop(action.month, None)
        record = replace(existing, monthly_payments=payments)
    elif isinstance(action, InscriptionPayment):
        participant = next((p for p in participants if p.cef == cef), None)
        if participant is None:
            logger.warning(f"Paiement d'inscription ignoré: participant '{cef}' introuvable")
            return financials
        record = replace(
            existing,
            monthly_payments=dict(existing.monthly_payments),
            inscription_payment=action.amount,
            inscription_status=inscription_status_for(action.amount, participant.registration_fee),
        )
    else:
        raise TypeError(f"Unsupported financial update: {action!r}")

    updated = dict(financials)
    updated[cef] = record
    return updated


def monthly_total(record: ParticipantFinancials) -> float:
    return sum(record.monthly_payments.values())


def total_paid(record: ParticipantFinancials) -> float:
    """Registration payment plus all monthly payments."""
    return record.inscription_payment + monthly_total(record)


def balance(participant: Participant, record: ParticipantFinancials) -> float:
    """Monthly payments minus the tuition fee (negative while money is owed)."""
    return monthly_total(record) - participant.tuition_fee


def parse_amount(raw: str) -> float:
    """
    Parse an amount typed by a user.

    Accepts a decimal comma; invalid or negative input gives 0.
    """
    try:
        amount = float(str(raw).replace(",", ".").strip())
    except ValueError:
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


@dataclass
class FinancialRow:
    """Projection of one participant's payments for a report row."""
    participant: Participant
    record: ParticipantFinancials
    status: InscriptionStatus
    monthly: List[float]
    total_paid: float
    balance: float


@dataclass
class FinancialTotals:
    """Footer totals of a financial report."""
    inscription_fees: float = 0.0
    inscription_paid: float = 0.0
    tuition_fees: float = 0.0
    monthly: Dict[str, float] = field(default_factory=dict)
    total_paid: float = 0.0
    balance: float = 0.0


def financial_rows(
    participants: List[Participant],
    financials: Dict[str, ParticipantFinancials],
    months: List[MonthOption],
) -> List[FinancialRow]:
    """Build the report rows of a list of participants."""
    rows = []
    for participant in participants:
        record = get_financials(financials, participant.cef)
        rows.append(FinancialRow(
            participant=participant,
            record=record,
            status=inscription_status_for(record.inscription_payment, participant.registration_fee),
            monthly=[record.monthly_payments.get(m.value, 0.0) for m in months],
            total_paid=total_paid(record),
            balance=balance(participant, record),
        ))
    return rows


def financial_totals(
    participants: List[Participant],
    financials: Dict[str, ParticipantFinancials],
    months: List[MonthOption],
) -> FinancialTotals:
    """Sum fees, payments and balances over a list of participants."""
    totals = FinancialTotals(monthly={m.value: 0.0 for m in months})
    for participant in participants:
        record = get_financials(financials, participant.cef)
        totals.inscription_fees += participant.registration_fee
        totals.inscription_paid += record.inscription_payment
        totals.tuition_fees += participant.tuition_fee
        for m in months:
            totals.monthly[m.value] += record.monthly_payments.get(m.value, 0.0)
        totals.total_paid += total_paid(record)
        totals.balance += balance(participant, record)
    return totals


def find_payment(financials: Dict[str, ParticipantFinancials], cef: str, month: str) -> Optional[float]:
    """Get the payment of a month, or None when no payment is recorded."""
    return get_financials(financials, cef).monthly_payments.get(month)
