"""
Unit tests for the financial ledger and its projections.
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.calendar_utils import months_for_training_year
from domain.entities import (
    InscriptionPayment, InscriptionStatus, MonthlyPayment, Participant, ParticipantFinancials
)
from domain.financials import (
    apply_financial_update, balance, financial_rows, financial_totals,
    find_payment, get_financials, parse_amount, total_paid
)


@pytest.fixture
def participants():
    return [
        Participant(cef="P1", last_name="Dupont", first_name="Jean", group="A",
                    registration_fee=200, tuition_fee=2500, training_year="2024-2025"),
        Participant(cef="P2", last_name="Martin", first_name="Marie", group="A",
                    registration_fee=250, tuition_fee=2800, training_year="2024-2025"),
    ]


class TestApplyFinancialUpdate:
    """Tests for apply_financial_update."""

    def test_missing_record_defaults(self):
        record = get_financials({}, "P1")
        assert record.inscription_status == InscriptionStatus.PENDING
        assert record.inscription_payment == 0
        assert record.monthly_payments == {}

    def test_monthly_payment_set(self, participants):
        financials = apply_financial_update({}, participants, "P1", MonthlyPayment("2024-09", 250))
        assert find_payment(financials, "P1", "2024-09") == 250

    @pytest.mark.parametrize("amount", [0, -5])
    def test_zero_or_negative_removes_month(self, participants, amount):
        financials = apply_financial_update({}, participants, "P1", MonthlyPayment("2024-09", 250))
        financials = apply_financial_update(financials, participants, "P1", MonthlyPayment("2024-09", amount))

        assert "2024-09" not in financials["P1"].monthly_payments
        assert find_payment(financials, "P1", "2024-09") is None

    def test_input_not_modified(self, participants):
        original = {"P1": ParticipantFinancials(monthly_payments={"2024-09": 100.0})}
        apply_financial_update(original, participants, "P1", MonthlyPayment("2024-10", 100))
        assert original["P1"].monthly_payments == {"2024-09": 100.0}

    def test_inscription_status_paid_when_fee_reached(self, participants):
        financials = apply_financial_update({}, participants, "P1", InscriptionPayment(200))
        assert financials["P1"].inscription_status == InscriptionStatus.PAID
        assert financials["P1"].inscription_payment == 200

    def test_inscription_status_pending_below_fee(self, participants):
        financials = apply_financial_update({}, participants, "P1", InscriptionPayment(150))
        assert financials["P1"].inscription_status == InscriptionStatus.PENDING

    def test_inscription_for_unknown_participant_is_noop(self, participants):
        financials = {"P1": ParticipantFinancials(inscription_payment=10)}
        result = apply_financial_update(financials, participants, "UNKNOWN", InscriptionPayment(100))
        assert result is financials
        assert "UNKNOWN" not in result

    def test_unsupported_action(self, participants):
        with pytest.raises(TypeError):
            apply_financial_update({}, participants, "P1", "not an action")


class TestProjections:
    """Tests for totals and balances."""

    def test_total_paid_and_balance(self, participants):
        record = ParticipantFinancials(
            inscription_payment=200, monthly_payments={"2024-09": 250, "2024-10": 250}
        )
        assert total_paid(record) == 700
        assert balance(participants[0], record) == -2000

    def test_rows_and_totals(self, participants):
        months = months_for_training_year("2024-2025")
        financials = {
            "P1": ParticipantFinancials(inscription_payment=200, monthly_payments={"2024-09": 300}),
        }

        rows = financial_rows(participants, financials, months)
        totals = financial_totals(participants, financials, months)

        assert rows[0].status == InscriptionStatus.PAID
        assert rows[0].monthly[0] == 300
        assert rows[1].status == InscriptionStatus.PENDING
        assert rows[1].balance == -2800
        assert totals.inscription_fees == 450
        assert totals.inscription_paid == 200
        assert totals.monthly["2024-09"] == 300
        assert totals.total_paid == 500
        assert totals.balance == (300 - 2500) + (0 - 2800)

    @pytest.mark.parametrize("raw,expected", [
        ("250", 250.0),
        ("250,5", 250.5),
        (" 12.25 ", 12.25),
        ("abc", 0.0),
        ("-3", 0.0),
        ("", 0.0),
        ("nan", 0.0),
        ("inf", 0.0),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected
