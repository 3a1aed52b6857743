"""
Unit tests for participant import and CSV exports.
"""

import pytest
import csv
import tempfile
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from openpyxl import Workbook

from domain.calendar_utils import months_for_training_year
from domain.entities import Participant, ParticipantFinancials
from domain.exceptions import ImportFormatError
from infrastructure.participant_io import (
    REQUIRED_COLUMNS, ParticipantImporter, export_financials_csv,
    export_participants_csv, format_decimal, parse_number
)

HEADER = ",".join(REQUIRED_COLUMNS)


class TestParseText:
    """Tests for CSV parsing."""

    def test_comma_separated(self):
        text = f"{HEADER}\nP1,Dupont,Jean,DEV101,500,200,2500\n"
        participants = ParticipantImporter().parse_text(text, "2024-2025")

        assert participants == [Participant(
            cef="P1", last_name="Dupont", first_name="Jean", group="DEV101",
            annual_hours=500.0, registration_fee=200.0, tuition_fee=2500.0,
            training_year="2024-2025",
        )]

    def test_semicolon_and_any_column_order(self):
        header = ";".join(reversed(REQUIRED_COLUMNS))
        text = f"{header}\n2500;200;480,5;DEV102;Marie;Martin;P2\n"

        participants = ParticipantImporter().parse_text(text, "2024-2025")

        assert participants[0].cef == "P2"
        assert participants[0].annual_hours == 480.5

    def test_missing_column_rejects_file(self):
        header = ",".join(c for c in REQUIRED_COLUMNS if c != "groupe")
        with pytest.raises(ImportFormatError) as exc_info:
            ParticipantImporter().parse_text(f"{header}\nP1,Dupont,Jean,500,200,2500\n", "2024-2025")
        assert exc_info.value.missing_columns == ["groupe"]

    def test_unparseable_numbers_become_zero(self):
        text = f"{HEADER}\nP1,Dupont,Jean,A,abc,,n/a\n"
        p = ParticipantImporter().parse_text(text, "2024-2025")[0]
        assert (p.annual_hours, p.registration_fee, p.tuition_fee) == (0.0, 0.0, 0.0)

    def test_non_finite_numbers_become_zero(self):
        text = f"{HEADER}\nP1,Dupont,Jean,A,nan,inf,-inf\n"
        p = ParticipantImporter().parse_text(text, "2024-2025")[0]
        assert (p.annual_hours, p.registration_fee, p.tuition_fee) == (0.0, 0.0, 0.0)

    def test_blank_lines_and_rows_without_cef_skipped(self):
        text = f"{HEADER}\n\nP1,Dupont,Jean,A,1,2,3\n,NoCef,X,A,1,2,3\n   \n"
        participants = ParticipantImporter().parse_text(text, "2024-2025")
        assert [p.cef for p in participants] == ["P1"]

    def test_empty_text(self):
        with pytest.raises(ImportFormatError):
            ParticipantImporter().parse_text("", "2024-2025")

    @pytest.mark.parametrize("value,expected", [
        (None, 0.0), (12, 12.0), ("3,5", 3.5), ("x", 0.0),
        ("nan", 0.0), ("inf", 0.0), ("-inf", 0.0), (float("nan"), 0.0), ("1e400", 0.0),
    ])
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected


class TestParseFile:
    """Tests for file parsing."""

    def test_csv_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "participants.csv"
            path.write_text(f"{HEADER}\nP1,Élodie,Jean,A,500,200,2500\n", encoding="utf-8-sig")

            participants = ParticipantImporter().parse_file(path, "2024-2025")
            assert participants[0].last_name == "Élodie"

    def test_excel_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "participants.xlsx"
            wb = Workbook()
            ws = wb.active
            ws.append(REQUIRED_COLUMNS)
            ws.append(["P1", "Dupont", "Jean", "A", 500, 200, 2500])
            ws.append([None] * len(REQUIRED_COLUMNS))
            wb.save(path)

            participants = ParticipantImporter().parse_file(path, "2024-2025")

            assert len(participants) == 1
            assert participants[0].tuition_fee == 2500.0

    def test_missing_file(self):
        with pytest.raises(ImportFormatError):
            ParticipantImporter().parse_file(Path("/nonexistent/file.csv"), "2024-2025")


class TestExports:
    """Tests for CSV exports."""

    def test_participants_roundtrip_through_import(self):
        participants = [Participant(cef="P1", last_name="Dupont", first_name="Jean", group="A",
                                    annual_hours=500, registration_fee=200, tuition_fee=2500,
                                    training_year="2024-2025")]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out" / "participants.csv"
            export_participants_csv(participants, path)

            assert ParticipantImporter().parse_file(path, "2024-2025") == participants

    def test_financial_csv_uses_semicolon_and_decimal_comma(self):
        participants = [Participant(cef="P1", last_name="Dupont", first_name="Jean", group="A",
                                    registration_fee=200, tuition_fee=2500.5, training_year="2024-2025")]
        financials = {"P1": ParticipantFinancials(inscription_payment=200, monthly_payments={"2024-09": 250.25})}
        months = months_for_training_year("2024-2025")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "recette.csv"
            export_financials_csv(participants, financials, months, path)

            with open(path, encoding="utf-8-sig", newline="") as f:
                rows = list(csv.reader(f, delimiter=";"))

        header, row = rows
        assert header[:7] == [
            "CEF", "Nom", "Prenom", "Groupe",
            "Frais Inscription", "Paiement Inscription", "Statut Inscription",
        ]
        assert header[7] == "Septembre 2024"
        assert header[-2:] == ["Total Payé", "Solde Formation"]
        assert row[6] == "Payé"
        assert row[7] == "250,25"
        assert row[-2] == "450,25"
        assert row[-1] == "-2250,25"

    @pytest.mark.parametrize("value,expected", [
        (1234.5, "1234,5"), (200.0, "200"), (0.25, "0,25"),
    ])
    def test_format_decimal(self, value, expected):
        assert format_decimal(value) == expected
