"""
Participant Import/Export Module

Reads participant rosters from CSV or Excel files and writes participant
and financial CSV exports.
"""

import csv
import io
import math
from pathlib import Path
from typing import Dict, List, Optional

from openpyxl import load_workbook

from domain.entities import MonthOption, Participant, ParticipantFinancials
from domain.exceptions import ImportFormatError
from domain.financials import financial_rows
from infrastructure.logger import get_logger
from infrastructure.state_store import participant_to_dict

logger = get_logger("ParticipantIO")


REQUIRED_COLUMNS = [
    "cef", "nom", "prenom", "groupe",
    "mhAnnuelleAffectee", "fraisInscription", "fraisFormation",
]

NUMERIC_COLUMNS = {"mhAnnuelleAffectee", "fraisInscription", "fraisFormation"}

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def parse_number(value) -> float:
    """Parse a numeric cell; unparseable or non-finite values give 0."""
    if value is None:
        return 0.0
    try:
        if isinstance(value, (int, float)):
            result = float(value)
        else:
            result = float(str(value).strip().replace(",", "."))
    except (ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


class ParticipantImporter:
    """
    Parses participant rosters.

    The header row must contain every column of REQUIRED_COLUMNS, in any
    order; otherwise the whole file is rejected.
    """

    def parse_file(self, file_path: Path, training_year: str) -> List[Participant]:
        """
        Parse a CSV or Excel roster.

        Args:
            file_path: Path of the file
            training_year: Training year assigned to every participant

        Returns:
            List of participants

        Raises:
            ImportFormatError: Unreadable file or missing mandatory column
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ImportFormatError(f"Fichier introuvable: {file_path}")

        logger.info(f"Import du fichier: {file_path.name}")
        try:
            if file_path.suffix.lower() in EXCEL_SUFFIXES:
                rows = self._read_excel(file_path)
            else:
                with open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
                    rows = self._read_csv(f.read())
        except ImportFormatError:
            raise
        except Exception as e:
            raise ImportFormatError(
                "Erreur lors de la lecture du fichier. Assurez-vous que c'est un CSV valide."
            ) from e

        return self.rows_to_participants(rows, training_year)

    def parse_text(self, text: str, training_year: str) -> List[Participant]:
        """Parse CSV content already read into memory."""
        return self.rows_to_participants(self._read_csv(text), training_year)

    def _read_csv(self, text: str) -> List[List[str]]:
        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            raise ImportFormatError("Le fichier est vide.")
        try:
            dialect = csv.Sniffer().sniff(lines[0], delimiters=",;\t")
            delimiter = dialect.delimiter
        except csv.Error:
            delimiter = ","
        return list(csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter))

    def _read_excel(self, file_path: Path) -> List[List[str]]:
        wb = load_workbook(file_path, read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            rows = []
            for values in ws.iter_rows(values_only=True):
                if not any(v is not None and str(v).strip() for v in values):
                    continue
                rows.append(["" if v is None else v for v in values])
            return rows
        finally:
            wb.close()

    def rows_to_participants(self, rows: List[list], training_year: str) -> List[Participant]:
        """
        Convert raw rows (header first) to participants.

        Raises:
            ImportFormatError: If a mandatory column is missing
        """
        if not rows:
            raise ImportFormatError("Le fichier est vide.")

        header = [str(h).strip().strip('"') for h in rows[0]]
        missing = [c for c in REQUIRED_COLUMNS if c not in header]
        if missing:
            raise ImportFormatError(
                f"En-têtes manquants ou incorrects. Attendu: {', '.join(REQUIRED_COLUMNS)}",
                missing_columns=missing,
            )

        index = {name: header.index(name) for name in REQUIRED_COLUMNS}
        participants = []
        skipped = 0

        for row_number, row in enumerate(rows[1:], start=2):
            values: Dict[str, object] = {}
            for name, col in index.items():
                raw = row[col] if col < len(row) else None
                if name in NUMERIC_COLUMNS:
                    values[name] = parse_number(raw)
                else:
                    values[name] = "" if raw is None else str(raw).strip().strip('"')

            if not values["cef"]:
                skipped += 1
                logger.warning(f"Ligne {row_number} sans CEF, ignorée")
                continue

            participants.append(Participant(
                cef=values["cef"],
                last_name=values["nom"],
                first_name=values["prenom"],
                group=values["groupe"],
                annual_hours=values["mhAnnuelleAffectee"],
                registration_fee=values["fraisInscription"],
                tuition_fee=values["fraisFormation"],
                training_year=training_year,
            ))

        logger.info(f"Import terminé: {len(participants)} participants, {skipped} lignes ignorées")
        return participants


def export_participants_csv(participants: List[Participant], output_path: Path) -> None:
    """Write participants in the import format (without the training year)."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f, quoting=csv.QUOTE_NONNUMERIC)
        writer.writerow(REQUIRED_COLUMNS)
        for participant in participants:
            data = participant_to_dict(participant)
            writer.writerow([data[c] for c in REQUIRED_COLUMNS])
    logger.info(f"Export participants: {output_path}")


def format_decimal(value: float, decimals: Optional[int] = None) -> str:
    """Format a number with a decimal comma ("1234,5")."""
    if decimals is not None:
        text = f"{value:.{decimals}f}"
    else:
        text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text.replace(".", ",")


def export_financials_csv(
    participants: List[Participant],
    financials: Dict[str, ParticipantFinancials],
    months: List[MonthOption],
    output_path: Path,
) -> None:
    """
    Write the financial report as a semicolon-separated CSV.

    Columns: identity, registration fee/payment/status, one column per
    month, total paid and tuition balance. Decimals use a comma.
    """
    headers = [
        "CEF", "Nom", "Prenom", "Groupe",
        "Frais Inscription", "Paiement Inscription", "Statut Inscription",
        *[m.label for m in months],
        "Total Payé", "Solde Formation",
    ]
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8-sig', newline='') as f:
        writer = csv.writer(f, delimiter=';', quoting=csv.QUOTE_ALL)
        writer.writerow(headers)
        for row in financial_rows(participants, financials, months):
            p = row.participant
            writer.writerow([
                p.cef, p.last_name, p.first_name, p.group,
                format_decimal(p.registration_fee),
                format_decimal(row.record.inscription_payment),
                row.status.value,
                *[format_decimal(amount) for amount in row.monthly],
                format_decimal(row.total_paid),
                format_decimal(row.balance),
            ])
    logger.info(f"Export financier CSV: {output_path}")
