"""
Excel Writer Module

Generates formatted Excel financial reports with styling.
"""

from pathlib import Path
from typing import Dict, List

from openpyxl import Workbook
from openpyxl.styles import (
    Font, PatternFill, Alignment, Border, Side
)
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from domain.entities import InscriptionStatus, MonthOption, Participant, ParticipantFinancials
from domain.financials import financial_rows, financial_totals
from infrastructure.logger import get_logger

logger = get_logger("ExcelWriter")


class ExcelWriter:
    """
    Generates formatted Excel financial reports.

    Output format:
    - Row 1: Title (training year and group)
    - Row 3: Column headers
    - One row per participant, then a totals row

    Styling:
    - Green/orange registration status cells
    - Red balance when money is still owed
    """

    COLORS = {
        'green': PatternFill(start_color='90EE90', end_color='90EE90', fill_type='solid'),
        'orange': PatternFill(start_color='FFA500', end_color='FFA500', fill_type='solid'),
        'red': PatternFill(start_color='FF6B6B', end_color='FF6B6B', fill_type='solid'),
        'gray': PatternFill(start_color='D3D3D3', end_color='D3D3D3', fill_type='solid'),
        'header': PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid'),
    }

    BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    MONEY_FORMAT = '#,##0.00'

    HEADER_ROW = 3

    def create_financial_report(
        self,
        participants: List[Participant],
        financials: Dict[str, ParticipantFinancials],
        months: List[MonthOption],
        training_year: str,
        group_label: str,
        output_path: Path
    ) -> None:
        """
        Create the financial report workbook.

        Args:
            participants: Participants to list, already filtered and sorted
            financials: Payment records
            months: Months of the training year
            training_year: Training year shown in the title
            group_label: Group shown in the title
            output_path: Destination .xlsx path
        """
        wb = Workbook()
        ws = wb.active
        ws.title = "Recettes"

        self._write_sheet(ws, participants, financials, months, training_year, group_label)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(f"Rapport financier Excel enregistré: {output_path}")

    def _write_sheet(
        self,
        ws: Worksheet,
        participants: List[Participant],
        financials: Dict[str, ParticipantFinancials],
        months: List[MonthOption],
        training_year: str,
        group_label: str
    ) -> None:
        """Write title, headers, participant rows and totals."""
        headers = [
            "CEF", "Participant", "Groupe",
            "Frais Inscription", "Paiement Inscription", "Statut Inscription",
            *[m.label for m in months],
            "Total Payé", "Solde Formation",
        ]

        ws.cell(row=1, column=1, value=f"Rapport Financier - Année: {training_year} | Groupe: {group_label}")
        ws.cell(row=1, column=1).font = Font(bold=True, size=14)

        for col, title in enumerate(headers, start=1):
            cell = ws.cell(row=self.HEADER_ROW, column=col, value=title)
            cell.fill = self.COLORS['header']
            cell.font = Font(bold=True, color='FFFFFF')
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            cell.border = self.BORDER

        row_idx = self.HEADER_ROW + 1
        for row in financial_rows(participants, financials, months):
            p = row.participant
            values = [
                p.cef, p.full_name, p.group,
                p.registration_fee, row.record.inscription_payment, row.status.value,
                *row.monthly,
                row.total_paid, row.balance,
            ]
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row=row_idx, column=col, value=value)
                cell.border = self.BORDER
                if isinstance(value, float):
                    cell.number_format = self.MONEY_FORMAT

            status_cell = ws.cell(row=row_idx, column=6)
            status_cell.fill = self.COLORS['green'] if row.status == InscriptionStatus.PAID else self.COLORS['orange']
            status_cell.alignment = Alignment(horizontal='center')

            if row.balance < 0:
                ws.cell(row=row_idx, column=len(headers)).fill = self.COLORS['red']
            row_idx += 1

        totals = financial_totals(participants, financials, months)
        total_values = [
            "Totaux", "", "",
            totals.inscription_fees, totals.inscription_paid, "",
            *[totals.monthly[m.value] for m in months],
            totals.total_paid, totals.balance,
        ]
        for col, value in enumerate(total_values, start=1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.font = Font(bold=True)
            cell.fill = self.COLORS['gray']
            cell.border = self.BORDER
            if isinstance(value, float):
                cell.number_format = self.MONEY_FORMAT

        # Column widths
        ws.column_dimensions['A'].width = 12
        ws.column_dimensions['B'].width = 28
        ws.column_dimensions['C'].width = 12
        for col in range(4, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col)].width = 14
        ws.row_dimensions[self.HEADER_ROW].height = 32
        ws.freeze_panes = ws.cell(row=self.HEADER_ROW + 1, column=3)
