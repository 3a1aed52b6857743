"""
PDF Writer Module

Generates PDF documents using fpdf2:
- Absence certificate ("Attestation d'Absences") for one participant
- Monthly absence summary of a group, read from committed history
- Financial report of a training year
"""

import re
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from fpdf import FPDF

from domain.calendar_utils import WEEKDAY_NAMES_FR
from domain.entities import InscriptionStatus, MonthOption, Participant, ParticipantFinancials
from domain.financials import financial_rows, financial_totals
from domain.statistics import AbsenceReceipt, MonthlySummary
from infrastructure.logger import get_logger

logger = get_logger("PdfWriter")


# ==============================================================================
# Font Configuration
# ==============================================================================
WINDOWS_FONT_PATHS: List[Path] = [
    Path("C:/Windows/Fonts/arial.ttf"),
    Path("C:/Windows/Fonts/segoeui.ttf"),
]

MACOS_FONT_PATHS: List[Path] = [
    Path("/Library/Fonts/Arial Unicode.ttf"),
    Path("/System/Library/Fonts/Supplemental/Arial.ttf"),
]

LINUX_FONT_PATHS: List[Path] = [
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/TTF/DejaVuSans.ttf"),
    Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
]

FALLBACK_FONT = "Helvetica"


def find_unicode_font(custom_font_path: Optional[str] = None) -> Optional[Path]:
    """
    Search for an available TrueType font with cross-platform support.
    """
    if custom_font_path:
        custom_path = Path(custom_font_path)
        if custom_path.exists():
            logger.info(f"Police personnalisée: {custom_path}")
            return custom_path
        else:
            logger.warning(f"Police personnalisée introuvable: {custom_path}")

    for font_path in _get_platform_fonts():
        if font_path.exists():
            logger.debug(f"Police système trouvée: {font_path}")
            return font_path

    return None


def _get_platform_fonts() -> List[Path]:
    """Get the font search list for the current platform."""
    if sys.platform == 'win32':
        return WINDOWS_FONT_PATHS
    elif sys.platform == 'darwin':
        return MACOS_FONT_PATHS
    else:
        return LINUX_FONT_PATHS


# ==============================================================================
# ReportPdf Class
# ==============================================================================
class ReportPdf(FPDF):
    """
    Custom FPDF class with optional TrueType font and a page-number footer.
    """

    _font_family: str = FALLBACK_FONT
    _font_loaded: bool = False

    def __init__(
        self,
        title: str = "",
        orientation: str = 'P',
        custom_font_path: Optional[str] = None
    ):
        super().__init__(orientation=orientation, unit='mm', format='A4')
        self.title_text = title
        if title:
            self.set_title(title)
        # Core fonts cover French text; a TTF is only loaded on request
        if custom_font_path:
            self._setup_font(custom_font_path)

    def _setup_font(self, custom_font_path: Optional[str] = None) -> None:
        """Load a TrueType font if available, otherwise keep Helvetica."""
        font_path = find_unicode_font(custom_font_path)

        if font_path:
            try:
                self.add_font("ReportFont", "", str(font_path))
                self._font_family = "ReportFont"
                self._font_loaded = True
                logger.info(f"Police chargée: {font_path.name}")
            except Exception as e:
                logger.warning(f"Impossible de charger la police {font_path}: {e}")
                self._font_family = FALLBACK_FONT
                self._font_loaded = False

    @property
    def font_family_name(self) -> str:
        return self._font_family

    @property
    def bold_style(self) -> str:
        # A single TTF file has no bold variant
        return '' if self._font_loaded else 'B'

    def text_safe(self, text: str) -> str:
        """Replace characters the core fonts cannot encode."""
        if self._font_loaded:
            return text
        return text.encode('latin-1', errors='replace').decode('latin-1')

    def footer(self) -> None:
        """Draw page footer with page number."""
        self.set_y(-12)
        self.set_font(self._font_family, '', 8)
        self.set_text_color(120, 120, 120)
        self.cell(0, 10, f'Page {self.page_no()}/{{nb}}', align='C')


# ==============================================================================
# PdfWriter Class
# ==============================================================================
class PdfWriter:
    """
    Renders read-only projections to PDF.

    Features:
    - Grid tables with a colored header row
    - Bold totals row
    - Automatic page breaks with repeated table header
    """

    COLORS: Dict[str, Tuple[int, int, int]] = {
        'green': (144, 238, 144),
        'red': (255, 107, 107),
        'orange': (255, 165, 0),
        'gray': (211, 211, 211),
        'header': (68, 114, 196),
        'white': (255, 255, 255),
    }

    MARGIN = 14
    ROW_HEIGHT = 7
    THIN_LINE = 0.2

    def __init__(self, custom_font_path: Optional[str] = None):
        self._custom_font_path = custom_font_path

    def _new_pdf(self, title: str, orientation: str = 'P') -> ReportPdf:
        pdf = ReportPdf(title=title, orientation=orientation, custom_font_path=self._custom_font_path)
        pdf.alias_nb_pages()
        pdf.set_margins(self.MARGIN, self.MARGIN, self.MARGIN)
        pdf.set_auto_page_break(auto=False)
        pdf.add_page()
        return pdf

    # ──────────────────────────────────────────────────────────────────────
    # Absence certificate
    # ──────────────────────────────────────────────────────────────────────
    def create_absence_receipt(self, receipt: AbsenceReceipt, output_path: Path) -> None:
        """
        Create the absence certificate of a participant.

        Args:
            receipt: Absences over the period (from StatisticsCalculator)
            output_path: Destination path
        """
        pdf = self._new_pdf("Attestation d'Absences")
        p = receipt.participant
        font = pdf.font_family_name

        pdf.set_font(font, pdf.bold_style, 22)
        pdf.cell(0, 12, pdf.text_safe("Attestation d'Absences"), align='C', new_x='LMARGIN', new_y='NEXT')
        pdf.ln(6)

        pdf.set_font(font, '', 11)
        pdf.set_text_color(100, 100, 100)
        info_y = pdf.get_y()
        for line in (
            f"Participant: {p.full_name}",
            f"CEF: {p.cef}",
            f"Groupe: {p.group}",
            f"Année de Formation: {p.training_year}",
        ):
            pdf.cell(0, 6, pdf.text_safe(line), new_x='LMARGIN', new_y='NEXT')

        pdf.set_xy(self.MARGIN, info_y)
        pdf.cell(0, 6, f"Période du: {receipt.start.strftime('%d/%m/%Y')}", align='R', new_x='LMARGIN', new_y='NEXT')
        pdf.cell(0, 6, f"Au: {receipt.end.strftime('%d/%m/%Y')}", align='R', new_x='LMARGIN', new_y='NEXT')
        pdf.set_text_color(0, 0, 0)
        pdf.set_y(info_y + 30)

        if receipt.absences:
            widths = [50, 60, 72]
            rows = [
                [line.date.strftime('%d/%m/%Y'), WEEKDAY_NAMES_FR[line.date.weekday()], f"{line.hours:.1f}h"]
                for line in receipt.absences
            ]
            self._draw_table(pdf, ["Date", "Jour", "Heures d'absence"], rows, widths, aligns=['C', 'C', 'R'])
            self._draw_total_row(pdf, [
                ("Total des heures d'absence", widths[0] + widths[1], 'R'),
                (f"{receipt.total_hours:.1f}h", widths[2], 'R'),
            ])
        else:
            pdf.set_font(font, '', 11)
            pdf.cell(0, 8, pdf.text_safe("Aucune absence enregistrée pour cette période."), align='C',
                     new_x='LMARGIN', new_y='NEXT')

        self._save(pdf, output_path)

    # ──────────────────────────────────────────────────────────────────────
    # Monthly history summary
    # ──────────────────────────────────────────────────────────────────────
    def create_monthly_summary(self, summary: MonthlySummary, output_path: Path) -> None:
        """
        Create the monthly absence summary of a group.

        One column per week of the month ("S1", "S2", ...) plus the month total.
        """
        pdf = self._new_pdf("Récapitulatif Mensuel des Absences", orientation='L')
        font = pdf.font_family_name

        pdf.set_font(font, pdf.bold_style, 18)
        pdf.cell(0, 10, pdf.text_safe("Récapitulatif Mensuel des Absences"), new_x='LMARGIN', new_y='NEXT')
        pdf.set_font(font, '', 11)
        pdf.set_text_color(100, 100, 100)
        pdf.cell(
            0, 8,
            pdf.text_safe(f"Année: {summary.training_year} | Mois: {summary.month_label} | Groupe: {summary.group}"),
            new_x='LMARGIN', new_y='NEXT'
        )
        pdf.set_text_color(0, 0, 0)
        pdf.ln(4)

        week_count = len(summary.week_labels)
        available = pdf.w - 2 * self.MARGIN
        name_w = 70
        col_w = (available - name_w) / (week_count + 1)
        headers = ["Participant", *[f"S{i + 1}" for i in range(week_count)], "Total Mois"]
        widths = [name_w] + [col_w] * (week_count + 1)
        rows = [
            [row.participant.full_name, *[f"{h:.1f}h" for h in row.weekly_hours], f"{row.total_hours:.1f}h"]
            for row in summary.rows
        ]
        self._draw_table(pdf, headers, rows, widths, aligns=['L'] + ['C'] * (week_count + 1))

        self._save(pdf, output_path)

    # ──────────────────────────────────────────────────────────────────────
    # Financial report
    # ──────────────────────────────────────────────────────────────────────
    def create_financial_report(
        self,
        participants: List[Participant],
        financials: Dict[str, ParticipantFinancials],
        months: List[MonthOption],
        training_year: str,
        group_label: str,
        output_path: Path
    ) -> None:
        """Create the financial report (landscape) with a totals row."""
        if not participants:
            return

        pdf = self._new_pdf("Rapport Financier", orientation='L')
        font = pdf.font_family_name

        pdf.set_font(font, pdf.bold_style, 18)
        pdf.cell(0, 10, "Rapport Financier", new_x='LMARGIN', new_y='NEXT')
        pdf.set_font(font, '', 11)
        pdf.set_text_color(100, 100, 100)
        pdf.cell(0, 8, pdf.text_safe(f"Année: {training_year} | Groupe: {group_label}"), new_x='LMARGIN', new_y='NEXT')
        pdf.set_text_color(0, 0, 0)
        pdf.ln(4)

        available = pdf.w - 2 * self.MARGIN
        name_w, inscription_w, total_w = 45, 30, 20
        month_w = (available - name_w - inscription_w - 2 * total_w) / max(len(months), 1)
        headers = ["Participant", "Inscription", *[m.label[:3] for m in months], "Total Payé", "Solde"]
        widths = [name_w, inscription_w] + [month_w] * len(months) + [total_w, total_w]

        rows = []
        fills = []
        for row in financial_rows(participants, financials, months):
            p = row.participant
            rows.append([
                p.full_name,
                f"{_money(row.record.inscription_payment)}/{_money(p.registration_fee)}",
                *[_money(amount) for amount in row.monthly],
                _money(row.total_paid),
                _money(row.balance),
            ])
            fills.append({1: 'green' if row.status == InscriptionStatus.PAID else 'orange'})

        self._draw_table(pdf, headers, rows, widths,
                         aligns=['L'] + ['R'] * (len(headers) - 1), font_size=8, cell_fills=fills)

        totals = financial_totals(participants, financials, months)
        cells = [
            ("Totaux", name_w, 'L'),
            (f"{_money(totals.inscription_paid)}/{_money(totals.inscription_fees)}", inscription_w, 'R'),
            *[(_money(totals.monthly[m.value]), month_w, 'R') for m in months],
            (_money(totals.total_paid), total_w, 'R'),
            (_money(totals.balance), total_w, 'R'),
        ]
        self._draw_total_row(pdf, cells, font_size=8)

        self._save(pdf, output_path)

    # ──────────────────────────────────────────────────────────────────────
    # Drawing helpers
    # ──────────────────────────────────────────────────────────────────────
    def _draw_header_row(self, pdf: ReportPdf, headers: List[str], widths: List[float], font_size: int) -> None:
        pdf.set_font(pdf.font_family_name, pdf.bold_style, font_size)
        pdf.set_fill_color(*self.COLORS['header'])
        pdf.set_text_color(255, 255, 255)
        pdf.set_line_width(self.THIN_LINE)
        pdf.set_x(self.MARGIN)
        for title, width in zip(headers, widths):
            pdf.cell(width, self.ROW_HEIGHT + 1, pdf.text_safe(title), border=1, align='C', fill=True)
        pdf.ln(self.ROW_HEIGHT + 1)
        pdf.set_text_color(0, 0, 0)

    def _draw_table(
        self,
        pdf: ReportPdf,
        headers: List[str],
        rows: List[List[str]],
        widths: List[float],
        aligns: List[str],
        font_size: int = 10,
        cell_fills: Optional[List[Dict[int, str]]] = None
    ) -> None:
        """Draw a grid table, repeating the header after each page break."""
        self._draw_header_row(pdf, headers, widths, font_size)
        pdf.set_font(pdf.font_family_name, '', font_size)

        for index, row in enumerate(rows):
            if pdf.get_y() + self.ROW_HEIGHT > pdf.h - 20:
                pdf.add_page()
                self._draw_header_row(pdf, headers, widths, font_size)
                pdf.set_font(pdf.font_family_name, '', font_size)

            fills = cell_fills[index] if cell_fills else {}
            pdf.set_x(self.MARGIN)
            for col, (value, width, align) in enumerate(zip(row, widths, aligns)):
                color = fills.get(col)
                if color:
                    pdf.set_fill_color(*self.COLORS[color])
                pdf.cell(width, self.ROW_HEIGHT, pdf.text_safe(str(value)), border=1, align=align, fill=bool(color))
            pdf.ln(self.ROW_HEIGHT)

    def _draw_total_row(self, pdf: ReportPdf, cells: List[Tuple[str, float, str]], font_size: int = 10) -> None:
        pdf.set_font(pdf.font_family_name, pdf.bold_style, font_size)
        pdf.set_fill_color(*self.COLORS['gray'])
        pdf.set_x(self.MARGIN)
        for text, width, align in cells:
            pdf.cell(width, self.ROW_HEIGHT, pdf.text_safe(text), border=1, align=align, fill=True)
        pdf.ln(self.ROW_HEIGHT)

    def _save(self, pdf: ReportPdf, output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        pdf.output(str(output_path))
        logger.info(f"PDF enregistré: {output_path}")


# ==============================================================================
# Utility Functions
# ==============================================================================
def _money(value: float) -> str:
    return f"{value:.2f}".replace('.', ',')


_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\s]+')


def format_filename(pattern: str, **fields) -> str:
    """
    Format filename pattern with placeholders.

    Values are made filesystem-safe ("Septembre 2024" -> "Septembre_2024").
    """
    safe = {key: _UNSAFE_FILENAME.sub('_', str(value)) for key, value in fields.items()}
    return pattern.format(**safe)
