"""
Main Window Module

PyQt6 implementation of the absence tracker UI.
Administrators get one tab per activity (attendance entry, statistics,
history, receipts, payments, data, accounts, settings); participants
only see their own absences and payments.
"""

import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QLabel, QComboBox, QPushButton, QLineEdit, QGroupBox, QTabWidget,
    QTableWidget, QTableWidgetItem, QHeaderView, QAbstractItemView,
    QDateEdit, QDoubleSpinBox, QListWidget, QFileDialog, QMessageBox,
    QApplication
)
from PyQt6.QtCore import Qt, QDate, QTimer
from PyQt6.QtGui import QAction, QActionGroup, QColor

from application.app_service import AbsenceTrackerService
from config.config_manager import ConfigManager
from domain.absence_ledger import absence_dates, is_absent
from domain.calendar_utils import (
    WEEKDAY_NAMES_FR, current_training_year, format_week_label,
    months_for_training_year, parse_iso, to_iso, weeks_for_month
)
from domain.entities import ALL_GROUPS, InscriptionStatus, Participant, UserRole, WeekScope
from domain.exceptions import AbsenceTrackerError, ImportFormatError, StorageError
from domain.financials import financial_rows, get_financials, inscription_status_for
from domain.hour_rates import hours_for
from domain.sorting import sort_by_name
from domain.statistics import filter_participants, groups_of_year
from infrastructure.logger import get_logger
from ui.login_dialog import LoginDialog
from ui.styles import ThemeManager

logger = get_logger("MainWindow")

ROLE_LABELS = {UserRole.ADMIN: "Administrateur", UserRole.USER: "Participant"}


def _read_only_item(text: str) -> QTableWidgetItem:
    item = QTableWidgetItem(text)
    item.setFlags(item.flags() & ~Qt.ItemFlag.ItemIsEditable)
    return item


def _make_table(headers: List[str]) -> QTableWidget:
    table = QTableWidget(0, len(headers))
    table.setHorizontalHeaderLabels(headers)
    table.setAlternatingRowColors(True)
    table.verticalHeader().setVisible(False)
    table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
    table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.ResizeToContents)
    table.horizontalHeader().setStretchLastSection(True)
    return table


def _hours(value: float) -> str:
    return f"{value:.1f}h"


def _money(value: float) -> str:
    return f"{value:.2f}".replace(".", ",")


class MainWindow(QMainWindow):
    """
    Main application window.

    Layout:
    - Top: training year selector and logged-in user
    - Center: one tab per activity, depending on the session role
    """

    def __init__(self, service: AbsenceTrackerService):
        super().__init__()
        self.service = service
        self.config_manager = service.config_manager
        self.config = self.config_manager.config
        # Set while tables are filled, so edits are not taken as user input
        self._updating = False

        self._init_ui()
        self._build_tabs()

    def _init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle("Suivi des Absences")
        self.setMinimumSize(1100, 720)

        self._create_menu_bar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(10, 10, 10, 10)
        main_layout.setSpacing(10)

        top_layout = QHBoxLayout()
        top_layout.addWidget(QLabel("Année de formation:"))
        self.cmb_year = QComboBox()
        self.cmb_year.setMinimumWidth(140)
        self.cmb_year.currentIndexChanged.connect(self._on_year_changed)
        top_layout.addWidget(self.cmb_year)
        top_layout.addStretch()
        self.lbl_user = QLabel("")
        top_layout.addWidget(self.lbl_user)
        main_layout.addLayout(top_layout)

        self.tabs = QTabWidget()
        main_layout.addWidget(self.tabs, stretch=1)

        self._apply_styles()

    def _create_menu_bar(self):
        """Create the menu bar."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("Fichier")
        logout_action = QAction("Déconnexion", self)
        logout_action.triggered.connect(self._on_logout)
        file_menu.addAction(logout_action)
        file_menu.addSeparator()
        exit_action = QAction("Quitter", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        theme_menu = menubar.addMenu("Thème")
        theme_group = QActionGroup(self)
        theme_group.setExclusive(True)
        current_theme = self.config.ui_prefs.theme_name
        for theme_name in ThemeManager.get_available_themes():
            action = QAction(theme_name, self, checkable=True)
            if theme_name == current_theme:
                action.setChecked(True)
            action.triggered.connect(lambda checked, name=theme_name: self._on_switch_theme(name))
            theme_menu.addAction(action)
            theme_group.addAction(action)

    def _apply_styles(self):
        """Apply visual styles to the window using ThemeManager."""
        theme = ThemeManager.get_theme(self.config.ui_prefs.theme_name)
        self.setStyleSheet(theme.stylesheet)

    def _on_switch_theme(self, theme_name: str):
        self.config.ui_prefs.theme_name = theme_name
        self.config_manager.save()
        self._apply_styles()

    # ──────────────────────────────────────────────────────────────────────
    # Session & tabs
    # ──────────────────────────────────────────────────────────────────────
    @property
    def is_admin(self) -> bool:
        return bool(self.service.session and self.service.session.is_admin)

    def _build_tabs(self):
        """Create the tabs allowed for the current session."""
        self.tabs.clear()
        session = self.service.session
        if session is None:
            return
        self.lbl_user.setText(f"{session.username} ({ROLE_LABELS[session.role]})")

        if self.is_admin:
            self.tabs.addTab(self._create_entry_tab(), "Saisie")
            self.tabs.addTab(self._create_statistics_tab(), "Statistiques")
            self.tabs.addTab(self._create_history_tab(), "Historique")
            self.tabs.addTab(self._create_receipt_tab(), "Reçus")
            self.tabs.addTab(self._create_finance_tab(), "Recettes")
            self.tabs.addTab(self._create_data_tab(), "Données")
            self.tabs.addTab(self._create_accounts_tab(), "Comptes")
            self.tabs.addTab(self._create_settings_tab(), "Paramètres")
        else:
            self.tabs.addTab(self._create_my_absences_tab(), "Mes Absences")
            self.tabs.addTab(self._create_my_payments_tab(), "Mes Paiements")

        self._reload_years()

    def _on_logout(self):
        self.service.logout()
        self.hide()
        dialog = LoginDialog(self.service)
        if dialog.exec():
            self._build_tabs()
            self.show()
        else:
            self.close()

    def _reload_years(self, select: Optional[str] = None):
        """Fill the year selector; keeps the current year when possible."""
        current = select or self.cmb_year.currentText() or current_training_year()
        self._updating = True
        self.cmb_year.clear()
        self.cmb_year.addItems(self.service.state.training_years)
        index = self.cmb_year.findText(current)
        self.cmb_year.setCurrentIndex(index if index >= 0 else 0)
        self._updating = False
        self._on_year_changed()

    @property
    def training_year(self) -> str:
        return self.cmb_year.currentText()

    def _on_year_changed(self):
        if self._updating:
            return
        if self.is_admin:
            self._fill_month_combo(self.cmb_entry_month)
            self._fill_month_combo(self.cmb_history_month)
            self._fill_group_combo(self.cmb_entry_group, with_all=True)
            self._fill_group_combo(self.cmb_stats_group, with_all=True)
            self._fill_group_combo(self.cmb_history_group, with_all=False)
            self._fill_group_combo(self.cmb_finance_group, with_all=True)
            self._fill_receipt_participants()
            self._refresh_all()
        elif self.service.session is not None:
            self._refresh_my_absences()
            self._refresh_my_payments()

    def _refresh_all(self):
        self._refresh_weeks()
        self._refresh_statistics()
        self._refresh_history()
        self._refresh_finance()
        self._refresh_data()
        self._refresh_accounts()
        self._refresh_settings()

    def _fill_month_combo(self, combo: QComboBox):
        current = combo.currentData()
        combo.blockSignals(True)
        combo.clear()
        if self.training_year:
            for month in months_for_training_year(self.training_year):
                combo.addItem(month.label, month.value)
        index = combo.findData(current)
        combo.setCurrentIndex(index if index >= 0 else 0)
        combo.blockSignals(False)

    def _fill_group_combo(self, combo: QComboBox, with_all: bool):
        current = combo.currentData()
        combo.blockSignals(True)
        combo.clear()
        if with_all:
            combo.addItem("Tous les groupes", ALL_GROUPS)
        for group in groups_of_year(self.service.state.participants, self.training_year):
            combo.addItem(group, group)
        index = combo.findData(current)
        combo.setCurrentIndex(index if index >= 0 else 0)
        combo.blockSignals(False)

    # ──────────────────────────────────────────────────────────────────────
    # Saisie
    # ──────────────────────────────────────────────────────────────────────
    def _create_entry_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        filters = QHBoxLayout()
        filters.addWidget(QLabel("Mois:"))
        self.cmb_entry_month = QComboBox()
        self.cmb_entry_month.currentIndexChanged.connect(self._refresh_weeks)
        filters.addWidget(self.cmb_entry_month)
        filters.addWidget(QLabel("Semaine:"))
        self.cmb_entry_week = QComboBox()
        self.cmb_entry_week.setMinimumWidth(240)
        self.cmb_entry_week.currentIndexChanged.connect(self._refresh_entry_grid)
        filters.addWidget(self.cmb_entry_week)
        filters.addWidget(QLabel("Groupe:"))
        self.cmb_entry_group = QComboBox()
        self.cmb_entry_group.currentIndexChanged.connect(self._refresh_entry_grid)
        filters.addWidget(self.cmb_entry_group)
        filters.addStretch()
        layout.addLayout(filters)

        self.entry_table = _make_table(["Participant", "Groupe"])
        self.entry_table.itemChanged.connect(self._on_absence_toggled)
        layout.addWidget(self.entry_table, stretch=1)

        bottom = QHBoxLayout()
        bottom.addWidget(QLabel("Cochez une case pour marquer une absence."))
        bottom.addStretch()
        self.btn_save_week = QPushButton("Enregistrer la semaine")
        self.btn_save_week.clicked.connect(self._on_save_week)
        bottom.addWidget(self.btn_save_week)
        layout.addLayout(bottom)
        return tab

    def _refresh_weeks(self):
        month_value = self.cmb_entry_month.currentData()
        current = self.cmb_entry_week.currentIndex()
        self.cmb_entry_week.blockSignals(True)
        self.cmb_entry_week.clear()
        for index, week in enumerate(weeks_for_month(month_value or "")):
            self.cmb_entry_week.addItem(format_week_label(week), index)
        if 0 <= current < self.cmb_entry_week.count():
            self.cmb_entry_week.setCurrentIndex(current)
        self.cmb_entry_week.blockSignals(False)
        self._refresh_entry_grid()

    def _current_week(self) -> List[date]:
        weeks = weeks_for_month(self.cmb_entry_month.currentData() or "")
        index = self.cmb_entry_week.currentData()
        if index is None or not 0 <= index < len(weeks):
            return []
        return weeks[index]

    def _refresh_entry_grid(self):
        week = self._current_week()
        participants = sort_by_name(filter_participants(
            self.service.state.participants, self.training_year,
            self.cmb_entry_group.currentData() or ALL_GROUPS,
        ))
        headers = ["Participant", "Groupe"] + [
            f"{WEEKDAY_NAMES_FR[d.weekday()][:3]}. {d.strftime('%d/%m')}" for d in week
        ]

        self._updating = True
        table = self.entry_table
        table.clear()
        table.setColumnCount(len(headers))
        table.setHorizontalHeaderLabels(headers)
        table.setRowCount(len(participants))
        ledger = self.service.state.attendance
        for row, participant in enumerate(participants):
            name_item = _read_only_item(participant.full_name)
            name_item.setData(Qt.ItemDataRole.UserRole, participant.cef)
            table.setItem(row, 0, name_item)
            table.setItem(row, 1, _read_only_item(participant.group))
            for col, day in enumerate(week, start=2):
                iso = to_iso(day)
                item = QTableWidgetItem("")
                item.setFlags(Qt.ItemFlag.ItemIsUserCheckable | Qt.ItemFlag.ItemIsEnabled)
                item.setData(Qt.ItemDataRole.UserRole, iso)
                checked = is_absent(ledger, participant.cef, iso)
                item.setCheckState(Qt.CheckState.Checked if checked else Qt.CheckState.Unchecked)
                table.setItem(row, col, item)
        self.btn_save_week.setEnabled(bool(week) and bool(participants))
        self._updating = False

    def _on_absence_toggled(self, item: QTableWidgetItem):
        if self._updating or item.column() < 2:
            return
        cef = self.entry_table.item(item.row(), 0).data(Qt.ItemDataRole.UserRole)
        iso = item.data(Qt.ItemDataRole.UserRole)
        absent = item.checkState() == Qt.CheckState.Checked
        if not self._apply_change(lambda: self.service.set_absence(cef, iso, absent)):
            QTimer.singleShot(0, self._refresh_entry_grid)

    def _on_save_week(self):
        scope = WeekScope(
            training_year=self.training_year,
            month_value=self.cmb_entry_month.currentData() or "",
            week_index=self.cmb_entry_week.currentData() if self.cmb_entry_week.count() else -1,
            group=self.cmb_entry_group.currentData() or ALL_GROUPS,
        )
        try:
            saved = self.service.save_week(scope)
        except StorageError as e:
            self._show_storage_error(e)
            return
        if saved:
            self._show_message_box(
                "information", "Historique",
                f"{self.cmb_entry_week.currentText()} enregistrée pour {saved} groupe(s)."
            )
            self._refresh_history()
        else:
            self._show_message_box("warning", "Historique", "Aucune donnée à enregistrer pour cette sélection.")

    # ──────────────────────────────────────────────────────────────────────
    # Statistiques
    # ──────────────────────────────────────────────────────────────────────
    def _create_statistics_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        filters = QHBoxLayout()
        filters.addWidget(QLabel("Groupe:"))
        self.cmb_stats_group = QComboBox()
        self.cmb_stats_group.currentIndexChanged.connect(self._refresh_statistics)
        filters.addWidget(self.cmb_stats_group)
        filters.addStretch()
        layout.addLayout(filters)

        cards = QHBoxLayout()
        self.lbl_overall_rate = QLabel("0%")
        self.lbl_over_threshold = QLabel("0")
        self.lbl_participant_count = QLabel("0")
        for title, value_label in (
            ("Taux d'absence global", self.lbl_overall_rate),
            ("Participants au-dessus du seuil", self.lbl_over_threshold),
            ("Participants", self.lbl_participant_count),
        ):
            box = QGroupBox(title)
            box_layout = QVBoxLayout(box)
            value_label.setObjectName("statValue")
            value_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
            box_layout.addWidget(value_label)
            cards.addWidget(box)
        layout.addLayout(cards)

        self.lbl_top_months = QLabel("")
        layout.addWidget(self.lbl_top_months)

        self.stats_table = _make_table(["Participant", "CEF", "Groupe", "Heures d'absence", "Taux d'absence"])
        self.stats_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        layout.addWidget(self.stats_table, stretch=1)
        return tab

    def _refresh_statistics(self):
        calculator = self.service.calculator()
        participants = filter_participants(
            self.service.state.participants, self.training_year,
            self.cmb_stats_group.currentData() or ALL_GROUPS,
        )
        stats = calculator.participant_statistics(participants, self.service.state.attendance)

        overall = calculator.overall_absence_rate(stats)
        self.lbl_overall_rate.setText(f"{overall:.1f}%")
        self.lbl_overall_rate.setObjectName("warningLabel" if calculator.is_rate_over_threshold(overall) else "statValue")
        self.lbl_overall_rate.style().polish(self.lbl_overall_rate)
        self.lbl_over_threshold.setText(str(calculator.count_over_threshold(stats)))
        self.lbl_participant_count.setText(str(len(stats)))

        if self.training_year:
            monthly = calculator.monthly_absence_hours(participants, self.service.state.attendance, self.training_year)
            top = calculator.top_absent_months(monthly)
            text = ", ".join(f"{m.short_name} ({_hours(m.total_hours)})" for m in top)
            self.lbl_top_months.setText(f"Mois les plus absents: {text or 'aucun'}")

        table = self.stats_table
        table.setRowCount(len(stats))
        for row, s in enumerate(stats):
            p = s.participant
            values = [p.full_name, p.cef, p.group, _hours(s.total_hours), f"{s.absence_rate * 100:.1f}%"]
            for col, value in enumerate(values):
                item = _read_only_item(value)
                if s.over_threshold:
                    item.setForeground(QColor("#d9534f"))
                table.setItem(row, col, item)

    # ──────────────────────────────────────────────────────────────────────
    # Historique
    # ──────────────────────────────────────────────────────────────────────
    def _create_history_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        filters = QHBoxLayout()
        filters.addWidget(QLabel("Mois:"))
        self.cmb_history_month = QComboBox()
        self.cmb_history_month.currentIndexChanged.connect(self._refresh_history)
        filters.addWidget(self.cmb_history_month)
        filters.addWidget(QLabel("Groupe:"))
        self.cmb_history_group = QComboBox()
        self.cmb_history_group.currentIndexChanged.connect(self._refresh_history)
        filters.addWidget(self.cmb_history_group)
        filters.addStretch()
        btn_pdf = QPushButton("Exporter en PDF")
        btn_pdf.clicked.connect(self._on_export_history_pdf)
        filters.addWidget(btn_pdf)
        layout.addLayout(filters)

        self.lbl_history_info = QLabel("")
        layout.addWidget(self.lbl_history_info)
        self.history_table = _make_table(["Participant"])
        self.history_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        layout.addWidget(self.history_table, stretch=1)
        return tab

    def _refresh_history(self):
        month_value = self.cmb_history_month.currentData()
        group = self.cmb_history_group.currentData()
        table = self.history_table
        table.clear()
        table.setRowCount(0)
        if not month_value or not group:
            table.setColumnCount(1)
            table.setHorizontalHeaderLabels(["Participant"])
            self.lbl_history_info.setText("Sélectionnez un mois et un groupe.")
            return

        summary = self.service.calculator().monthly_history_summary(
            self.training_year, month_value, group,
            self.service.state.history, self.service.state.participants,
        )
        if summary is None:
            return

        committed = sum(
            1 for entry in self.service.state.history
            if entry.training_year == self.training_year and entry.group == group
            and entry.id.startswith(f"{self.training_year}-{month_value}-")
        )
        self.lbl_history_info.setText(
            f"{summary.month_label} - {group}: {committed}/{len(summary.week_labels)} semaine(s) enregistrée(s)"
        )

        headers = ["Participant"] + [f"S{i + 1}" for i in range(len(summary.week_labels))] + ["Total Mois"]
        table.setColumnCount(len(headers))
        table.setHorizontalHeaderLabels(headers)
        for col, label in enumerate(summary.week_labels, start=1):
            table.horizontalHeaderItem(col).setToolTip(label)
        table.setRowCount(len(summary.rows))
        for row, summary_row in enumerate(summary.rows):
            values = [summary_row.participant.full_name]
            values += [_hours(h) for h in summary_row.weekly_hours]
            values.append(_hours(summary_row.total_hours))
            for col, value in enumerate(values):
                table.setItem(row, col, _read_only_item(value))

    def _on_export_history_pdf(self):
        month_value = self.cmb_history_month.currentData()
        group = self.cmb_history_group.currentData()
        if not month_value or not group:
            return
        self._run_export(lambda: self.service.export_history_pdf(self.training_year, month_value, group))

    # ──────────────────────────────────────────────────────────────────────
    # Reçus
    # ──────────────────────────────────────────────────────────────────────
    def _create_receipt_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        form_group = QGroupBox("Attestation d'absences")
        form = QGridLayout(form_group)
        form.addWidget(QLabel("Participant:"), 0, 0)
        self.cmb_receipt_participant = QComboBox()
        self.cmb_receipt_participant.setMinimumWidth(260)
        self.cmb_receipt_participant.currentIndexChanged.connect(self._refresh_receipt)
        form.addWidget(self.cmb_receipt_participant, 0, 1)

        today = QDate.currentDate()
        form.addWidget(QLabel("Du:"), 1, 0)
        self.date_receipt_start = QDateEdit(today.addMonths(-1))
        self.date_receipt_start.setCalendarPopup(True)
        self.date_receipt_start.setDisplayFormat("dd/MM/yyyy")
        self.date_receipt_start.dateChanged.connect(self._refresh_receipt)
        form.addWidget(self.date_receipt_start, 1, 1)
        form.addWidget(QLabel("Au:"), 2, 0)
        self.date_receipt_end = QDateEdit(today)
        self.date_receipt_end.setCalendarPopup(True)
        self.date_receipt_end.setDisplayFormat("dd/MM/yyyy")
        self.date_receipt_end.dateChanged.connect(self._refresh_receipt)
        form.addWidget(self.date_receipt_end, 2, 1)

        btn_pdf = QPushButton("Générer le PDF")
        btn_pdf.clicked.connect(self._on_export_receipt)
        form.addWidget(btn_pdf, 3, 1)
        layout.addWidget(form_group)

        self.receipt_table = _make_table(["Date", "Jour", "Heures d'absence"])
        self.receipt_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        layout.addWidget(self.receipt_table, stretch=1)
        self.lbl_receipt_total = QLabel("")
        layout.addWidget(self.lbl_receipt_total)
        return tab

    def _fill_receipt_participants(self):
        current = self.cmb_receipt_participant.currentData()
        combo = self.cmb_receipt_participant
        combo.blockSignals(True)
        combo.clear()
        for p in sort_by_name(self.service.state.participants_for_year(self.training_year)):
            combo.addItem(f"{p.full_name} ({p.cef})", p.cef)
        index = combo.findData(current)
        combo.setCurrentIndex(index if index >= 0 else 0)
        combo.blockSignals(False)
        self._refresh_receipt()

    def _receipt_period(self):
        return self.date_receipt_start.date().toPyDate(), self.date_receipt_end.date().toPyDate()

    def _refresh_receipt(self):
        participant = self.service.state.find_participant(self.cmb_receipt_participant.currentData() or "")
        self.receipt_table.setRowCount(0)
        if participant is None:
            self.lbl_receipt_total.setText("")
            return
        start, end = self._receipt_period()
        receipt = self.service.calculator().absence_receipt(participant, self.service.state.attendance, start, end)
        self.receipt_table.setRowCount(len(receipt.absences))
        for row, line in enumerate(receipt.absences):
            self.receipt_table.setItem(row, 0, _read_only_item(line.date.strftime("%d/%m/%Y")))
            self.receipt_table.setItem(row, 1, _read_only_item(WEEKDAY_NAMES_FR[line.date.weekday()]))
            self.receipt_table.setItem(row, 2, _read_only_item(_hours(line.hours)))
        self.lbl_receipt_total.setText(f"Total des heures d'absence: {_hours(receipt.total_hours)}")

    def _on_export_receipt(self):
        cef = self.cmb_receipt_participant.currentData()
        if not cef:
            return
        start, end = self._receipt_period()
        self._run_export(lambda: self.service.export_receipt_pdf(cef, start, end))

    # ──────────────────────────────────────────────────────────────────────
    # Recettes
    # ──────────────────────────────────────────────────────────────────────
    def _create_finance_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        filters = QHBoxLayout()
        filters.addWidget(QLabel("Groupe:"))
        self.cmb_finance_group = QComboBox()
        self.cmb_finance_group.currentIndexChanged.connect(self._refresh_finance)
        filters.addWidget(self.cmb_finance_group)
        filters.addStretch()
        for text, handler in (
            ("Exporter CSV", self._on_export_finance_csv),
            ("Exporter Excel", self._on_export_finance_xlsx),
            ("Exporter PDF", self._on_export_finance_pdf),
        ):
            button = QPushButton(text)
            button.clicked.connect(handler)
            filters.addWidget(button)
        layout.addLayout(filters)

        layout.addWidget(QLabel("Saisissez les montants directement dans le tableau (0 efface un paiement)."))
        self.finance_table = _make_table(["Participant"])
        self.finance_table.itemChanged.connect(self._on_payment_edited)
        layout.addWidget(self.finance_table, stretch=1)
        return tab

    def _finance_selection(self) -> List[Participant]:
        return sort_by_name(filter_participants(
            self.service.state.participants, self.training_year,
            self.cmb_finance_group.currentData() or ALL_GROUPS,
        ))

    def _refresh_finance(self):
        months = months_for_training_year(self.training_year) if self.training_year else []
        self._finance_months = [m.value for m in months]
        headers = ["Participant", "Inscription", "Statut"] + [m.label.split(" ")[0] for m in months]
        headers += ["Total Payé", "Solde"]

        rows = financial_rows(self._finance_selection(), self.service.state.financials, months)
        self._updating = True
        table = self.finance_table
        table.clear()
        table.setColumnCount(len(headers))
        table.setHorizontalHeaderLabels(headers)
        table.setRowCount(len(rows))
        for r, row in enumerate(rows):
            p = row.participant
            name_item = _read_only_item(p.full_name)
            name_item.setData(Qt.ItemDataRole.UserRole, p.cef)
            table.setItem(r, 0, name_item)
            table.setItem(r, 1, QTableWidgetItem(_money(row.record.inscription_payment)))
            status_item = _read_only_item(row.status.value)
            status_item.setBackground(QColor("#90EE90" if row.status == InscriptionStatus.PAID else "#FFA500"))
            status_item.setForeground(QColor("#000000"))
            table.setItem(r, 2, status_item)
            for c, amount in enumerate(row.monthly, start=3):
                table.setItem(r, c, QTableWidgetItem(_money(amount) if amount else ""))
            table.setItem(r, len(headers) - 2, _read_only_item(_money(row.total_paid)))
            balance_item = _read_only_item(_money(row.balance))
            if row.balance < 0:
                balance_item.setForeground(QColor("#d9534f"))
            table.setItem(r, len(headers) - 1, balance_item)
        self._updating = False

    def _on_payment_edited(self, item: QTableWidgetItem):
        if self._updating:
            return
        cef = self.finance_table.item(item.row(), 0).data(Qt.ItemDataRole.UserRole)
        col = item.column()
        text = item.text() or "0"
        if col == 1:
            self._apply_change(lambda: self.service.set_inscription_payment(cef, text))
        elif 3 <= col < 3 + len(self._finance_months):
            month = self._finance_months[col - 3]
            self._apply_change(lambda: self.service.set_monthly_payment(cef, month, text))
        else:
            return
        # Rebuilding the table inside its own itemChanged signal is unsafe
        QTimer.singleShot(0, self._refresh_finance)

    def _on_export_finance_csv(self):
        group = self.cmb_finance_group.currentData() or ALL_GROUPS
        self._run_export(lambda: self.service.export_financial_csv(self.training_year, group))

    def _on_export_finance_xlsx(self):
        group = self.cmb_finance_group.currentData() or ALL_GROUPS
        self._run_export(lambda: self.service.export_financial_xlsx(self.training_year, group))

    def _on_export_finance_pdf(self):
        group = self.cmb_finance_group.currentData() or ALL_GROUPS
        self._run_export(lambda: self.service.export_financial_pdf(self.training_year, group))

    # ──────────────────────────────────────────────────────────────────────
    # Données
    # ──────────────────────────────────────────────────────────────────────
    def _create_data_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        buttons = QHBoxLayout()
        btn_import = QPushButton("Importer des participants (CSV / Excel)")
        btn_import.clicked.connect(self._on_import_participants)
        buttons.addWidget(btn_import)
        btn_export = QPushButton("Exporter les participants (CSV)")
        btn_export.clicked.connect(self._on_export_participants)
        buttons.addWidget(btn_export)
        buttons.addStretch()
        layout.addLayout(buttons)

        layout.addWidget(QLabel(
            "Colonnes requises: cef, nom, prenom, groupe, mhAnnuelleAffectee, fraisInscription, fraisFormation. "
            "L'import remplace les participants de l'année sélectionnée."
        ))
        self.data_table = _make_table([
            "CEF", "Nom", "Prénom", "Groupe", "MH Annuelle", "Frais Inscription", "Frais Formation"
        ])
        self.data_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        layout.addWidget(self.data_table, stretch=1)
        return tab

    def _refresh_data(self):
        participants = sort_by_name(self.service.state.participants_for_year(self.training_year))
        self.data_table.setRowCount(len(participants))
        for row, p in enumerate(participants):
            values = [
                p.cef, p.last_name, p.first_name, p.group,
                f"{p.annual_hours:g}", _money(p.registration_fee), _money(p.tuition_fee),
            ]
            for col, value in enumerate(values):
                self.data_table.setItem(row, col, _read_only_item(value))

    def _on_import_participants(self):
        last_file = self.config.paths.last_import_file
        start_dir = str(Path(last_file).parent) if last_file else str(Path.cwd())
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Importer des participants", start_dir,
            "Fichiers de données (*.csv *.xlsx);;CSV (*.csv);;Excel (*.xlsx)"
        )
        if not file_path:
            return
        try:
            result = self.service.import_participants_file(Path(file_path), self.training_year)
        except ImportFormatError as e:
            details = f"\nColonnes manquantes: {', '.join(e.missing_columns)}" if e.missing_columns else ""
            self._show_message_box("critical", "Import", f"{e.message}{details}")
            return
        except StorageError as e:
            self._show_storage_error(e)
            return
        self._show_message_box(
            "information", "Import",
            f"{result.participant_count} participants importés dans {result.training_year}.\n"
            f"{result.created_accounts} compte(s) utilisateur créé(s)."
        )
        self._on_year_changed()

    def _on_export_participants(self):
        self._run_export(lambda: self.service.export_participants_csv(self.training_year))

    # ──────────────────────────────────────────────────────────────────────
    # Comptes
    # ──────────────────────────────────────────────────────────────────────
    def _create_accounts_tab(self) -> QWidget:
        tab = QWidget()
        layout = QHBoxLayout(tab)

        self.accounts_table = _make_table(["Utilisateur", "Rôle", "Participant"])
        self.accounts_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.accounts_table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        left = QVBoxLayout()
        left.addWidget(self.accounts_table, stretch=1)
        actions = QHBoxLayout()
        btn_reset = QPushButton("Réinitialiser le mot de passe")
        btn_reset.clicked.connect(self._on_reset_password)
        actions.addWidget(btn_reset)
        btn_delete = QPushButton("Supprimer")
        btn_delete.setObjectName("dangerButton")
        btn_delete.clicked.connect(self._on_delete_user)
        actions.addWidget(btn_delete)
        actions.addStretch()
        left.addLayout(actions)
        layout.addLayout(left, stretch=2)

        form_group = QGroupBox("Nouveau compte")
        form = QGridLayout(form_group)
        form.addWidget(QLabel("Nom d'utilisateur"), 0, 0)
        self.txt_new_username = QLineEdit()
        form.addWidget(self.txt_new_username, 0, 1)
        form.addWidget(QLabel("Mot de passe"), 1, 0)
        self.txt_new_password = QLineEdit()
        form.addWidget(self.txt_new_password, 1, 1)
        form.addWidget(QLabel("Rôle"), 2, 0)
        self.cmb_new_role = QComboBox()
        self.cmb_new_role.addItem(ROLE_LABELS[UserRole.USER], UserRole.USER)
        self.cmb_new_role.addItem(ROLE_LABELS[UserRole.ADMIN], UserRole.ADMIN)
        self.cmb_new_role.currentIndexChanged.connect(self._on_role_changed)
        form.addWidget(self.cmb_new_role, 2, 1)
        form.addWidget(QLabel("Participant"), 3, 0)
        self.cmb_new_participant = QComboBox()
        form.addWidget(self.cmb_new_participant, 3, 1)
        btn_add = QPushButton("Créer le compte")
        btn_add.clicked.connect(self._on_add_user)
        form.addWidget(btn_add, 4, 1)
        layout.addWidget(form_group, stretch=1, alignment=Qt.AlignmentFlag.AlignTop)
        return tab

    def _refresh_accounts(self):
        state = self.service.state
        self.accounts_table.setRowCount(len(state.users))
        for row, user in enumerate(state.users):
            name_item = _read_only_item(user.username)
            name_item.setData(Qt.ItemDataRole.UserRole, user.id)
            self.accounts_table.setItem(row, 0, name_item)
            self.accounts_table.setItem(row, 1, _read_only_item(ROLE_LABELS[user.role]))
            participant = state.find_participant(user.participant_cef) if user.participant_cef else None
            label = participant.full_name if participant else (user.participant_cef or "-")
            self.accounts_table.setItem(row, 2, _read_only_item(label))

        from domain.accounts import available_participants

        self.cmb_new_participant.clear()
        for p in sort_by_name(available_participants(state.users, state.participants)):
            self.cmb_new_participant.addItem(f"{p.full_name} ({p.cef})", p.cef)
        self._on_role_changed()

    def _on_role_changed(self):
        self.cmb_new_participant.setEnabled(self.cmb_new_role.currentData() == UserRole.USER)

    def _selected_user_id(self) -> Optional[str]:
        row = self.accounts_table.currentRow()
        if row < 0:
            return None
        return self.accounts_table.item(row, 0).data(Qt.ItemDataRole.UserRole)

    def _on_add_user(self):
        role = self.cmb_new_role.currentData()
        cef = self.cmb_new_participant.currentData() if role == UserRole.USER else None
        try:
            self.service.add_user(self.txt_new_username.text(), self.txt_new_password.text(), role, cef)
        except StorageError as e:
            self._show_storage_error(e)
            return
        except AbsenceTrackerError as e:
            self._show_message_box("warning", "Comptes", str(e))
            return
        self.txt_new_username.clear()
        self.txt_new_password.clear()
        self._refresh_accounts()

    def _on_delete_user(self):
        user_id = self._selected_user_id()
        if not user_id:
            return
        if self.service.session and self.service.session.id == user_id:
            self._show_message_box("warning", "Comptes", "Vous ne pouvez pas supprimer votre propre compte.")
            return
        if self._apply_change(lambda: self.service.delete_user(user_id)):
            self._refresh_accounts()

    def _on_reset_password(self):
        user_id = self._selected_user_id()
        if not user_id:
            return
        if not self._apply_change(lambda: self.service.reset_password(user_id)):
            return
        self._show_message_box("information", "Comptes", "Mot de passe réinitialisé.")

    # ──────────────────────────────────────────────────────────────────────
    # Paramètres
    # ──────────────────────────────────────────────────────────────────────
    def _create_settings_tab(self) -> QWidget:
        tab = QWidget()
        layout = QHBoxLayout(tab)

        years_group = QGroupBox("Années de formation")
        years_layout = QVBoxLayout(years_group)
        self.list_years = QListWidget()
        years_layout.addWidget(self.list_years, stretch=1)
        add_layout = QHBoxLayout()
        self.txt_new_year = QLineEdit()
        self.txt_new_year.setPlaceholderText("AAAA-AAAA")
        add_layout.addWidget(self.txt_new_year)
        btn_add_year = QPushButton("Ajouter")
        btn_add_year.clicked.connect(self._on_add_year)
        add_layout.addWidget(btn_add_year)
        years_layout.addLayout(add_layout)
        btn_delete_year = QPushButton("Supprimer l'année sélectionnée")
        btn_delete_year.setObjectName("dangerButton")
        btn_delete_year.clicked.connect(self._on_delete_year)
        years_layout.addWidget(btn_delete_year)
        layout.addWidget(years_group, stretch=1)

        prefs_group = QGroupBox("Préférences")
        prefs = QGridLayout(prefs_group)
        prefs.addWidget(QLabel("Seuil d'absence (%)"), 0, 0)
        self.spin_threshold = QDoubleSpinBox()
        self.spin_threshold.setRange(0, 100)
        self.spin_threshold.setDecimals(1)
        prefs.addWidget(self.spin_threshold, 0, 1)

        prefs.addWidget(QLabel("Dossier d'export"), 1, 0)
        self.txt_export_dir = QLineEdit()
        self.txt_export_dir.setPlaceholderText("Dossier courant")
        prefs.addWidget(self.txt_export_dir, 1, 1)
        btn_browse = QPushButton("Parcourir")
        btn_browse.clicked.connect(self._on_browse_export_dir)
        prefs.addWidget(btn_browse, 1, 2)

        prefs.addWidget(QLabel("Police PDF (TTF)"), 2, 0)
        self.txt_font_path = QLineEdit()
        self.txt_font_path.setPlaceholderText("Police système")
        prefs.addWidget(self.txt_font_path, 2, 1, 1, 2)

        btn_save = QPushButton("Enregistrer")
        btn_save.clicked.connect(self._on_save_settings)
        prefs.addWidget(btn_save, 3, 1)
        layout.addWidget(prefs_group, stretch=1, alignment=Qt.AlignmentFlag.AlignTop)
        return tab

    def _refresh_settings(self):
        self.list_years.clear()
        self.list_years.addItems(self.service.state.training_years)
        self.spin_threshold.setValue(self.config.rules.absence_threshold * 100)
        self.txt_export_dir.setText(self.config.paths.export_dir)
        self.txt_font_path.setText(self.config.paths.custom_font_path)

    def _on_add_year(self):
        year = self.txt_new_year.text()
        try:
            self.service.add_training_year(year)
        except StorageError as e:
            self._show_storage_error(e)
            return
        except AbsenceTrackerError as e:
            self._show_message_box("warning", "Années de formation", str(e))
            return
        self.txt_new_year.clear()
        self._reload_years()

    def _on_delete_year(self):
        item = self.list_years.currentItem()
        if item is None:
            return
        year = item.text()
        answer = QMessageBox.question(
            self, "Confirmer la suppression",
            f"Supprimer l'année {year} ?\n\n"
            "Les participants, l'historique, les absences, les paiements et les comptes "
            "associés seront définitivement supprimés.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        if answer != QMessageBox.StandardButton.Yes:
            return
        if self._apply_change(lambda: self.service.delete_training_year(year)):
            self._reload_years()

    def _on_browse_export_dir(self):
        dir_path = QFileDialog.getExistingDirectory(
            self, "Choisir le dossier d'export", self.txt_export_dir.text() or str(Path.cwd())
        )
        if dir_path:
            self.txt_export_dir.setText(dir_path)

    def _on_save_settings(self):
        self.config.rules.absence_threshold = self.spin_threshold.value() / 100
        self.config.paths.export_dir = self.txt_export_dir.text().strip()
        self.config.paths.custom_font_path = self.txt_font_path.text().strip()
        self.config_manager.save()
        self._refresh_statistics()
        self._show_message_box("information", "Paramètres", "Paramètres enregistrés.")

    # ──────────────────────────────────────────────────────────────────────
    # Participant views
    # ──────────────────────────────────────────────────────────────────────
    def _own_participant(self) -> Optional[Participant]:
        visible = self.service.visible_participants()
        return visible[0] if visible else None

    def _create_my_absences_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.lbl_my_summary = QLabel("")
        self.lbl_my_summary.setObjectName("statValue")
        layout.addWidget(self.lbl_my_summary)
        self.lbl_my_warning = QLabel("")
        self.lbl_my_warning.setObjectName("warningLabel")
        layout.addWidget(self.lbl_my_warning)
        self.my_absences_table = _make_table(["Date", "Jour", "Heures d'absence"])
        self.my_absences_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        layout.addWidget(self.my_absences_table, stretch=1)
        return tab

    def _refresh_my_absences(self):
        participant = self._own_participant()
        if participant is None:
            self.lbl_my_summary.setText("Aucun participant lié à ce compte.")
            return
        calculator = self.service.calculator()
        stats = calculator.participant_statistics([participant], self.service.state.attendance)[0]
        self.lbl_my_summary.setText(
            f"{participant.full_name}: {_hours(stats.total_hours)} d'absence "
            f"({stats.absence_rate * 100:.1f}% de {participant.annual_hours:g}h)"
        )
        self.lbl_my_warning.setText(
            "Attention: votre taux d'absence dépasse le seuil toléré." if stats.over_threshold else ""
        )

        dates = absence_dates(self.service.state.attendance, participant.cef)
        self.my_absences_table.setRowCount(len(dates))
        session_hours = self.config.rules.session_hours
        for row, iso in enumerate(reversed(dates)):
            day = parse_iso(iso)
            self.my_absences_table.setItem(row, 0, _read_only_item(day.strftime("%d/%m/%Y") if day else iso))
            self.my_absences_table.setItem(row, 1, _read_only_item(WEEKDAY_NAMES_FR[day.weekday()] if day else ""))
            self.my_absences_table.setItem(row, 2, _read_only_item(_hours(hours_for(iso, session_hours))))

    def _create_my_payments_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.lbl_my_inscription = QLabel("")
        layout.addWidget(self.lbl_my_inscription)
        self.my_payments_table = _make_table(["Mois", "Montant payé"])
        self.my_payments_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        layout.addWidget(self.my_payments_table, stretch=1)
        self.lbl_my_balance = QLabel("")
        self.lbl_my_balance.setObjectName("statValue")
        layout.addWidget(self.lbl_my_balance)
        return tab

    def _refresh_my_payments(self):
        participant = self._own_participant()
        if participant is None:
            return
        months = months_for_training_year(participant.training_year) if participant.training_year else []
        row = financial_rows([participant], self.service.state.financials, months)[0]
        record = get_financials(self.service.state.financials, participant.cef)
        status = inscription_status_for(record.inscription_payment, participant.registration_fee)
        self.lbl_my_inscription.setText(
            f"Inscription: {_money(record.inscription_payment)} / {_money(participant.registration_fee)} "
            f"({status.value})"
        )
        self.my_payments_table.setRowCount(len(months))
        for r, (month, amount) in enumerate(zip(months, row.monthly)):
            self.my_payments_table.setItem(r, 0, _read_only_item(month.label))
            self.my_payments_table.setItem(r, 1, _read_only_item(_money(amount) if amount else "-"))
        self.lbl_my_balance.setText(
            f"Total payé: {_money(row.total_paid)} | Solde formation: {_money(row.balance)}"
        )

    # ──────────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────────
    def _run_export(self, export):
        """Run an export and report the written file or the failure."""
        try:
            path = export()
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Export échoué: {e}")
            self._show_message_box("critical", "Export", f"L'export a échoué:\n{e}")
            return
        if path is None:
            self._show_message_box("warning", "Export", "Aucune donnée à exporter pour cette sélection.")
            return
        self._show_message_box("information", "Export", f"Fichier enregistré:\n{path}")

    def _apply_change(self, change) -> bool:
        """Run a state change; a failed save is reported and returns False."""
        try:
            change()
        except StorageError as e:
            self._show_storage_error(e)
            return False
        return True

    def _show_storage_error(self, error: StorageError):
        self._show_message_box(
            "critical", "Enregistrement",
            f"Les données n'ont pas pu être enregistrées, aucune modification n'a été appliquée.\n{error}"
        )

    def _show_message_box(self, msg_type: str, title: str, message: str):
        """Show a message box.

        Args:
            msg_type: Type of message box - 'information', 'warning', 'critical'
            title: Dialog title
            message: Message content
        """
        msg_box = QMessageBox(self)
        msg_box.setWindowTitle(title)
        msg_box.setText(message)
        if msg_type == "information":
            msg_box.setIcon(QMessageBox.Icon.Information)
        elif msg_type == "warning":
            msg_box.setIcon(QMessageBox.Icon.Warning)
        elif msg_type == "critical":
            msg_box.setIcon(QMessageBox.Icon.Critical)
        msg_box.exec()


def run_app():
    """Run the application."""
    app = QApplication(sys.argv)
    app.setStyle('Fusion')

    config_manager = ConfigManager()
    config_manager.load()
    service = AbsenceTrackerService(config_manager)
    service.load()

    dialog = LoginDialog(service)
    if not dialog.exec():
        sys.exit(0)

    window = MainWindow(service)
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    run_app()
