"""
Application Service Module

Application layer service that owns the loaded state and the session.
Every successful mutation is applied to a new state and then persisted;
rejected operations raise before anything changes. Separates business
logic from UI concerns (PyQt).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from config.config_manager import ConfigManager
from domain import absence_ledger, accounts, financials, training_years
from domain.calendar_utils import (
    find_month, format_week_label, months_for_training_year, week_for_scope
)
from domain.aggregator import compute_week_scope
from domain.entities import (
    ALL_GROUPS, AppState, InscriptionPayment, MonthlyPayment,
    Participant, SessionUser, UserRole, WeekScope, WeekSnapshot
)
from domain.financials import FinancialUpdate
from domain.history_store import commit_week
from domain.sorting import sort_by_name
from domain.statistics import StatisticsCalculator, filter_participants
from infrastructure.logger import get_logger
from infrastructure.participant_io import (
    ParticipantImporter, export_financials_csv, export_participants_csv
)
from infrastructure.state_store import StateStore

logger = get_logger("AppService")


@dataclass
class ImportResult:
    """Result of a participant import."""
    training_year: str
    participant_count: int
    created_accounts: int


class AbsenceTrackerService:
    """
    Application service for the absence tracker.

    This service:
    - Loads the persisted state once and rewrites it after each mutation
    - Holds the logged-in session (in memory only)
    - Exposes the core operations and the exports to the UI
    - Depends only on domain and infrastructure, not on PyQt
    """

    def __init__(self, config_manager: ConfigManager, store: Optional[StateStore] = None):
        self.config_manager = config_manager
        config = config_manager.config
        self.store = store or StateStore(
            config_manager.data_dir(),
            seed_demo_data=config.ui_prefs.load_demo_data,
        )
        self.state = AppState()
        self.session: Optional[SessionUser] = None

    # ──────────────────────────────────────────────────────────────────────
    # State & session
    # ──────────────────────────────────────────────────────────────────────
    def load(self) -> AppState:
        self.state = self.store.load()
        return self.state

    def _commit(self, new_state: AppState) -> AppState:
        """
        Persist every collection, then make the new state current.

        Raises:
            StorageError: The save failed; the current state is unchanged
        """
        self.store.save(new_state)
        self.state = new_state
        return new_state

    def calculator(self) -> StatisticsCalculator:
        rules = self.config_manager.config.rules
        return StatisticsCalculator(session_hours=rules.session_hours, threshold=rules.absence_threshold)

    def login(self, username: str, password: str) -> Optional[SessionUser]:
        """Open a session; returns None when the credentials do not match."""
        self.session = accounts.authenticate(self.state.users, username, password)
        if self.session:
            logger.info(f"Connexion: {self.session.username} ({self.session.role.value})")
        else:
            logger.warning(f"Échec de connexion pour '{username}'")
        return self.session

    def logout(self) -> None:
        if self.session:
            logger.info(f"Déconnexion: {self.session.username}")
        self.session = None

    def visible_participants(self) -> List[Participant]:
        if self.session is None:
            return []
        return accounts.visible_participants(self.state.participants, self.session)

    # ──────────────────────────────────────────────────────────────────────
    # Attendance & history
    # ──────────────────────────────────────────────────────────────────────
    def set_absence(self, cef: str, iso_date: str, is_absent: bool) -> AppState:
        ledger = absence_ledger.set_absence(self.state.attendance, cef, iso_date, is_absent)
        return self._commit(replace(self.state, attendance=ledger))

    def week_snapshot(self, scope: WeekScope) -> WeekSnapshot:
        return compute_week_scope(self.state.attendance, self.state.participants, scope)

    def save_week(self, scope: WeekScope, now: Optional[datetime] = None) -> int:
        """
        Commit the selected week to history.

        Returns:
            Number of groups written (0 when the week or group is invalid)
        """
        snapshot = self.week_snapshot(scope)
        if snapshot.is_empty:
            logger.info(
                f"Rien à enregistrer: {scope.training_year} {scope.month_value} "
                f"semaine {scope.week_index} groupe {scope.group}"
            )
            return 0

        month = find_month(scope.training_year, scope.month_value)
        month_label = month.label if month else scope.month_value
        week_label = format_week_label(week_for_scope(scope.month_value, scope.week_index))

        history = commit_week(self.state.history, snapshot, scope, month_label, week_label, now=now)
        self._commit(replace(self.state, history=history))
        logger.info(f"Semaine enregistrée: {week_label} ({len(snapshot.groups)} groupe(s))")
        return len(snapshot.groups)

    # ──────────────────────────────────────────────────────────────────────
    # Financials
    # ──────────────────────────────────────────────────────────────────────
    def update_financials(self, cef: str, action: FinancialUpdate) -> AppState:
        updated = financials.apply_financial_update(
            self.state.financials, self.state.participants, cef, action
        )
        if updated is self.state.financials:
            return self.state
        return self._commit(replace(self.state, financials=updated))

    def set_monthly_payment(self, cef: str, month_value: str, raw_amount: str) -> AppState:
        return self.update_financials(cef, MonthlyPayment(month_value, financials.parse_amount(raw_amount)))

    def set_inscription_payment(self, cef: str, raw_amount: str) -> AppState:
        return self.update_financials(cef, InscriptionPayment(financials.parse_amount(raw_amount)))

    # ──────────────────────────────────────────────────────────────────────
    # Participants & training years
    # ──────────────────────────────────────────────────────────────────────
    def import_participants_file(self, file_path: Path, training_year: str) -> ImportResult:
        """
        Import a roster file into a training year.

        Raises:
            ImportFormatError: The file is rejected; state is unchanged
        """
        imported = ParticipantImporter().parse_file(file_path, training_year)
        before = len(self.state.users)
        self._commit(accounts.import_participants(self.state, imported, training_year))

        config = self.config_manager.config
        config.paths.last_import_file = str(file_path)
        self.config_manager.save()

        return ImportResult(
            training_year=training_year,
            participant_count=len(imported),
            created_accounts=len(self.state.users) - before,
        )

    def add_training_year(self, year: str) -> AppState:
        years = training_years.add_training_year(self.state.training_years, year)
        logger.info(f"Année de formation ajoutée: {year.strip()}")
        return self._commit(replace(self.state, training_years=years))

    def delete_training_year(self, year: str) -> AppState:
        return self._commit(training_years.delete_training_year(self.state, year))

    # ──────────────────────────────────────────────────────────────────────
    # Accounts
    # ──────────────────────────────────────────────────────────────────────
    def add_user(
        self,
        username: str,
        password: str,
        role: UserRole,
        participant_cef: Optional[str] = None
    ) -> AppState:
        users = accounts.add_user(self.state.users, username, password, role, participant_cef)
        logger.info(f"Compte créé: {username.strip()} ({role.value})")
        return self._commit(replace(self.state, users=users))

    def delete_user(self, user_id: str) -> AppState:
        if self.session and self.session.id == user_id:
            logger.warning("Suppression du compte connecté refusée")
            return self.state
        return self._commit(replace(self.state, users=accounts.delete_user(self.state.users, user_id)))

    def reset_password(self, user_id: str) -> AppState:
        users = accounts.reset_password(self.state.users, self.state.participants, user_id)
        return self._commit(replace(self.state, users=users))

    # ──────────────────────────────────────────────────────────────────────
    # Exports
    # ──────────────────────────────────────────────────────────────────────
    def _export_path(self, pattern: str, output_dir: Optional[Path] = None, **fields) -> Path:
        from infrastructure.pdf_writer import format_filename

        directory = Path(output_dir) if output_dir else self.config_manager.export_dir()
        return directory / format_filename(pattern, **fields)

    @staticmethod
    def _stamp() -> str:
        return datetime.now().strftime("%Y%m%d_%H%M%S")

    def _pdf_writer(self):
        from infrastructure.pdf_writer import PdfWriter

        return PdfWriter(custom_font_path=self.config_manager.config.paths.custom_font_path or None)

    def _financial_selection(self, training_year: str, group: str) -> List[Participant]:
        return sort_by_name(filter_participants(self.state.participants, training_year, group))

    def export_receipt_pdf(self, cef: str, start: date, end: date, output_dir: Optional[Path] = None) -> Optional[Path]:
        """Write the absence certificate of a participant; None for an unknown CEF."""
        participant = self.state.find_participant(cef)
        if participant is None:
            logger.warning(f"Attestation impossible: participant '{cef}' introuvable")
            return None

        receipt = self.calculator().absence_receipt(participant, self.state.attendance, start, end)
        path = self._export_path(
            self.config_manager.config.output_settings.receipt_pdf_pattern, output_dir,
            cef=cef, stamp=self._stamp(),
        )
        self._pdf_writer().create_absence_receipt(receipt, path)
        return path

    def export_history_pdf(
        self,
        training_year: str,
        month_value: str,
        group: str,
        output_dir: Optional[Path] = None
    ) -> Optional[Path]:
        """Write the monthly history summary of a group; None when the month is invalid."""
        summary = self.calculator().monthly_history_summary(
            training_year, month_value, group, self.state.history, self.state.participants
        )
        if summary is None:
            logger.warning(f"Récapitulatif impossible: {training_year} {month_value} {group}")
            return None

        path = self._export_path(
            self.config_manager.config.output_settings.history_pdf_pattern, output_dir,
            year=training_year, month=summary.month_label, group=group, stamp=self._stamp(),
        )
        self._pdf_writer().create_monthly_summary(summary, path)
        return path

    def export_financial_csv(self, training_year: str, group: str = ALL_GROUPS,
                             output_dir: Optional[Path] = None) -> Optional[Path]:
        participants = self._financial_selection(training_year, group)
        if not participants:
            logger.info(f"Aucun participant à exporter pour {training_year} ({group})")
            return None

        path = self._export_path(
            self.config_manager.config.output_settings.financial_csv_pattern, output_dir,
            year=training_year, group=group,
        )
        export_financials_csv(participants, self.state.financials, months_for_training_year(training_year), path)
        return path

    def export_financial_xlsx(self, training_year: str, group: str = ALL_GROUPS,
                              output_dir: Optional[Path] = None) -> Optional[Path]:
        from infrastructure.excel_writer import ExcelWriter

        participants = self._financial_selection(training_year, group)
        if not participants:
            logger.info(f"Aucun participant à exporter pour {training_year} ({group})")
            return None

        path = self._export_path(
            self.config_manager.config.output_settings.financial_xlsx_pattern, output_dir,
            year=training_year, group=group,
        )
        ExcelWriter().create_financial_report(
            participants, self.state.financials, months_for_training_year(training_year),
            training_year, _group_label(group), path,
        )
        return path

    def export_financial_pdf(self, training_year: str, group: str = ALL_GROUPS,
                             output_dir: Optional[Path] = None) -> Optional[Path]:
        participants = self._financial_selection(training_year, group)
        if not participants:
            logger.info(f"Aucun participant à exporter pour {training_year} ({group})")
            return None

        path = self._export_path(
            self.config_manager.config.output_settings.financial_pdf_pattern, output_dir,
            year=training_year, group=group,
        )
        self._pdf_writer().create_financial_report(
            participants, self.state.financials, months_for_training_year(training_year),
            training_year, _group_label(group), path,
        )
        return path

    def export_participants_csv(self, training_year: str, output_dir: Optional[Path] = None) -> Optional[Path]:
        participants = sort_by_name(self.state.participants_for_year(training_year))
        if not participants:
            logger.info(f"Aucun participant à exporter pour {training_year}")
            return None

        path = self._export_path(
            self.config_manager.config.output_settings.participants_csv_pattern, output_dir,
            year=training_year,
        )
        export_participants_csv(participants, path)
        return path


def _group_label(group: str) -> str:
    return "Tous" if group == ALL_GROUPS else group
