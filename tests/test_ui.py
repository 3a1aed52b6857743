"""
Unit tests for the themes and the PyQt6 windows (run offscreen).
"""

import os
import pytest
import tempfile
from unittest.mock import patch
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from ui.styles import ClassicWhiteTheme, DarkTheme, ThemeManager


class TestThemeManager:
    """Tests for ThemeManager."""

    def test_available_themes(self):
        assert ThemeManager.get_available_themes() == ["Dark Mode", "Classic White"]

    def test_get_theme(self):
        assert isinstance(ThemeManager.get_theme("Classic White"), ClassicWhiteTheme)

    def test_unknown_theme_falls_back_to_dark(self):
        assert isinstance(ThemeManager.get_theme("Neon"), DarkTheme)

    def test_stylesheet_is_rendered(self):
        stylesheet = DarkTheme().stylesheet
        assert "#1e1e1e" in stylesheet
        assert "{" in stylesheet and "{window}" not in stylesheet


@pytest.fixture
def mock_app():
    """Create a QApplication instance."""
    QtWidgets = pytest.importorskip("PyQt6.QtWidgets")
    app = QtWidgets.QApplication.instance()
    if not app:
        app = QtWidgets.QApplication([])
    return app


@pytest.fixture
def service():
    from application.app_service import AbsenceTrackerService
    from config.config_manager import ConfigManager

    with tempfile.TemporaryDirectory() as tmpdir:
        manager = ConfigManager(Path(tmpdir) / "config.json")
        manager.load()
        manager.config.paths.data_dir = str(Path(tmpdir) / "data")
        service = AbsenceTrackerService(manager)
        service.load()
        yield service


class TestLoginDialog:
    """Tests for LoginDialog."""

    def test_wrong_credentials_keep_dialog_open(self, mock_app, service):
        from ui.login_dialog import LoginDialog

        dialog = LoginDialog(service)
        dialog.txt_username.setText("admin")
        dialog.txt_password.setText("wrong")
        dialog._on_accept()

        assert service.session is None
        assert not dialog.lbl_error.isHidden()
        assert dialog.txt_password.text() == ""
        dialog.close()

    def test_valid_credentials(self, mock_app, service):
        from PyQt6.QtWidgets import QDialog
        from ui.login_dialog import LoginDialog

        dialog = LoginDialog(service)
        dialog.txt_username.setText("admin")
        dialog.txt_password.setText("password")
        dialog._on_accept()

        assert service.session.is_admin
        assert dialog.result() == QDialog.DialogCode.Accepted


class TestMainWindow:
    """Tests for MainWindow tabs and edits."""

    def test_admin_tabs(self, mock_app, service):
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)

        titles = [window.tabs.tabText(i) for i in range(window.tabs.count())]
        assert titles == [
            "Saisie", "Statistiques", "Historique", "Reçus",
            "Recettes", "Données", "Comptes", "Paramètres",
        ]
        assert window.entry_table.rowCount() == 15
        assert window.entry_table.columnCount() == 8
        window.close()

    def test_user_tabs(self, mock_app, service):
        from ui.main_window import MainWindow

        service.login("jdupont", "password")
        window = MainWindow(service)

        titles = [window.tabs.tabText(i) for i in range(window.tabs.count())]
        assert titles == ["Mes Absences", "Mes Paiements"]
        assert window.lbl_my_summary.text().startswith("Dupont Jean")
        window.close()

    def test_checking_a_cell_records_absence(self, mock_app, service):
        from PyQt6.QtCore import Qt
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        cef = window.entry_table.item(0, 0).data(Qt.ItemDataRole.UserRole)
        cell = window.entry_table.item(0, 2)

        cell.setCheckState(Qt.CheckState.Checked)

        iso = cell.data(Qt.ItemDataRole.UserRole)
        assert service.state.attendance[cef][iso] is True
        window.close()

    def test_save_week_button(self, mock_app, service):
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        with patch.object(MainWindow, "_show_message_box") as message:
            window.btn_save_week.click()

        assert len(service.state.history) == 3
        assert message.call_args[0][0] == "information"
        window.close()

    def test_editing_payment(self, mock_app, service):
        from PyQt6.QtCore import Qt
        from domain.financials import find_payment
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        cef = window.finance_table.item(0, 0).data(Qt.ItemDataRole.UserRole)

        window.finance_table.item(0, 3).setText("250,5")

        assert find_payment(service.state.financials, cef, window._finance_months[0]) == 250.5
        window.close()

    def test_delete_year_after_confirmation(self, mock_app, service):
        from PyQt6.QtWidgets import QMessageBox
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        oldest = service.state.training_years[-1]
        window.list_years.setCurrentRow(window.list_years.count() - 1)

        with patch("ui.main_window.QMessageBox.question", return_value=QMessageBox.StandardButton.Yes):
            window._on_delete_year()

        assert oldest not in service.state.training_years
        window.close()

    def test_delete_year_cancelled(self, mock_app, service):
        from PyQt6.QtWidgets import QMessageBox
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        years = list(service.state.training_years)
        window.list_years.setCurrentRow(0)

        with patch("ui.main_window.QMessageBox.question", return_value=QMessageBox.StandardButton.No):
            window._on_delete_year()

        assert service.state.training_years == years
        window.close()

    def test_delete_year_failed_save_is_reported(self, mock_app, service):
        from PyQt6.QtWidgets import QMessageBox
        from domain.exceptions import StorageError
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        years = list(service.state.training_years)
        window.list_years.setCurrentRow(0)

        with patch.object(service.store, "save", side_effect=StorageError("disque plein")), \
                patch("ui.main_window.QMessageBox.question", return_value=QMessageBox.StandardButton.Yes), \
                patch.object(MainWindow, "_show_message_box") as message:
            window._on_delete_year()

        assert service.state.training_years == years
        assert message.call_args[0][0] == "critical"
        window.close()

    def test_absence_toggle_failed_save_keeps_state(self, mock_app, service):
        from PyQt6.QtCore import Qt
        from domain.exceptions import StorageError
        from ui.main_window import MainWindow

        service.login("admin", "password")
        window = MainWindow(service)
        before = service.state
        cell = window.entry_table.item(0, 2)

        with patch.object(service.store, "save", side_effect=StorageError("disque plein")), \
                patch.object(MainWindow, "_show_message_box") as message:
            cell.setCheckState(Qt.CheckState.Checked)

        assert service.state is before
        assert message.call_args[0][0] == "critical"
        window.close()
