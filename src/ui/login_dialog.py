"""
Login Dialog Module

PyQt6 dialog asking for the credentials of an account.
The dialog stays open until the credentials match or it is cancelled.
"""

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QGridLayout, QGroupBox, QLabel,
    QLineEdit, QDialogButtonBox
)

from application.app_service import AbsenceTrackerService
from ui.styles import ThemeManager


class LoginDialog(QDialog):
    """Login dialog opening a session on the application service."""

    def __init__(self, service: AbsenceTrackerService, parent=None):
        super().__init__(parent)
        self.service = service
        self._init_ui()
        self._connect_signals()

    def _init_ui(self):
        """Initialize the dialog UI."""
        self.setWindowTitle("Suivi des Absences - Connexion")
        self.setMinimumWidth(380)
        self.setModal(True)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(20, 20, 20, 20)
        layout.setSpacing(15)

        group = QGroupBox("Connexion")
        form = QGridLayout(group)
        form.setContentsMargins(15, 25, 15, 15)
        form.setSpacing(10)

        form.addWidget(QLabel("Nom d'utilisateur"), 0, 0)
        self.txt_username = QLineEdit()
        self.txt_username.setPlaceholderText("admin ou CEF")
        form.addWidget(self.txt_username, 0, 1)

        form.addWidget(QLabel("Mot de passe"), 1, 0)
        self.txt_password = QLineEdit()
        self.txt_password.setEchoMode(QLineEdit.EchoMode.Password)
        form.addWidget(self.txt_password, 1, 1)
        layout.addWidget(group)

        self.lbl_error = QLabel("")
        self.lbl_error.setObjectName("warningLabel")
        self.lbl_error.setVisible(False)
        layout.addWidget(self.lbl_error)

        self.button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok |
            QDialogButtonBox.StandardButton.Cancel
        )
        layout.addWidget(self.button_box)

        theme = ThemeManager.get_theme(self.service.config_manager.config.ui_prefs.theme_name)
        self.setStyleSheet(theme.stylesheet)

    def _connect_signals(self):
        self.button_box.accepted.connect(self._on_accept)
        self.button_box.rejected.connect(self.reject)
        self.txt_password.returnPressed.connect(self._on_accept)

    def _on_accept(self):
        """Try the credentials; close only on success."""
        session = self.service.login(self.txt_username.text().strip(), self.txt_password.text())
        if session is None:
            self.lbl_error.setText("Nom d'utilisateur ou mot de passe incorrect.")
            self.lbl_error.setVisible(True)
            self.txt_password.clear()
            return
        self.accept()
