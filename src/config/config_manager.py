"""
Configuration Manager Module

Handles loading, saving, and managing application configuration.
Provides bi-directional mapping between UI state and JSON persistence.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from infrastructure.logger import get_logger

logger = get_logger("ConfigManager")


def _default_session_hours() -> Dict[int, float]:
    # Monday-Friday 2.5h, Saturday 5h
    return {0: 2.5, 1: 2.5, 2: 2.5, 3: 2.5, 4: 2.5, 5: 5.0}


@dataclass
class Paths:
    """File paths configuration."""
    data_dir: str = ""           # Empty = "data" folder next to the project
    export_dir: str = ""         # Empty = current working directory
    last_import_file: str = ""
    custom_font_path: str = ""   # Custom TTF font for PDF generation


@dataclass
class AttendanceRules:
    """Session hours per weekday (0=Monday) and tolerated absence rate."""
    session_hours: Dict[int, float] = field(default_factory=_default_session_hours)
    absence_threshold: float = 0.30


@dataclass
class UIPrefs:
    """UI preferences."""
    theme_name: str = "Dark Mode"
    load_demo_data: bool = True  # Seed demo participants when none are stored


@dataclass
class OutputSettings:
    """File name patterns for exports (support {year}, {group}, {cef}, {month}, {stamp})."""
    receipt_pdf_pattern: str = "Attestation_{cef}_{stamp}.pdf"
    history_pdf_pattern: str = "Historique_{year}_{month}_{stamp}.pdf"
    financial_pdf_pattern: str = "Rapport_Financier_{year}_{group}.pdf"
    financial_csv_pattern: str = "recette_{year}_{group}.csv"
    financial_xlsx_pattern: str = "recette_{year}_{group}.xlsx"
    participants_csv_pattern: str = "participants_{year}.csv"


@dataclass
class AppConfig:
    """Main application configuration container."""
    paths: Paths = field(default_factory=Paths)
    rules: AttendanceRules = field(default_factory=AttendanceRules)
    ui_prefs: UIPrefs = field(default_factory=UIPrefs)
    output_settings: OutputSettings = field(default_factory=OutputSettings)


class ConfigManager:
    """
    Manages application configuration with JSON persistence.

    Responsibilities:
    - Load configuration from JSON file
    - Save configuration to JSON file
    - Provide default configuration
    - Convert between dataclass and dict representations
    """

    DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.json"

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: AppConfig = AppConfig()

    @property
    def config(self) -> AppConfig:
        """Get current configuration."""
        return self._config

    def load(self) -> AppConfig:
        """Load configuration from JSON file."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                self._config = self._dict_to_config(data)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Configuration illisible, valeurs par défaut utilisées: {e}")
                self._config = AppConfig()
        else:
            self._config = AppConfig()
        return self._config

    def save(self) -> None:
        """Save current configuration to JSON file."""
        data = self._config_to_dict(self._config)
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def update(self, **kwargs) -> None:
        """Update specific configuration values."""
        for key, value in kwargs.items():
            if hasattr(self._config, key):
                setattr(self._config, key, value)
        self.save()

    def data_dir(self) -> Path:
        """Directory holding the persisted collections."""
        if self._config.paths.data_dir:
            return Path(self._config.paths.data_dir)
        return self.config_path.parent.parent / "data"

    def export_dir(self) -> Path:
        if self._config.paths.export_dir:
            return Path(self._config.paths.export_dir)
        return Path.cwd()

    def _config_to_dict(self, config: AppConfig) -> dict:
        """Convert AppConfig dataclass to dictionary."""
        return {
            "paths": {
                "data_dir": config.paths.data_dir,
                "export_dir": config.paths.export_dir,
                "last_import_file": config.paths.last_import_file,
                "custom_font_path": config.paths.custom_font_path
            },
            "rules": {
                # JSON keys are strings
                "session_hours": {str(k): v for k, v in config.rules.session_hours.items()},
                "absence_threshold": config.rules.absence_threshold
            },
            "ui_prefs": {
                "theme_name": config.ui_prefs.theme_name,
                "load_demo_data": config.ui_prefs.load_demo_data
            },
            "output_settings": {
                "receipt_pdf_pattern": config.output_settings.receipt_pdf_pattern,
                "history_pdf_pattern": config.output_settings.history_pdf_pattern,
                "financial_pdf_pattern": config.output_settings.financial_pdf_pattern,
                "financial_csv_pattern": config.output_settings.financial_csv_pattern,
                "financial_xlsx_pattern": config.output_settings.financial_xlsx_pattern,
                "participants_csv_pattern": config.output_settings.participants_csv_pattern
            }
        }

    def _dict_to_config(self, data: dict) -> AppConfig:
        """Convert dictionary to AppConfig dataclass."""
        paths_data = data.get("paths", {})
        rules_data = data.get("rules", {})
        ui_prefs_data = data.get("ui_prefs", {})
        output_settings_data = data.get("output_settings", {})

        # Build Paths
        paths = Paths(
            data_dir=paths_data.get("data_dir", ""),
            export_dir=paths_data.get("export_dir", ""),
            last_import_file=paths_data.get("last_import_file", ""),
            custom_font_path=paths_data.get("custom_font_path", "")
        )

        # Build AttendanceRules
        hours_data = rules_data.get("session_hours")
        session_hours = (
            {int(k): float(v) for k, v in hours_data.items()}
            if hours_data else _default_session_hours()
        )
        rules = AttendanceRules(
            session_hours=session_hours,
            absence_threshold=float(rules_data.get("absence_threshold", 0.30))
        )

        # Build UIPrefs
        ui_prefs = UIPrefs(
            theme_name=ui_prefs_data.get("theme_name", "Dark Mode"),
            load_demo_data=ui_prefs_data.get("load_demo_data", True)
        )

        # Build OutputSettings
        defaults = OutputSettings()
        output_settings = OutputSettings(
            receipt_pdf_pattern=output_settings_data.get("receipt_pdf_pattern", defaults.receipt_pdf_pattern),
            history_pdf_pattern=output_settings_data.get("history_pdf_pattern", defaults.history_pdf_pattern),
            financial_pdf_pattern=output_settings_data.get("financial_pdf_pattern", defaults.financial_pdf_pattern),
            financial_csv_pattern=output_settings_data.get("financial_csv_pattern", defaults.financial_csv_pattern),
            financial_xlsx_pattern=output_settings_data.get("financial_xlsx_pattern", defaults.financial_xlsx_pattern),
            participants_csv_pattern=output_settings_data.get("participants_csv_pattern", defaults.participants_csv_pattern)
        )

        return AppConfig(
            paths=paths,
            rules=rules,
            ui_prefs=ui_prefs,
            output_settings=output_settings
        )
