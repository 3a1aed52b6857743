"""
Unit tests for ConfigManager and its dataclasses.
"""

import pytest
import json
import tempfile
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config.config_manager import (
    ConfigManager, AppConfig, AttendanceRules, OutputSettings, Paths, UIPrefs
)


class TestDefaults:
    """Tests for dataclass defaults."""

    def test_attendance_rules(self):
        rules = AttendanceRules()
        assert rules.session_hours == {0: 2.5, 1: 2.5, 2: 2.5, 3: 2.5, 4: 2.5, 5: 5.0}
        assert rules.absence_threshold == 0.30

    def test_session_hours_not_shared(self):
        first = AttendanceRules()
        first.session_hours[0] = 9.0
        assert AttendanceRules().session_hours[0] == 2.5

    def test_output_settings(self):
        os = OutputSettings()
        assert os.receipt_pdf_pattern == "Attestation_{cef}_{stamp}.pdf"
        assert os.history_pdf_pattern == "Historique_{year}_{month}_{stamp}.pdf"
        assert os.financial_csv_pattern == "recette_{year}_{group}.csv"

    def test_ui_prefs(self):
        prefs = UIPrefs()
        assert prefs.theme_name == "Dark Mode"
        assert prefs.load_demo_data is True


class TestConfigManager:
    """Tests for ConfigManager persistence."""

    def test_missing_file_gives_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            manager = ConfigManager(Path(tmpdir) / "config.json")
            config = manager.load()

            assert config == AppConfig()

    def test_save_and_load_roundtrip(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            manager = ConfigManager(path)
            manager.load()
            manager.config.paths.export_dir = "/tmp/exports"
            manager.config.rules.session_hours = {0: 3.0, 5: 6.0}
            manager.config.rules.absence_threshold = 0.25
            manager.config.ui_prefs.theme_name = "Classic White"
            manager.save()

            reloaded = ConfigManager(path).load()

            assert reloaded.paths.export_dir == "/tmp/exports"
            assert reloaded.rules.session_hours == {0: 3.0, 5: 6.0}
            assert reloaded.rules.absence_threshold == 0.25
            assert reloaded.ui_prefs.theme_name == "Classic White"

    def test_session_hours_keys_stored_as_strings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            manager = ConfigManager(path)
            manager.load()
            manager.save()

            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            assert data["rules"]["session_hours"]["5"] == 5.0

    def test_partial_file_keeps_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text(json.dumps({"ui_prefs": {"theme_name": "Classic White"}}), encoding="utf-8")

            config = ConfigManager(path).load()

            assert config.ui_prefs.theme_name == "Classic White"
            assert config.rules == AttendanceRules()
            assert config.output_settings == OutputSettings()
            assert config.paths == Paths()

    def test_invalid_json_gives_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("{not json", encoding="utf-8")

            assert ConfigManager(path).load() == AppConfig()

    def test_update_saves(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            manager = ConfigManager(path)
            manager.load()
            manager.update(ui_prefs=UIPrefs(theme_name="Classic White", load_demo_data=False))

            reloaded = ConfigManager(path).load()
            assert reloaded.ui_prefs.load_demo_data is False

    def test_data_and_export_dirs(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            manager = ConfigManager(Path(tmpdir) / "config" / "config.json")
            manager.load()
            assert manager.data_dir() == Path(tmpdir) / "data"

            manager.config.paths.data_dir = str(Path(tmpdir) / "custom")
            manager.config.paths.export_dir = str(Path(tmpdir) / "out")
            assert manager.data_dir() == Path(tmpdir) / "custom"
            assert manager.export_dir() == Path(tmpdir) / "out"
