"""
Style Management Module

Handles application theming and style definitions.
Each theme is a color palette rendered through one shared stylesheet
template, so new themes only declare colors.
"""

from abc import ABC, abstractmethod
from typing import Dict, Type


_STYLESHEET_TEMPLATE = """
    QMainWindow, QDialog {{
        background-color: {window};
    }}
    QWidget {{
        font-family: 'Segoe UI', system-ui, sans-serif;
        font-size: 13px;
        color: {text};
    }}
    QGroupBox {{
        font-weight: bold;
        border: 1px solid {border};
        border-radius: 6px;
        margin-top: 12px;
        padding-top: 16px;
        background-color: {panel};
    }}
    QGroupBox::title {{
        subcontrol-origin: margin;
        left: 12px;
        padding: 0 5px;
        color: {accent};
    }}
    QTabWidget::pane {{
        border: 1px solid {border};
        border-radius: 4px;
        background-color: {panel};
    }}
    QTabBar::tab {{
        background-color: {window};
        border: 1px solid {border};
        padding: 6px 14px;
        margin-right: 2px;
    }}
    QTabBar::tab:selected {{
        background-color: {panel};
        color: {accent};
        font-weight: bold;
    }}
    QTableWidget {{
        background-color: {input};
        alternate-background-color: {panel};
        gridline-color: {border};
        border: 1px solid {border};
        selection-background-color: {selection};
    }}
    QHeaderView::section {{
        background-color: {header};
        color: #ffffff;
        font-weight: bold;
        border: none;
        padding: 4px;
    }}
    QCheckBox::indicator {{
        width: 16px;
        height: 16px;
        border: 2px solid {border};
        border-radius: 3px;
        background: {input};
    }}
    QCheckBox::indicator:checked {{
        background-color: {danger};
        border-color: {danger};
    }}
    QLineEdit, QComboBox, QDateEdit {{
        background-color: {input};
        border: 1px solid {border};
        border-radius: 4px;
        padding: 4px 8px;
        selection-background-color: {selection};
    }}
    QLineEdit:focus, QComboBox:focus, QDateEdit:focus {{
        border: 1px solid {button};
    }}
    QComboBox QAbstractItemView {{
        background-color: {input};
        selection-background-color: {selection};
        border: 1px solid {border};
        outline: none;
    }}
    QPushButton {{
        background-color: {button};
        color: white;
        border: 1px solid {button_pressed};
        border-radius: 4px;
        padding: 6px 14px;
        font-weight: bold;
    }}
    QPushButton:hover {{
        background-color: {button_hover};
    }}
    QPushButton:pressed {{
        background-color: {button_pressed};
    }}
    QPushButton:disabled {{
        background-color: {border};
        border-color: {border};
    }}
    QPushButton#dangerButton {{
        background-color: {danger};
        border-color: {danger};
    }}
    QLabel#statValue {{
        font-size: 22px;
        font-weight: bold;
        color: {accent};
    }}
    QLabel#warningLabel {{
        color: {danger};
        font-weight: bold;
    }}
"""


class Theme(ABC):
    """Abstract base class for Themes."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def palette(self) -> Dict[str, str]:
        """Color roles used by the stylesheet template."""
        pass

    @property
    def stylesheet(self) -> str:
        """Returns the fully compiled stylesheet string."""
        return _STYLESHEET_TEMPLATE.format(**self.palette)


class DarkTheme(Theme):
    """The default dark theme for the application."""

    @property
    def name(self) -> str:
        return "Dark Mode"

    @property
    def palette(self) -> Dict[str, str]:
        return {
            "window": "#1e1e1e",
            "panel": "#252526",
            "input": "#2d2d30",
            "text": "#e0e0e0",
            "border": "#3e3e42",
            "accent": "#4ec9b0",
            "header": "#37474f",
            "selection": "#264f78",
            "button": "#0e639c",
            "button_hover": "#1177bb",
            "button_pressed": "#094771",
            "danger": "#d9534f",
        }


class ClassicWhiteTheme(Theme):
    """Light theme."""

    @property
    def name(self) -> str:
        return "Classic White"

    @property
    def palette(self) -> Dict[str, str]:
        return {
            "window": "#f3f3f3",
            "panel": "#ffffff",
            "input": "#ffffff",
            "text": "#000000",
            "border": "#c0c0c0",
            "accent": "#0078d4",
            "header": "#4472c4",
            "selection": "#cce8ff",
            "button": "#0078d4",
            "button_hover": "#106ebe",
            "button_pressed": "#005a9e",
            "danger": "#c0392b",
        }


class ThemeManager:
    """
    Factory for application themes.
    The class is stateless; themes are looked up by display name.
    """

    _themes: Dict[str, Type[Theme]] = {
        "Dark Mode": DarkTheme,
        "Classic White": ClassicWhiteTheme
    }

    @classmethod
    def get_theme(cls, theme_name: str) -> Theme:
        """Factory method to get a theme instance by name."""
        theme_cls = cls._themes.get(theme_name)
        if not theme_cls:
            # Fallback to default if theme name not found
            return DarkTheme()
        return theme_cls()

    @classmethod
    def get_available_themes(cls) -> list[str]:
        """Returns a list of available theme names."""
        return list(cls._themes.keys())
