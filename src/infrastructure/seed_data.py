"""
Seed Data Module

Default roster and accounts used when nothing valid is stored yet.
"""

from datetime import date
from typing import List, Optional

from domain.calendar_utils import current_training_year
from domain.entities import Participant, UserAccount, UserRole


# (cef, nom, prenom, groupe, heures annuelles, frais inscription, frais formation)
_DEMO_ROWS = [
    ("P123456", "Dupont", "Jean", "DEV101", 500, 200, 2500),
    ("P789012", "Martin", "Marie", "DEV101", 500, 200, 2500),
    ("P345678", "Bernard", "Luc", "DEV101", 480, 200, 2300),
    ("P901234", "Thomas", "Sophie", "DEV102", 520, 250, 2800),
    ("P567890", "Petit", "Alice", "DEV102", 520, 250, 2800),
    ("P112233", "Robert", "Julien", "RESEAU201", 600, 300, 3200),
    ("P445566", "Richard", "Camille", "RESEAU201", 600, 300, 3200),
    ("P778899", "Durand", "Paul", "DEV101", 500, 200, 2500),
    ("P998877", "Leroy", "Isabelle", "DEV102", 520, 250, 2800),
    ("P665544", "Moreau", "Nicolas", "RESEAU201", 600, 300, 3200),
    ("P258369", "Simon", "Hugo", "DEV101", 480, 200, 2300),
    ("P147258", "Laurent", "Léa", "DEV102", 520, 250, 2800),
    ("P369147", "Girard", "Manon", "RESEAU201", 580, 300, 3000),
    ("P741852", "Garnier", "Clément", "DEV101", 500, 200, 2500),
    ("P852963", "Faure", "Chloé", "DEV102", 520, 250, 2800),
]


def demo_participants(today: Optional[date] = None) -> List[Participant]:
    """Demo roster placed in the current training year."""
    year = current_training_year(today)
    return [
        Participant(
            cef=cef, last_name=nom, first_name=prenom, group=groupe,
            annual_hours=hours, registration_fee=inscription,
            tuition_fee=formation, training_year=year,
        )
        for cef, nom, prenom, groupe, hours, inscription, formation in _DEMO_ROWS
    ]


def default_users() -> List[UserAccount]:
    """The built-in admin account and a demo participant account."""
    return [
        UserAccount(id="admin-001", username="admin", password="password", role=UserRole.ADMIN),
        UserAccount(
            id="user-001", username="jdupont", password="password",
            role=UserRole.USER, participant_cef="P123456",
        ),
    ]
