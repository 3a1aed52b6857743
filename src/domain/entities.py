"""
Domain Entities Module

Core domain entities using dataclasses for the absence tracking system.
These entities represent the core business concepts independent of infrastructure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


# { participant_cef: { "YYYY-MM-DD": is_absent } }
AbsenceLedger = Dict[str, Dict[str, bool]]

ALL_GROUPS = "all"


class InscriptionStatus(Enum):
    """Registration payment status."""
    PAID = "Payé"
    PENDING = "En attente"


class UserRole(Enum):
    """Role of an application account."""
    ADMIN = "admin"
    USER = "user"


@dataclass
class Participant:
    """
    Represents a participant enrolled in a training year.

    Attributes:
        cef: Unique, immutable business identifier
        last_name: Family name (column "nom")
        first_name: Given name (column "prenom")
        group: Cohort identifier within the training year
        annual_hours: Annual allotted hours
        registration_fee: Registration fee due
        tuition_fee: Tuition fee due for the year
        training_year: Training year identifier, "YYYY-YYYY"
    """
    cef: str
    last_name: str
    first_name: str
    group: str
    annual_hours: float = 0.0
    registration_fee: float = 0.0
    tuition_fee: float = 0.0
    training_year: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name}".strip()


@dataclass
class HistoryEntry:
    """
    A committed weekly snapshot for one group.

    Attributes:
        id: Composite key "{training_year}-{month_value}-{week_index}-{group}"
        date: ISO-8601 timestamp of the last commit
        training_year: Training year of the snapshot
        month: Month label recorded when the entry was created
        week_label: Week label recorded when the entry was created
        group: Group identifier
        attendance: Week-scoped absence sub-map (absent participants only)
        week_dates: ISO dates of the week, Monday first
    """
    id: str
    date: str
    training_year: str
    month: str
    week_label: str
    group: str
    attendance: AbsenceLedger = field(default_factory=dict)
    week_dates: List[str] = field(default_factory=list)


@dataclass
class ParticipantFinancials:
    """
    Payment record of a participant.

    A missing record is equivalent to the defaults below.
    """
    inscription_status: InscriptionStatus = InscriptionStatus.PENDING
    inscription_payment: float = 0.0
    monthly_payments: Dict[str, float] = field(default_factory=dict)


@dataclass
class MonthlyPayment:
    """Set (amount > 0) or clear (amount <= 0) the payment of a month."""
    month: str
    amount: float


@dataclass
class InscriptionPayment:
    """Set the cumulative registration payment."""
    amount: float


@dataclass
class UserAccount:
    """
    An application account.

    Attributes:
        id: Account identifier
        username: Login name
        password: Plain password (no hashing in this application)
        role: Admin or user
        participant_cef: Linked participant, required for the user role
    """
    id: str
    username: str
    password: str
    role: UserRole = UserRole.USER
    participant_cef: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class SessionUser:
    """The logged-in account, without its password."""
    id: str
    username: str
    role: UserRole
    participant_cef: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class MonthOption:
    """A month of a training year: value "YYYY-MM" and display label."""
    value: str
    label: str


@dataclass(frozen=True)
class WeekScope:
    """
    Selection of the ledger slice to aggregate or commit.

    Attributes:
        training_year: "YYYY-YYYY"
        month_value: "YYYY-MM"
        week_index: Index into the weeks of the month
        group: A group identifier or ALL_GROUPS
    """
    training_year: str
    month_value: str
    week_index: int
    group: str = ALL_GROUPS


@dataclass
class WeekSnapshot:
    """
    Week-scoped absences computed by the aggregator.

    Attributes:
        week_dates: ISO dates of the selected week (empty if the week is invalid)
        groups: group -> cef -> date -> True
    """
    week_dates: List[str] = field(default_factory=list)
    groups: Dict[str, AbsenceLedger] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.week_dates or not self.groups


@dataclass
class AppState:
    """
    The complete persisted application state.

    Core operations take a state and return a new one; they never
    mutate the state they receive.
    """
    participants: List[Participant] = field(default_factory=list)
    attendance: AbsenceLedger = field(default_factory=dict)
    history: List[HistoryEntry] = field(default_factory=list)
    financials: Dict[str, ParticipantFinancials] = field(default_factory=dict)
    users: List[UserAccount] = field(default_factory=list)
    training_years: List[str] = field(default_factory=list)

    def find_participant(self, cef: str) -> Optional[Participant]:
        """Find a participant by CEF."""
        for participant in self.participants:
            if participant.cef == cef:
                return participant
        return None

    def participants_for_year(self, training_year: str) -> List[Participant]:
        return [p for p in self.participants if p.training_year == training_year]
