"""
State Store Module

Persists the application collections as JSON files, one file per
collection. Every collection is loaded once at start-up and fully
rewritten after each successful mutation. Unreadable or malformed files
fall back to a safe default instead of failing start-up.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from domain.calendar_utils import default_training_years
from domain.entities import (
    AppState, HistoryEntry, InscriptionStatus, Participant,
    ParticipantFinancials, UserAccount, UserRole
)
from domain.exceptions import StorageError
from infrastructure.logger import get_logger
from infrastructure.seed_data import default_users, demo_participants

logger = get_logger("StateStore")


class CorruptDataError(Exception):
    """Raised when a stored collection does not have the expected shape."""
    pass


# ==============================================================================
# Record <-> dict conversion (keys match the import/export column names)
# ==============================================================================
def participant_to_dict(p: Participant) -> dict:
    return {
        "cef": p.cef,
        "nom": p.last_name,
        "prenom": p.first_name,
        "groupe": p.group,
        "mhAnnuelleAffectee": p.annual_hours,
        "fraisInscription": p.registration_fee,
        "fraisFormation": p.tuition_fee,
        "trainingYear": p.training_year,
    }


def participant_from_dict(data: dict) -> Participant:
    return Participant(
        cef=str(data["cef"]),
        last_name=str(data.get("nom", "")),
        first_name=str(data.get("prenom", "")),
        group=str(data.get("groupe", "")),
        annual_hours=float(data.get("mhAnnuelleAffectee") or 0),
        registration_fee=float(data.get("fraisInscription") or 0),
        tuition_fee=float(data.get("fraisFormation") or 0),
        training_year=str(data.get("trainingYear", "")),
    )


def history_to_dict(entry: HistoryEntry) -> dict:
    return {
        "id": entry.id,
        "date": entry.date,
        "trainingYear": entry.training_year,
        "month": entry.month,
        "weekLabel": entry.week_label,
        "group": entry.group,
        "attendance": entry.attendance,
        "weekDates": entry.week_dates,
    }


def history_from_dict(data: dict) -> HistoryEntry:
    return HistoryEntry(
        id=str(data["id"]),
        date=str(data.get("date", "")),
        training_year=str(data.get("trainingYear", "")),
        month=str(data.get("month", "")),
        week_label=str(data.get("weekLabel", "")),
        group=str(data.get("group", "")),
        attendance=_attendance_from_dict(data.get("attendance") or {}),
        week_dates=[str(d) for d in data.get("weekDates") or []],
    )


def financials_to_dict(record: ParticipantFinancials) -> dict:
    return {
        "inscriptionStatus": record.inscription_status.value,
        "inscriptionPayment": record.inscription_payment,
        "monthlyPayments": record.monthly_payments,
    }


def financials_from_dict(data: dict) -> ParticipantFinancials:
    # Optional fields default here, not at every call site
    status = data.get("inscriptionStatus", InscriptionStatus.PENDING.value)
    return ParticipantFinancials(
        inscription_status=InscriptionStatus(status),
        inscription_payment=float(data.get("inscriptionPayment") or 0),
        monthly_payments={
            str(month): float(amount)
            for month, amount in (data.get("monthlyPayments") or {}).items()
        },
    )


def user_to_dict(user: UserAccount) -> dict:
    data = {
        "id": user.id,
        "username": user.username,
        "password": user.password,
        "role": user.role.value,
    }
    if user.participant_cef:
        data["participantCef"] = user.participant_cef
    return data


def user_from_dict(data: dict) -> UserAccount:
    return UserAccount(
        id=str(data["id"]),
        username=str(data["username"]),
        password=str(data.get("password", "")),
        role=UserRole(data.get("role", UserRole.USER.value)),
        participant_cef=data.get("participantCef") or None,
    )


def _attendance_from_dict(data: dict) -> Dict[str, Dict[str, bool]]:
    if not isinstance(data, dict):
        raise CorruptDataError("attendance must be an object")
    ledger = {}
    for cef, days in data.items():
        if not isinstance(days, dict):
            raise CorruptDataError(f"attendance of '{cef}' must be an object")
        ledger[str(cef)] = {str(d): flag is True for d, flag in days.items()}
    return ledger


def _list_of(converter: Callable[[dict], Any]) -> Callable[[Any], list]:
    def convert(data: Any) -> list:
        if not isinstance(data, list):
            raise CorruptDataError("expected a list")
        return [converter(item) for item in data]
    return convert


def _financials_map(data: Any) -> Dict[str, ParticipantFinancials]:
    if not isinstance(data, dict):
        raise CorruptDataError("expected an object")
    return {str(cef): financials_from_dict(rec) for cef, rec in data.items()}


def _string_list(data: Any) -> List[str]:
    if not isinstance(data, list):
        raise CorruptDataError("expected a list")
    return [str(item) for item in data]


# ==============================================================================
# StateStore Class
# ==============================================================================
class StateStore:
    """
    JSON persistence of the application state.

    Files (in data_dir):
    - participants.json, attendance.json, history.json,
      financials.json, users.json, training_years.json
    """

    FILES = {
        "participants": "participants.json",
        "attendance": "attendance.json",
        "history": "history.json",
        "financials": "financials.json",
        "users": "users.json",
        "training_years": "training_years.json",
    }

    def __init__(self, data_dir: Path, seed_demo_data: bool = True):
        self.data_dir = Path(data_dir)
        self.seed_demo_data = seed_demo_data

    def _path(self, collection: str) -> Path:
        return self.data_dir / self.FILES[collection]

    def _read(self, collection: str, converter: Callable[[Any], Any], default: Callable[[], Any]) -> Any:
        """Read one collection, falling back to its default when missing or corrupt."""
        path = self._path(collection)
        if not path.exists():
            return default()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return converter(data)
        except (OSError, json.JSONDecodeError, CorruptDataError,
                KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Collection '{collection}' illisible ({path.name}), valeur par défaut utilisée: {e}")
            return default()

    def load(self) -> AppState:
        """Load every collection."""
        participants = self._read(
            "participants", _list_of(participant_from_dict), self._default_participants
        )

        state = AppState(
            participants=participants,
            attendance=self._read("attendance", _attendance_from_dict, dict),
            history=self._read("history", _list_of(history_from_dict), list),
            financials=self._read("financials", _financials_map, dict),
            users=self._read("users", _list_of(user_from_dict), default_users),
            training_years=self._read("training_years", _string_list, default_training_years),
        )
        logger.info(
            f"Données chargées: {len(state.participants)} participants, "
            f"{len(state.history)} entrées d'historique, {len(state.users)} comptes"
        )
        return state

    def save(self, state: AppState) -> None:
        """
        Rewrite every collection.

        All payloads are serialized and written to temporary files before
        any collection file is replaced. If a replacement fails, the files
        already replaced get their previous content back.

        Raises:
            StorageError: Nothing was saved; disk keeps the previous state
        """
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            payloads = {
                "participants": [participant_to_dict(p) for p in state.participants],
                "attendance": state.attendance,
                "history": [history_to_dict(h) for h in state.history],
                "financials": {cef: financials_to_dict(rec) for cef, rec in state.financials.items()},
                "users": [user_to_dict(u) for u in state.users],
                "training_years": state.training_years,
            }
            texts = {
                collection: json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)
                for collection, payload in payloads.items()
            }
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Sérialisation impossible: {e}")
            raise StorageError(f"Impossible de préparer l'enregistrement: {e}") from e

        staged: Dict[str, Path] = {}
        try:
            for collection, text in texts.items():
                tmp_path = self._tmp_path(collection)
                staged[collection] = tmp_path
                tmp_path.write_text(text, encoding='utf-8')
            self._replace_all(staged)
        except OSError as e:
            logger.error(f"Enregistrement impossible dans {self.data_dir}: {e}")
            raise StorageError(f"Impossible d'enregistrer les données: {e}") from e
        finally:
            for tmp_path in staged.values():
                if tmp_path.is_file():
                    tmp_path.unlink()
        logger.debug(f"Données enregistrées dans {self.data_dir}")

    def _tmp_path(self, collection: str) -> Path:
        path = self._path(collection)
        return path.with_name(path.name + ".tmp")

    def _replace_all(self, staged: Dict[str, Path]) -> None:
        """Move the staged files over their targets, restoring them on failure."""
        previous: Dict[str, Optional[bytes]] = {}
        try:
            for collection, tmp_path in staged.items():
                target = self._path(collection)
                old = target.read_bytes() if target.is_file() else None
                os.replace(tmp_path, target)
                previous[collection] = old
        except OSError:
            self._restore(previous)
            raise

    def _restore(self, previous: Dict[str, Optional[bytes]]) -> None:
        for collection, old in previous.items():
            target = self._path(collection)
            try:
                if old is None:
                    target.unlink()
                else:
                    target.write_bytes(old)
            except OSError as e:
                logger.error(f"Restauration de '{collection}' impossible: {e}")

    def _default_participants(self) -> List[Participant]:
        return demo_participants() if self.seed_demo_data else []
