"""
Accounts Module

Participant import with account provisioning, user management and login.
Passwords are stored as given; this application does no hashing.
"""

import re
import uuid
from dataclasses import replace
from typing import List, Optional

from .entities import AppState, Participant, SessionUser, UserAccount, UserRole
from .exceptions import ValidationError
from infrastructure.logger import get_logger

logger = get_logger("Accounts")

_NON_DIGIT = re.compile(r"\D")


def generate_password(participant: Participant) -> str:
    """
    Derive the initial password of a participant.

    The part of the last name before the first space, "@", then the
    first four digits of the CEF: "Dupont Jean" / "P123456" -> "Dupont@1234".
    """
    name_token = participant.last_name.split(" ")[0]
    digits = _NON_DIGIT.sub("", participant.cef)[:4]
    return f"{name_token}@{digits}"


def import_participants(state: AppState, imported: List[Participant], training_year: str) -> AppState:
    """
    Replace the roster of a training year and provision missing accounts.

    Participants of other training years are untouched. Every imported
    participant whose CEF has no linked account gets one, with the CEF
    as username and a generated password.

    Args:
        state: Current state (not modified)
        imported: Parsed participants
        training_year: Year the participants are imported into

    Returns:
        New state
    """
    imported = [replace(p, training_year=training_year) for p in imported]
    participants = [p for p in state.participants if p.training_year != training_year] + imported

    linked = {u.participant_cef for u in state.users if u.participant_cef}
    users = list(state.users)
    for participant in imported:
        if participant.cef in linked:
            continue
        users.append(UserAccount(
            id=f"user-{participant.cef}",
            username=participant.cef,
            password=generate_password(participant),
            role=UserRole.USER,
            participant_cef=participant.cef,
        ))
        linked.add(participant.cef)

    logger.info(
        f"Import {training_year}: {len(imported)} participants, "
        f"{len(users) - len(state.users)} comptes créés"
    )
    return replace(state, participants=participants, users=users)


def add_user(
    users: List[UserAccount],
    username: str,
    password: str,
    role: UserRole,
    participant_cef: Optional[str] = None,
) -> List[UserAccount]:
    """
    Create an account.

    Raises:
        ValidationError: Missing username/password, user account without
            a linked participant, or username already taken
    """
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Le nom d'utilisateur et le mot de passe sont requis.")
    if role == UserRole.USER and not participant_cef:
        raise ValidationError("Un participant doit être lié à un compte utilisateur.")
    if any(u.username == username for u in users):
        raise ValidationError(f"Le nom d'utilisateur '{username}' existe déjà.")

    account = UserAccount(
        id=f"user-{uuid.uuid4().hex[:12]}",
        username=username,
        password=password,
        role=role,
        participant_cef=participant_cef if role == UserRole.USER else None,
    )
    return list(users) + [account]


def delete_user(users: List[UserAccount], user_id: str) -> List[UserAccount]:
    return [u for u in users if u.id != user_id]


def reset_password(users: List[UserAccount], participants: List[Participant], user_id: str) -> List[UserAccount]:
    """
    Reset an account's password to the generated one.

    Accounts without a linked, existing participant are left unchanged.
    """
    updated = []
    for user in users:
        if user.id == user_id and user.participant_cef:
            participant = next((p for p in participants if p.cef == user.participant_cef), None)
            if participant:
                user = replace(user, password=generate_password(participant))
            else:
                logger.warning(f"Réinitialisation ignorée: participant '{user.participant_cef}' introuvable")
        updated.append(user)
    return updated


def authenticate(users: List[UserAccount], username: str, password: str) -> Optional[SessionUser]:
    """Get the session user for matching credentials, or None."""
    for user in users:
        if user.username == username and user.password == password:
            return SessionUser(
                id=user.id,
                username=user.username,
                role=user.role,
                participant_cef=user.participant_cef,
            )
    return None


def visible_participants(participants: List[Participant], session: SessionUser) -> List[Participant]:
    """Admins see every participant, users only their own record."""
    if session.is_admin:
        return list(participants)
    return [p for p in participants if p.cef == session.participant_cef]


def available_participants(users: List[UserAccount], participants: List[Participant]) -> List[Participant]:
    """Participants not yet linked to an account."""
    linked = {u.participant_cef for u in users}
    return [p for p in participants if p.cef not in linked]
