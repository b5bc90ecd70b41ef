"""Persistence for session balances and their transaction history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import SessionBalance, SessionReason, SessionTransaction
from ..utils.datetime import utcnow
from .errors import SessionValidationError
from .validation import optional_id, require_count, require_date, require_id

BALANCE_FIELDS = frozenset({"total_sessions", "used_sessions", "remaining_sessions", "expiration_date"})


def get_balance(
    session: Session,
    *,
    team_id: int,
    player_id: int,
    for_update: bool = False,
) -> Optional[SessionBalance]:
    """Return the current balance row, or ``None`` if the player has never had one."""

    stmt = select(SessionBalance).where(
        SessionBalance.team_id == team_id,
        SessionBalance.player_id == player_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def get_team_balances(session: Session, *, team_id: int) -> Sequence[SessionBalance]:
    """Return every balance row recorded for a team, inactive players included."""

    stmt = (
        select(SessionBalance)
        .where(SessionBalance.team_id == team_id)
        .order_by(SessionBalance.player_id.asc())
    )
    return session.execute(stmt).scalars().all()


def _clean_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - BALANCE_FIELDS
    if unknown:
        raise SessionValidationError(f"Unknown balance fields: {', '.join(sorted(unknown))}")

    cleaned: dict[str, Any] = {}
    for name in ("total_sessions", "used_sessions", "remaining_sessions"):
        if fields.get(name) is not None:
            cleaned[name] = require_count(name, fields[name])
    if "expiration_date" in fields:
        cleaned["expiration_date"] = require_date("expiration_date", fields["expiration_date"])
    return cleaned


def upsert_balance(
    session: Session,
    *,
    team_id: int,
    player_id: int,
    fields: Mapping[str, Any],
    acting_user_id: int,
    existing: Optional[SessionBalance] = None,
) -> SessionBalance:
    """Insert the balance if absent, otherwise overwrite its mutable fields.

    ``remaining_sessions`` is derived from total and used unless the caller
    passes it explicitly, in which case it is stored as given.
    """

    require_id("team_id", team_id)
    require_id("player_id", player_id)
    require_id("acting_user_id", acting_user_id)
    cleaned = _clean_fields(fields)

    balance = existing if existing is not None else get_balance(session, team_id=team_id, player_id=player_id)
    if balance is None:
        if "total_sessions" not in cleaned:
            raise SessionValidationError("total_sessions is required to create a session balance")
        balance = SessionBalance(team_id=team_id, player_id=player_id, used_sessions=0)
        session.add(balance)

    for name, value in cleaned.items():
        setattr(balance, name, value)
    if balance.used_sessions is None:
        balance.used_sessions = 0
    if "remaining_sessions" not in cleaned:
        balance.remaining_sessions = max(balance.total_sessions - balance.used_sessions, 0)
    balance.last_updated_by_user = acting_user_id

    session.flush()
    return balance


def append_transaction(
    session: Session,
    *,
    team_id: int,
    player_id: int,
    session_change: int,
    reason: SessionReason | str,
    acting_user_id: int,
    notes: Optional[str] = None,
    payment_id: Optional[int] = None,
    attendance_id: Optional[int] = None,
    date: Optional[datetime] = None,
) -> SessionTransaction:
    """Insert one immutable transaction row."""

    require_id("team_id", team_id)
    require_id("player_id", player_id)
    require_id("acting_user_id", acting_user_id)
    if not isinstance(session_change, int) or isinstance(session_change, bool):
        raise SessionValidationError("session_change must be an integer")
    try:
        reason_value = SessionReason(reason).value
    except ValueError as exc:
        raise SessionValidationError(f"Unknown transaction reason: {reason}") from exc

    entry = SessionTransaction(
        team_id=team_id,
        player_id=player_id,
        date=date or utcnow(),
        session_change=session_change,
        reason=reason_value,
        notes=notes,
        payment_id=optional_id("payment_id", payment_id),
        attendance_id=optional_id("attendance_id", attendance_id),
        last_updated_by_user=acting_user_id,
    )
    session.add(entry)
    session.flush()
    return entry


def list_transactions(
    session: Session,
    *,
    team_id: int,
    player_id: Optional[int] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Sequence[SessionTransaction]:
    """Return transactions for a team, newest first, optionally for one player."""

    stmt = (
        select(SessionTransaction)
        .where(SessionTransaction.team_id == team_id)
        .order_by(SessionTransaction.date.desc(), SessionTransaction.id.desc())
        .offset(offset)
    )
    if player_id is not None:
        stmt = stmt.where(SessionTransaction.player_id == player_id)
    if limit is not None:
        stmt = stmt.limit(limit)
    return session.execute(stmt).scalars().all()
