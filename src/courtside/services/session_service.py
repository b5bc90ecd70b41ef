"""Reconciliation logic for prepaid session balances.

Every operation here reads the current balance with a row lock, computes the
new counts, writes the balance and appends one transaction row. Nothing is
committed: the caller owns the unit of work and commits the balance write
and the ledger append together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import SessionBalance, SessionReason, SessionTransaction
from ..utils.datetime import today_utc
from . import ledger_store
from .errors import SessionValidationError
from .validation import optional_id, require_count, require_date, require_id

logger = logging.getLogger(__name__)

OVERRIDE_REASONS = (SessionReason.MANUAL_ADJUSTMENT, SessionReason.PAYMENT)

# Marks an expiration date the caller did not send; None clears the stored date.
UNCHANGED: Any = object()


@dataclass
class BalanceChange:
    """Outcome of a balance mutation."""

    balance: SessionBalance
    transaction: Optional[SessionTransaction]
    created: bool = False


def reconcile_remaining(total_sessions: int, used_sessions: int) -> int:
    """Remaining sessions never drop below zero."""

    return max(total_sessions - used_sessions, 0)


def is_balance_expired(balance: SessionBalance, today: Optional[date] = None) -> bool:
    """Advisory check; expired balances are still consumable."""

    if balance.expiration_date is None:
        return False
    return balance.expiration_date < (today or today_utc())


def _check_scope(team_id: Any, player_id: Any, acting_user_id: Any) -> None:
    require_id("team_id", team_id)
    require_id("player_id", player_id)
    require_id("acting_user_id", acting_user_id)


def _override_reason(reason: Any) -> SessionReason:
    try:
        value = SessionReason(reason)
    except ValueError as exc:
        raise SessionValidationError(f"Unknown transaction reason: {reason}") from exc
    if value not in OVERRIDE_REASONS:
        raise SessionValidationError(f"Balance overrides cannot be recorded as '{value.value}'")
    return value


def set_balance(
    session: Session,
    *,
    team_id: int,
    player_id: int,
    total_sessions: int,
    acting_user_id: int,
    used_sessions: Optional[int] = None,
    remaining_sessions: Optional[int] = None,
    expiration_date: Optional[date | str] = UNCHANGED,
    notes: Optional[str] = None,
    reason: SessionReason | str = SessionReason.MANUAL_ADJUSTMENT,
    payment_id: Optional[int] = None,
) -> BalanceChange:
    """Replace the player's total outright, carrying used sessions forward.

    Explicit ``used_sessions`` / ``remaining_sessions`` are stored as given.
    ``expiration_date`` is kept when omitted and cleared when ``None``.
    A call that would leave the row unchanged writes nothing.
    """

    _check_scope(team_id, player_id, acting_user_id)
    require_count("total_sessions", total_sessions)
    if used_sessions is not None:
        require_count("used_sessions", used_sessions)
    if remaining_sessions is not None:
        require_count("remaining_sessions", remaining_sessions)
    update_expiration = expiration_date is not UNCHANGED
    expiration = require_date("expiration_date", expiration_date) if update_expiration else None
    reason = _override_reason(reason)
    optional_id("payment_id", payment_id)

    current = ledger_store.get_balance(session, team_id=team_id, player_id=player_id, for_update=True)
    old_total = current.total_sessions if current is not None else 0

    new_used = used_sessions
    if new_used is None:
        new_used = current.used_sessions if current is not None else 0
    expected_remaining = reconcile_remaining(total_sessions, new_used)

    fields: dict[str, Any] = {"total_sessions": total_sessions, "used_sessions": new_used}
    if remaining_sessions is not None:
        fields["remaining_sessions"] = remaining_sessions
        if remaining_sessions != expected_remaining:
            logger.warning(
                "explicit remaining_sessions=%s differs from reconciled %s for team=%s player=%s",
                remaining_sessions,
                expected_remaining,
                team_id,
                player_id,
            )
    if update_expiration:
        fields["expiration_date"] = expiration

    if current is not None:
        target_remaining = remaining_sessions if remaining_sessions is not None else expected_remaining
        unchanged = (
            current.total_sessions == total_sessions
            and current.used_sessions == new_used
            and current.remaining_sessions == target_remaining
            and (not update_expiration or current.expiration_date == expiration)
        )
        if unchanged:
            return BalanceChange(balance=current, transaction=None)

    balance = ledger_store.upsert_balance(
        session,
        team_id=team_id,
        player_id=player_id,
        fields=fields,
        acting_user_id=acting_user_id,
        existing=current,
    )

    session_change = total_sessions - old_total
    if not notes:
        if reason is SessionReason.PAYMENT and payment_id is not None:
            notes = f"Set total sessions to {total_sessions} with payment #{payment_id} (was {old_total})"
        else:
            notes = f"Manual adjustment: set total sessions to {total_sessions} (was {old_total})"

    transaction = ledger_store.append_transaction(
        session,
        team_id=team_id,
        player_id=player_id,
        session_change=session_change,
        reason=reason,
        acting_user_id=acting_user_id,
        notes=notes,
        payment_id=payment_id,
    )
    logger.info(
        "session balance override team=%s player=%s reason=%s total=%s->%s used=%s change=%+d user=%s",
        team_id,
        player_id,
        reason.value,
        old_total,
        total_sessions,
        balance.used_sessions,
        session_change,
        acting_user_id,
    )
    return BalanceChange(balance=balance, transaction=transaction, created=current is None)


def consume_session(
    session: Session,
    *,
    team_id: int,
    player_id: int,
    acting_user_id: int,
    attendance_id: Optional[int] = None,
    attendance_date: Optional[date | str] = None,
    notes: Optional[str] = None,
) -> Optional[BalanceChange]:
    """Use one session for an attended practice.

    Players without a balance row are not on a prepaid arrangement; nothing is
    written for them and ``None`` is returned.
    """

    _check_scope(team_id, player_id, acting_user_id)
    optional_id("attendance_id", attendance_id)
    attended_on = require_date("attendance_date", attendance_date)

    current = ledger_store.get_balance(session, team_id=team_id, player_id=player_id, for_update=True)
    if current is None:
        logger.debug("no session balance for team=%s player=%s; attendance not charged", team_id, player_id)
        return None

    if is_balance_expired(current, attended_on):
        logger.warning(
            "consuming expired session balance team=%s player=%s expired=%s",
            team_id,
            player_id,
            current.expiration_date,
        )

    balance = ledger_store.upsert_balance(
        session,
        team_id=team_id,
        player_id=player_id,
        fields={"used_sessions": current.used_sessions + 1},
        acting_user_id=acting_user_id,
        existing=current,
    )

    event_day = attended_on or today_utc()
    transaction = ledger_store.append_transaction(
        session,
        team_id=team_id,
        player_id=player_id,
        session_change=-1,
        reason=SessionReason.ATTENDANCE,
        acting_user_id=acting_user_id,
        notes=notes or f"Used 1 session for attendance on {event_day.isoformat()}",
        attendance_id=attendance_id,
        date=datetime.combine(attended_on, time.min) if attended_on else None,
    )
    logger.info(
        "session consumed team=%s player=%s reason=%s change=-1 used=%s remaining=%s attendance=%s",
        team_id,
        player_id,
        SessionReason.ATTENDANCE.value,
        balance.used_sessions,
        balance.remaining_sessions,
        attendance_id,
    )
    return BalanceChange(balance=balance, transaction=transaction)


def credit_sessions(
    session: Session,
    *,
    team_id: int,
    player_id: int,
    session_count: int,
    acting_user_id: int,
    payment_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> BalanceChange:
    """Add prepaid sessions bought with a payment, creating the balance if needed."""

    _check_scope(team_id, player_id, acting_user_id)
    require_count("session_count", session_count, positive=True)
    optional_id("payment_id", payment_id)

    current = ledger_store.get_balance(session, team_id=team_id, player_id=player_id, for_update=True)
    new_total = session_count if current is None else current.total_sessions + session_count

    balance = ledger_store.upsert_balance(
        session,
        team_id=team_id,
        player_id=player_id,
        fields={"total_sessions": new_total},
        acting_user_id=acting_user_id,
        existing=current,
    )

    if not notes:
        if payment_id is not None:
            notes = f"Added {session_count} sessions with payment #{payment_id}"
        else:
            notes = f"Added {session_count} prepaid sessions"

    transaction = ledger_store.append_transaction(
        session,
        team_id=team_id,
        player_id=player_id,
        session_change=session_count,
        reason=SessionReason.PAYMENT,
        acting_user_id=acting_user_id,
        notes=notes,
        payment_id=payment_id,
    )
    logger.info(
        "sessions credited team=%s player=%s reason=%s change=%+d total=%s payment=%s",
        team_id,
        player_id,
        SessionReason.PAYMENT.value,
        session_count,
        balance.total_sessions,
        payment_id,
    )
    return BalanceChange(balance=balance, transaction=transaction, created=current is None)
