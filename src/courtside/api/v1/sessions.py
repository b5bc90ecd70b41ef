"""Prepaid session balance endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.identity import get_acting_user_id
from ...schemas import (
    PlayerSessionView,
    SessionBalanceRead,
    SessionBalanceUpdate,
    SessionConsume,
    SessionCredit,
    SessionTransactionRead,
)
from ...services import ledger_store, session_service
from ...services.balance_cache import BalanceViewCache, get_balance_cache, player_key, team_key
from ...services.errors import LedgerError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams/{team_id}/sessions", tags=["sessions"])

_BALANCE_EXAMPLE = {
    "id": 7,
    "playerId": 42,
    "teamId": 3,
    "totalSessions": 10,
    "usedSessions": 3,
    "remainingSessions": 7,
    "expirationDate": "2025-12-31",
    "lastUpdatedByUser": 5,
}


def _commit_or_raise(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("failed to %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An error occurred while {action}",
        ) from exc


def _run_write(db: Session, action: str, operation):
    """Run a service mutation as one unit of work."""

    try:
        result = operation()
    except LedgerError as exc:
        db.rollback()
        logger.warning("rejected request to %s: %s", action, exc.detail)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("failed to %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"An error occurred while {action}",
        ) from exc
    _commit_or_raise(db, action)
    return result


@router.get(
    "",
    response_model=List[SessionBalanceRead],
    summary="List session balances for a team",
    responses={
        200: {
            "description": "Every balance row recorded for the team",
            "content": {"application/json": {"example": [_BALANCE_EXAMPLE]}},
        }
    },
)
def list_team_balances(
    team_id: int = Path(..., ge=1, description="Team identifier"),
    db: Session = Depends(get_db),
    cache: BalanceViewCache = Depends(get_balance_cache),
) -> List[SessionBalanceRead]:
    """Return balances for all players of the team that ever had one.

    Inactive players are included; filtering by roster status is left to the client.
    """

    key = team_key(team_id)
    cached = cache.get(key)
    if cached is not None:
        return cached
    generation = cache.generation(key)

    balances = ledger_store.get_team_balances(db, team_id=team_id)
    view = [SessionBalanceRead.model_validate(balance) for balance in balances]
    cache.set(key, view, generation=generation)
    return view


@router.get(
    "/{player_id}",
    response_model=PlayerSessionView,
    summary="Get a player's balance and history",
    responses={
        200: {
            "description": "Balance (null when none was ever set) and newest-first transactions",
            "content": {
                "application/json": {
                    "example": {
                        "balance": _BALANCE_EXAMPLE,
                        "transactions": [
                            {
                                "id": 19,
                                "playerId": 42,
                                "teamId": 3,
                                "date": "2025-11-12T18:00:00",
                                "sessionChange": -1,
                                "reason": "attendance",
                                "notes": "Used 1 session for attendance on 2025-11-12",
                                "paymentId": None,
                                "attendanceId": 88,
                                "lastUpdatedByUser": 5,
                            }
                        ],
                    }
                }
            },
        }
    },
)
def get_player_sessions(
    team_id: int = Path(..., ge=1, description="Team identifier"),
    player_id: int = Path(..., ge=1, description="Player identifier"),
    db: Session = Depends(get_db),
    cache: BalanceViewCache = Depends(get_balance_cache),
) -> PlayerSessionView:
    """Return the player's current balance together with its audit trail."""

    key = player_key(team_id, player_id)
    cached = cache.get(key)
    if cached is not None:
        return cached
    generation = cache.generation(key)

    balance = ledger_store.get_balance(db, team_id=team_id, player_id=player_id)
    transactions = ledger_store.list_transactions(db, team_id=team_id, player_id=player_id)
    view = PlayerSessionView(
        balance=SessionBalanceRead.model_validate(balance) if balance is not None else None,
        transactions=[SessionTransactionRead.model_validate(entry) for entry in transactions],
    )
    cache.set(key, view, generation=generation)
    return view


@router.put(
    "/{player_id}",
    response_model=SessionBalanceRead,
    summary="Override a player's prepaid session balance",
    responses={
        200: {"description": "Balance updated"},
        201: {"description": "Balance created"},
        400: {"description": "Invalid session counts"},
        401: {"description": "Missing acting user"},
    },
)
def set_player_balance(
    payload: SessionBalanceUpdate,
    response: Response,
    team_id: int = Path(..., ge=1, description="Team identifier"),
    player_id: int = Path(..., ge=1, description="Player identifier"),
    acting_user_id: int = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    cache: BalanceViewCache = Depends(get_balance_cache),
) -> SessionBalanceRead:
    """Replace the player's total sessions; used sessions carry forward.

    This is an override, not an increment: any previous total is discarded.

    Example request body::

        {
            "totalSessions": 10,
            "expirationDate": "2025-12-31",
            "notes": "Fall package"
        }
    """

    change = _run_write(
        db,
        "updating session balance",
        lambda: session_service.set_balance(
            db,
            team_id=team_id,
            player_id=player_id,
            total_sessions=payload.total_sessions,
            used_sessions=payload.used_sessions,
            remaining_sessions=payload.remaining_sessions,
            expiration_date=(
                payload.expiration_date
                if "expiration_date" in payload.model_fields_set
                else session_service.UNCHANGED
            ),
            notes=payload.notes,
            acting_user_id=acting_user_id,
        ),
    )
    cache.invalidate_player(team_id, player_id)
    db.refresh(change.balance)

    response.status_code = status.HTTP_201_CREATED if change.created else status.HTTP_200_OK
    response.headers["X-Balance-Override"] = (
        f"total sessions replaced with {change.balance.total_sessions}; previous total was not added to"
    )
    return change.balance


@router.post(
    "/{player_id}/consume",
    response_model=Optional[SessionBalanceRead],
    summary="Use one session for an attended practice",
    responses={
        200: {"description": "Updated balance, or null when the player has no prepaid balance"},
        400: {"description": "Invalid attendance reference"},
    },
)
def consume_player_session(
    payload: SessionConsume,
    team_id: int = Path(..., ge=1, description="Team identifier"),
    player_id: int = Path(..., ge=1, description="Player identifier"),
    acting_user_id: int = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    cache: BalanceViewCache = Depends(get_balance_cache),
) -> Optional[SessionBalanceRead]:
    """Called by attendance tracking when a player is newly marked present."""

    change = _run_write(
        db,
        "recording session attendance",
        lambda: session_service.consume_session(
            db,
            team_id=team_id,
            player_id=player_id,
            attendance_id=payload.attendance_id,
            attendance_date=payload.attendance_date,
            notes=payload.notes,
            acting_user_id=acting_user_id,
        ),
    )
    if change is None:
        return None
    cache.invalidate_player(team_id, player_id)
    db.refresh(change.balance)
    return change.balance


@router.post(
    "/{player_id}/credit",
    response_model=SessionBalanceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add prepaid sessions from a payment",
    responses={
        201: {"description": "Sessions credited"},
        400: {"description": "Invalid session count"},
    },
)
def credit_player_sessions(
    payload: SessionCredit,
    team_id: int = Path(..., ge=1, description="Team identifier"),
    player_id: int = Path(..., ge=1, description="Player identifier"),
    acting_user_id: int = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
    cache: BalanceViewCache = Depends(get_balance_cache),
) -> SessionBalanceRead:
    """Called by payment tracking when a payment includes a session package.

    Example request body::

        {
            "sessionCount": 10,
            "paymentId": 31
        }
    """

    change = _run_write(
        db,
        "crediting sessions",
        lambda: session_service.credit_sessions(
            db,
            team_id=team_id,
            player_id=player_id,
            session_count=payload.session_count,
            payment_id=payload.payment_id,
            notes=payload.notes,
            acting_user_id=acting_user_id,
        ),
    )
    cache.invalidate_player(team_id, player_id)
    db.refresh(change.balance)
    return change.balance
