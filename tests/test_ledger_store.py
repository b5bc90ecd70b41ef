from datetime import datetime

import pytest

from courtside.models import SessionBalance
from courtside.services import ledger_store
from courtside.services.errors import SessionValidationError

TEAM = 3
COACH = 5


def test_missing_balance_is_none(db_session):
    assert ledger_store.get_balance(db_session, team_id=TEAM, player_id=1) is None


def test_upsert_inserts_then_updates_in_place(db_session):
    created = ledger_store.upsert_balance(
        db_session, team_id=TEAM, player_id=1, fields={"total_sessions": 10}, acting_user_id=COACH
    )
    updated = ledger_store.upsert_balance(
        db_session, team_id=TEAM, player_id=1, fields={"used_sessions": 4}, acting_user_id=7
    )
    db_session.commit()

    assert updated.id == created.id
    assert db_session.query(SessionBalance).count() == 1
    assert (updated.total_sessions, updated.used_sessions, updated.remaining_sessions) == (10, 4, 6)
    assert updated.last_updated_by_user == 7


def test_read_after_write_returns_written_values(db_session):
    ledger_store.upsert_balance(
        db_session,
        team_id=TEAM,
        player_id=1,
        fields={"total_sessions": 8, "used_sessions": 1, "expiration_date": "2025-09-01"},
        acting_user_id=COACH,
    )

    balance = ledger_store.get_balance(db_session, team_id=TEAM, player_id=1)
    assert (balance.total_sessions, balance.used_sessions, balance.remaining_sessions) == (8, 1, 7)
    assert balance.expiration_date.isoformat() == "2025-09-01"


def test_upsert_stores_explicit_remaining(db_session):
    balance = ledger_store.upsert_balance(
        db_session,
        team_id=TEAM,
        player_id=1,
        fields={"total_sessions": 8, "remaining_sessions": 2},
        acting_user_id=COACH,
    )

    assert balance.remaining_sessions == 2


def test_upsert_requires_total_on_create(db_session):
    with pytest.raises(SessionValidationError):
        ledger_store.upsert_balance(
            db_session, team_id=TEAM, player_id=1, fields={"used_sessions": 1}, acting_user_id=COACH
        )


def test_upsert_rejects_unknown_fields(db_session):
    with pytest.raises(SessionValidationError) as excinfo:
        ledger_store.upsert_balance(
            db_session,
            team_id=TEAM,
            player_id=1,
            fields={"total_sessions": 1, "bonus_sessions": 3},
            acting_user_id=COACH,
        )

    assert "bonus_sessions" in excinfo.value.detail


def test_team_balances_only_include_players_with_rows(db_session):
    for player_id in (11, 12):
        ledger_store.upsert_balance(
            db_session, team_id=TEAM, player_id=player_id, fields={"total_sessions": 4}, acting_user_id=COACH
        )
    ledger_store.upsert_balance(
        db_session, team_id=TEAM + 1, player_id=13, fields={"total_sessions": 4}, acting_user_id=COACH
    )
    db_session.commit()

    balances = ledger_store.get_team_balances(db_session, team_id=TEAM)
    assert [balance.player_id for balance in balances] == [11, 12]


def test_transactions_are_listed_newest_first(db_session):
    for day, change in ((1, 5), (3, -1), (2, -1)):
        ledger_store.append_transaction(
            db_session,
            team_id=TEAM,
            player_id=1,
            session_change=change,
            reason="attendance" if change < 0 else "payment",
            acting_user_id=COACH,
            date=datetime(2024, 3, day),
        )
    ledger_store.append_transaction(
        db_session, team_id=TEAM, player_id=2, session_change=3, reason="payment", acting_user_id=COACH
    )
    db_session.commit()

    history = ledger_store.list_transactions(db_session, team_id=TEAM, player_id=1)
    assert [entry.date.day for entry in history] == [3, 2, 1]
    assert len(ledger_store.list_transactions(db_session, team_id=TEAM)) == 4
    assert len(ledger_store.list_transactions(db_session, team_id=TEAM, limit=2, offset=1)) == 2


def test_append_transaction_rejects_unknown_reason(db_session):
    with pytest.raises(SessionValidationError):
        ledger_store.append_transaction(
            db_session, team_id=TEAM, player_id=1, session_change=1, reason="gift", acting_user_id=COACH
        )


def test_append_transaction_defaults_date_to_now(db_session):
    entry = ledger_store.append_transaction(
        db_session,
        team_id=TEAM,
        player_id=1,
        session_change=2,
        reason="manual-adjustment",
        acting_user_id=COACH,
    )

    assert isinstance(entry.date, datetime)
    assert entry.payment_id is None and entry.attendance_id is None
