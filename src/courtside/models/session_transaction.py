"""Session transaction model capturing balance movements."""

import enum

from sqlalchemy import Column, DateTime, Index, Integer, String

from ..core.database import Base
from ..utils.datetime import utcnow


class SessionReason(str, enum.Enum):
    """Ledger event classification."""

    PAYMENT = "payment"
    ATTENDANCE = "attendance"
    MANUAL_ADJUSTMENT = "manual-adjustment"


class SessionTransaction(Base):
    """Immutable record of one change to a player's session balance."""

    __tablename__ = "session_transactions"
    __table_args__ = (
        Index("idx_session_transactions_player_id", "player_id"),
        Index("idx_session_transactions_team_id", "team_id"),
        Index("idx_session_transactions_date", "date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, nullable=False)
    team_id = Column(Integer, nullable=False)
    date = Column(DateTime, default=utcnow, nullable=False)
    session_change = Column(Integer, nullable=False)
    # Plain varchar: legacy rows carry "purchase" and "adjustment".
    reason = Column(String, nullable=False)
    notes = Column(String)
    payment_id = Column(Integer)
    attendance_id = Column(Integer)
    last_updated_by_user = Column("lastUpdatedByUser", Integer, nullable=False)
