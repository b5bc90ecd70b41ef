"""Prepaid session balance model."""

from sqlalchemy import CheckConstraint, Column, Date, Index, Integer, UniqueConstraint

from ..core.database import Base


class SessionBalance(Base):
    """Current prepaid session counts for one player within one team."""

    __tablename__ = "session_balances"
    __table_args__ = (
        UniqueConstraint("team_id", "player_id", name="session_balances_team_player_unique"),
        CheckConstraint("used_sessions >= 0", name="session_balances_used_non_negative"),
        CheckConstraint("remaining_sessions >= 0", name="session_balances_remaining_non_negative"),
        Index("idx_session_balances_player_id", "player_id"),
        Index("idx_session_balances_team_id", "team_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, nullable=False)
    team_id = Column(Integer, nullable=False)
    total_sessions = Column(Integer, nullable=False)
    used_sessions = Column(Integer, nullable=False, default=0)
    remaining_sessions = Column(Integer, nullable=False)
    expiration_date = Column(Date)
    last_updated_by_user = Column("lastUpdatedByUser", Integer, nullable=False)

    def __repr__(self) -> str:
        return (
            f"SessionBalance(team_id={self.team_id}, player_id={self.player_id}, "
            f"total={self.total_sessions}, used={self.used_sessions}, remaining={self.remaining_sessions})"
        )
