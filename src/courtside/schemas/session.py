"""Pydantic schemas for prepaid session endpoints."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes with the camelCase names the roster client expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SessionBalanceRead(CamelModel):
    """Current balance for a player."""

    id: int
    player_id: int
    team_id: int
    total_sessions: int = Field(..., ge=0)
    used_sessions: int = Field(..., ge=0)
    remaining_sessions: int = Field(..., ge=0)
    expiration_date: Optional[date] = None
    last_updated_by_user: int


class SessionTransactionRead(CamelModel):
    """One ledger row explaining a balance change."""

    id: int
    player_id: int
    team_id: int
    date: datetime
    session_change: int
    reason: str
    notes: Optional[str] = None
    payment_id: Optional[int] = None
    attendance_id: Optional[int] = None
    last_updated_by_user: int


class PlayerSessionView(CamelModel):
    """Balance plus newest-first history for one player."""

    balance: Optional[SessionBalanceRead] = None
    transactions: List[SessionTransactionRead] = Field(default_factory=list)


class SessionBalanceUpdate(CamelModel):
    """Request body for overriding a player's prepaid balance."""

    total_sessions: int = Field(..., ge=0, strict=True, description="New total, replacing the old one.")
    used_sessions: Optional[int] = Field(None, ge=0, strict=True)
    remaining_sessions: Optional[int] = Field(None, ge=0, strict=True)
    expiration_date: Optional[date] = Field(None, description="YYYY-MM-DD; advisory only. An explicit null clears it.")
    notes: Optional[str] = Field(None, max_length=500)


class SessionConsume(CamelModel):
    """Attendance event that uses one prepaid session."""

    attendance_id: Optional[int] = Field(None, ge=1, strict=True)
    attendance_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=500)


class SessionCredit(CamelModel):
    """Payment event that adds prepaid sessions."""

    session_count: int = Field(..., gt=0, strict=True)
    payment_id: Optional[int] = Field(None, ge=1, strict=True)
    notes: Optional[str] = Field(None, max_length=500)
