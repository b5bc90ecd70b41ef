"""SQLAlchemy models for Courtside."""

from .session_balance import SessionBalance
from .session_transaction import SessionReason, SessionTransaction

__all__ = [
    "SessionBalance",
    "SessionReason",
    "SessionTransaction",
]
