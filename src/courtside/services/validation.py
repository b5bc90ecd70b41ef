"""Input checks shared by the ledger store and reconciliation logic."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from .errors import SessionValidationError


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_id(name: str, value: Any) -> int:
    """Return ``value`` if it is a positive integer identifier."""

    if not _is_int(value) or value <= 0:
        raise SessionValidationError(f"{name} must be a positive integer")
    return value


def optional_id(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    return require_id(name, value)


def require_count(name: str, value: Any, *, positive: bool = False) -> int:
    """Return ``value`` if it is a whole, non-negative session count."""

    if not _is_int(value):
        raise SessionValidationError(f"{name} must be a whole number of sessions")
    if positive and value <= 0:
        raise SessionValidationError(f"{name} must be greater than zero")
    if value < 0:
        raise SessionValidationError(f"{name} cannot be negative")
    return value


def require_date(name: str, value: Any) -> Optional[date]:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string; ``None`` passes through."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise SessionValidationError(f"{name} must be in YYYY-MM-DD format") from exc
    raise SessionValidationError(f"{name} must be in YYYY-MM-DD format")
