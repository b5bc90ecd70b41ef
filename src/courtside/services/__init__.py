"""Service layer exports."""

from . import (
	balance_cache,
	ledger_store,
	session_service,
)

__all__ = [
	"balance_cache",
	"ledger_store",
	"session_service",
]
