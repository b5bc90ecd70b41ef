"""Public schema exports."""

from .session import (
	PlayerSessionView,
	SessionBalanceRead,
	SessionBalanceUpdate,
	SessionConsume,
	SessionCredit,
	SessionTransactionRead,
)

__all__ = [
	"PlayerSessionView",
	"SessionBalanceRead",
	"SessionBalanceUpdate",
	"SessionConsume",
	"SessionCredit",
	"SessionTransactionRead",
]
