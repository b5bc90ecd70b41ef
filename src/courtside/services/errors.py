"""Domain errors raised by the session ledger."""


class LedgerError(Exception):
    """Base class for ledger failures that map to a client-facing response."""

    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class SessionValidationError(LedgerError):
    """Raised when counts, ids or dates are malformed before any store access."""
