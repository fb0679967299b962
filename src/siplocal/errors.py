"""Error types raised by hours providers.

Only the provider layer raises ``SipLocalError``. The hours service catches
it (and anything else a provider throws) and degrades to cached data, so
these errors never reach cart or UI code.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    SHOP_NOT_CONFIGURED = "SHOP_NOT_CONFIGURED"
    HOURS_FETCH_FAILED = "HOURS_FETCH_FAILED"
    INVALID_HOURS_DATA = "INVALID_HOURS_DATA"


class SipLocalError(Exception):
    """Structured error carrying a machine-readable code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def __repr__(self) -> str:
        return f"SipLocalError(code={self.code!s}, message={self.message!r})"
