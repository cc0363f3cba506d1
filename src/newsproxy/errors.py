from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_CATEGORY = "INVALID_CATEGORY"
    INVALID_INPUT = "INVALID_INPUT"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    UPSTREAM_SCHEMA_MISMATCH = "UPSTREAM_SCHEMA_MISMATCH"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


# Upstream failures the coordinator absorbs into an empty result.
UPSTREAM_ERROR_CODES: frozenset[ErrorCode] = frozenset(
    {ErrorCode.UPSTREAM_UNAVAILABLE, ErrorCode.UPSTREAM_SCHEMA_MISMATCH}
)


class NewsProxyError(Exception):
    """Raised by normalizer, fetcher and store for all expected failure conditions.

    Caught by server.py and serialised into the HTTP error response. The only
    place business logic catches it is the coordinator, which turns upstream
    failures into an empty result instead of an error.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
