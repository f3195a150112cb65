"""Error codes and the single exception type raised across scaffoldserve.

Every failure that reaches a tool boundary is a ``ScaffoldError``. The server
serialises it into a structured envelope::

    {"error": {"code": "SCAFFOLD_NOT_FOUND", "message": "...", "recoverable": false}}
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    INDEX_LOAD_FAILED = "INDEX_LOAD_FAILED"
    SCAFFOLD_NOT_FOUND = "SCAFFOLD_NOT_FOUND"
    BUFFER_WRITE_FAILED = "BUFFER_WRITE_FAILED"
    NO_STORE_AVAILABLE = "NO_STORE_AVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ScaffoldError(Exception):
    """A request-scoped failure with a machine-readable code."""

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }

    def __repr__(self) -> str:
        return f"ScaffoldError(code={self.code.value!r}, message={self.message!r})"
