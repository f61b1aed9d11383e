from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NO_SETS = "NO_SETS"
    YEAR_NOT_FOUND = "YEAR_NOT_FOUND"
    SET_NOT_FOUND = "SET_NOT_FOUND"


class FolioError(Exception):
    """Raised by listing lookups when nothing matches the request.

    Caught by server.py and turned into a 404 response. Cache and filesystem
    problems never surface as FolioError; they degrade to empty results or
    a recompute inside the component that hit them.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
            }
        }
