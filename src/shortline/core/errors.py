"""Error taxonomy for shortline operations.

Every public operation reports exactly one of these codes. Internally the
codes travel as exceptions of the ShortlineError hierarchy; the
`operation` boundary in shortline.core.result turns them into Result values.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Kind of failure reported by an operation."""

    BAD_REQUEST = "BadRequest"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    CONFLICT = "Conflict"
    INTERNAL_ERROR = "InternalError"


class ShortlineError(Exception):
    """Base exception for operation failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, text: str = "", detail: Any = None):
        self.text = text or self.code.value
        self.detail = detail
        super().__init__(self.text)


class BadRequestError(ShortlineError):
    """Malformed or missing required input."""

    code = ErrorCode.BAD_REQUEST


class NotFoundError(ShortlineError):
    """Entity does not exist."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, resource_type: str = "", identifier: str = "", detail: Any = None):
        text = f"{resource_type} '{identifier}' not found" if resource_type else ""
        super().__init__(text, detail)


class ForbiddenError(ShortlineError):
    """Entity exists but the credential or ownership does not match."""

    code = ErrorCode.FORBIDDEN


class ConflictError(ShortlineError):
    """Write collides with different content already stored."""

    code = ErrorCode.CONFLICT


class InternalError(ShortlineError):
    """Backing-store failure."""

    code = ErrorCode.INTERNAL_ERROR


_ERRORS_BY_CODE: dict[ErrorCode, type[ShortlineError]] = {
    ErrorCode.BAD_REQUEST: BadRequestError,
    ErrorCode.FORBIDDEN: ForbiddenError,
    ErrorCode.CONFLICT: ConflictError,
    ErrorCode.INTERNAL_ERROR: InternalError,
}


def error_for(code: ErrorCode, text: str = "", detail: Any = None) -> ShortlineError:
    """Build the exception matching an error code."""
    if code == ErrorCode.NOT_FOUND:
        err: ShortlineError = NotFoundError(detail=detail)
        if text:
            err.text = text
        return err
    return _ERRORS_BY_CODE[code](text, detail)
