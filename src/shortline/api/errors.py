"""Error responses for the shortline HTTP surface.

Every failed operation is rendered as a list of messages:
    {"messages": [{"code", "messageType", "text", "timestamp"}]}
with the HTTP status derived from the operation's ErrorCode.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import TypeVar

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shortline.core.errors import ErrorCode
from shortline.core.result import Result

T = TypeVar("T")

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """One error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class MessageResult(BaseModel):
    """Error response body."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


class ShortlineApiError(HTTPException):
    """HTTP error carrying an operation error code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    @classmethod
    def from_code(cls, error: ErrorCode, text: str = "") -> "ShortlineApiError":
        status_code = STATUS_BY_CODE[error]
        return cls(
            status_code=status_code,
            code=error.value,
            text=text or error.value,
            message_type=MessageType.EXCEPTION if status_code >= 500 else MessageType.ERROR,
        )

    def to_result(self) -> MessageResult:
        return MessageResult(
            messages=[
                Message(
                    code=self.code,
                    messageType=self.message_type,
                    text=self.text,
                    timestamp=datetime.now(UTC).isoformat(),
                )
            ]
        )


def unwrap_or_raise(result: Result[T]) -> T:
    """Return the operation's value or raise the matching HTTP error."""
    if result.error is not None:
        raise ShortlineApiError.from_code(result.error, result.message)
    return result.value  # type: ignore[return-value]


async def shortline_api_exception_handler(request: Request, exc: ShortlineApiError) -> JSONResponse:
    """Exception handler for operation errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    return JSONResponse(
        status_code=500,
        content=ShortlineApiError.from_code(
            ErrorCode.INTERNAL_ERROR, "An unexpected error occurred"
        )
        .to_result()
        .model_dump(by_alias=True),
    )
