"""Tagged results and the operation boundary.

Operations exposed upward never raise: they return a Result carrying either
a value or an ErrorCode. Inside an operation, failures are raised as
ShortlineError subclasses; `Result.unwrap()` re-raises a callee's failure
so that composed operations propagate the error code verbatim.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, ParamSpec, TypeVar

from shortline.core.errors import ErrorCode, ShortlineError, error_for

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a success value or an error code (with optional detail)."""

    value: T | None = None
    error: ErrorCode | None = None
    detail: Any = None
    message: str = ""

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: ErrorCode, detail: Any = None, message: str = "") -> "Result[T]":
        return cls(error=error, detail=detail, message=message)

    def unwrap(self) -> T:
        """Return the value or raise the exception matching the error code."""
        if self.error is not None:
            raise error_for(self.error, self.message, self.detail)
        return self.value  # type: ignore[return-value]


def operation(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[Result[T]]]:
    """Wrap a coroutine so that it returns a Result instead of raising.

    ShortlineError maps to its own code. Anything else (relational store,
    blob storage, timeouts) is logged and reported as InternalError.
    """
    name = func.__qualname__

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            value = await func(*args, **kwargs)
        except ShortlineError as exc:
            logger.info(f"{name} -> {exc.code.value}: {exc.text}")
            return Result.fail(exc.code, exc.detail, exc.text)
        except Exception:
            logger.exception(f"{name} failed on a backing store")
            return Result.fail(ErrorCode.INTERNAL_ERROR)
        return Result.ok(value)

    return wrapper
