"""Success/failure results returned by the pipeline's public operations.

Operations that touch the filesystem return a Result instead of raising, so a
batch can record one item's failure and keep going. Callers that would rather
have an exception can call unwrap().
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    PARSE_ERROR = "parse_error"
    IO_ERROR = "io_error"
    INVALID_INPUT = "invalid_input"
    API_ERROR = "api_error"


class SpecmineError(Exception):
    """Raised by Result.unwrap() on a failed result."""

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class Result(Generic[T]):
    value: T | None = None
    error: str = ""  # Human-readable message, empty on success
    code: ErrorCode | None = None

    @property
    def ok(self) -> bool:
        return self.code is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str, code: ErrorCode = ErrorCode.IO_ERROR) -> Result[T]:
        return cls(error=error, code=code or ErrorCode.IO_ERROR)

    def unwrap(self) -> T:
        if not self.ok:
            raise SpecmineError(self.error, self.code)
        return self.value  # type: ignore[return-value]
