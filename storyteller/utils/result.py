"""
Result type / 結果型

Fallible service operations return a :class:`Result` instead of raising, so
batch callers (``meta check``) can aggregate failures without try/except.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from storyteller.exceptions import ErrorCode, StorytellerError

T = TypeVar("T")


@dataclass(frozen=True)
class MetaError:
    """Error payload carried by a failed :class:`Result`."""

    code: ErrorCode
    message: str
    path: Optional[str] = None

    @staticmethod
    def from_exception(exc: StorytellerError, path: Optional[str] = None) -> MetaError:
        return MetaError(code=exc.code, message=exc.message, path=path)

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} ({self.path})"
        return self.message


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """

    value: Optional[T] = None
    error: Optional[MetaError] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: Any = None) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: MetaError) -> Result:
        return Result(value=None, error=error)

    @staticmethod
    def fail(code: ErrorCode, message: str, path: Optional[str] = None) -> Result:
        return Result(value=None, error=MetaError(code=code, message=message, path=path))

    def unwrap(self) -> T:
        """Return the value, raising :class:`StorytellerError` on failure."""
        if self.error is not None:
            raise StorytellerError(self.error.message, self.error.code)
        return self.value  # type: ignore[return-value]
