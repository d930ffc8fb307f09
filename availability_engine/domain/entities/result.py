from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from availability_engine.application.exceptions import DataFetchError, SnapshotWriteError

T = TypeVar("T")


class ErrorKind(str, Enum):
    data_fetch_error = "DATA_FETCH_ERROR"
    timeout = "TIMEOUT"
    snapshot_write_error = "SNAPSHOT_WRITE_ERROR"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a store call: either a value or an error kind, never both."""

    value: T | None = None
    error: ErrorKind | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, detail: str | None = None) -> "Result[T]":
        return cls(error=error, detail=detail)

    def unwrap(self) -> T:
        """Return the value, or raise the exception matching the error kind."""
        if self.error is None:
            return self.value
        message = self.detail or self.error.value
        if self.error is ErrorKind.snapshot_write_error:
            raise SnapshotWriteError(message)
        raise DataFetchError(message)
