"""Result values returned across the engine's public boundary."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from consultation.core.errors import ErrorCode, SchedulingError

T = TypeVar('T')


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    value: T | None = None
    error: SchedulingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def code(self) -> ErrorCode | None:
        return self.error.code if self.error is not None else None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: T | None = None) -> 'OperationResult[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: SchedulingError) -> 'OperationResult[T]':
        return cls(error=error)
