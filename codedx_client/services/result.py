"""
ApiResult: success value or ApiError, carried as data.

Every ApiClient operation returns one of these instead of raising, so a failed step
short-circuits the rest of a chain and the earliest error is the one reported.
"""
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from codedx_client.services.exceptions import ApiError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    _value: Optional[T] = None
    _error: Optional[ApiError] = None

    @classmethod
    def ok(cls, value: T) -> "ApiResult[T]":
        return cls(_value=value)

    @classmethod
    def err(cls, error: ApiError) -> "ApiResult[T]":
        return cls(_error=error)

    @property
    def is_ok(self) -> bool:
        return self._error is None

    @property
    def is_err(self) -> bool:
        return self._error is not None

    @property
    def value(self) -> T:
        """The success value. Raises ValueError on an error result."""
        if self._error is not None:
            raise ValueError("ApiResult holds an error, not a value")
        return self._value

    @property
    def error(self) -> Optional[ApiError]:
        return self._error

    def map(self, fn: Callable[[T], U]) -> "ApiResult[U]":
        if self._error is not None:
            return ApiResult.err(self._error)
        return ApiResult.ok(fn(self._value))

    def and_then(self, fn: Callable[[T], "ApiResult[U]"]) -> "ApiResult[U]":
        if self._error is not None:
            return ApiResult.err(self._error)
        return fn(self._value)

    def unwrap(self) -> T:
        """Return the value, or raise the carried ApiError."""
        if self._error is not None:
            raise self._error
        return self._value

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Err({self._error!r})"
        return f"Ok({self._value!r})"
