"""Uniform result type for data sources that may degrade to fallback data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

OK = "ok"
DEGRADED = "degraded"
FAILED = "failed"


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of fetching from an upstream source.

    ``ok`` carries live data, ``degraded`` carries fallback data plus the
    reason live data was unavailable, ``failed`` carries only the reason.
    """

    status: str
    value: T | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> FetchResult[T]:
        return cls(status=OK, value=value)

    @classmethod
    def degraded(cls, fallback: T, reason: str) -> FetchResult[T]:
        return cls(status=DEGRADED, value=fallback, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> FetchResult[T]:
        return cls(status=FAILED, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.status == OK

    @property
    def is_degraded(self) -> bool:
        return self.status == DEGRADED

    @property
    def is_failed(self) -> bool:
        return self.status == FAILED

    def value_or(self, default: T) -> T:
        """Return the carried value, or ``default`` for a failed result."""
        if self.status == FAILED or self.value is None:
            return default
        return self.value
