"""Tagged outcomes for metric source calls.

A SourceResult is either ok (payload present) or failed (reason present),
never both, so "absent because the fetch failed" stays distinguishable from
"present but zero" all the way to the response document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from src.domain.models import SourceStatus

T = TypeVar("T")


@dataclass(frozen=True)
class SourceResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    def __post_init__(self):
        if (self.value is None) == (self.error is None):
            raise ValueError("SourceResult needs exactly one of value or error")

    @classmethod
    def ok(cls, value: T) -> "SourceResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, reason: str) -> "SourceResult[T]":
        return cls(error=reason or "unknown error")

    @property
    def is_ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ResourceResult(Generic[T]):
    """Outcome for one named resource (a function, a table, an API)."""

    name: str
    result: SourceResult[T]


@dataclass(frozen=True)
class CategoryResults(Generic[T]):
    """Per-resource outcomes of one category, in resource-declaration order."""

    resources: List[ResourceResult[T]] = field(default_factory=list)

    @property
    def succeeded(self) -> List[T]:
        return [r.result.value for r in self.resources if r.result.is_ok]  # type: ignore[misc]

    @property
    def status(self) -> SourceStatus:
        if not self.resources:
            return SourceStatus.SKIPPED
        if any(r.result.is_ok for r in self.resources):
            return SourceStatus.OK
        return SourceStatus.FAILED
