"""
Typed stage results.

A stage that has a defined fallback returns ``StageResult`` instead of raising:
``degraded`` is the machine-readable marker that the value came from the
fallback path, and ``reason`` says which one.
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StageResult(Generic[T]):
    value: T
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> "StageResult[T]":
        return cls(value=value, degraded=True, reason=reason)
