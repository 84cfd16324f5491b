"""Deadline primitives for the request pipeline.

A request carries one `Deadline`; every stage below it derives a child with
`Deadline.child(budget)`. The child expires at the earlier of the parent's
expiry and `now + budget`, so a stage can tighten its window but never extend
it past the caller's.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class StageBudgets:
    """Per-stage time budgets in seconds."""

    request: float
    fetch: float
    persist: float

    def __post_init__(self) -> None:
        if not 0 < self.persist < self.fetch < self.request:
            raise ValueError(
                "stage budgets must satisfy 0 < persist < fetch < request "
                f"(got persist={self.persist}, fetch={self.fetch}, request={self.request})"
            )

    @classmethod
    def from_millis(cls, request: int, fetch: int, persist: int) -> "StageBudgets":
        return cls(request=request / 1000, fetch=fetch / 1000, persist=persist / 1000)


class Deadline:
    __slots__ = ("expires_at",)

    def __init__(self, expires_at: float):
        self.expires_at = expires_at

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def child(self, budget: float) -> "Deadline":
        return Deadline(min(self.expires_at, time.monotonic() + budget))

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def scope(self) -> asyncio.Timeout:
        """Async context manager that cancels its body when the deadline passes.

        Raises `TimeoutError` on exit if the body was cut short.
        """
        return asyncio.timeout(self.remaining())

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining() * 1000:.1f}ms)"
