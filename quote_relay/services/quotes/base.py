from __future__ import annotations

"""Quote pipeline seams.

The orchestrator depends only on these two shapes, so tests can swap in a
fetcher or sink without touching the network or the database.
"""
from abc import ABC, abstractmethod
from typing import Protocol

from quote_relay.core.deadlines import Deadline
from quote_relay.models import Quote


class QuoteFetcher(ABC):
    pair: str = "USDBRL"

    @abstractmethod
    async def fetch(self, deadline: Deadline) -> Quote:
        """Return the current quote or raise QuoteFetchError. Must not outlive `deadline`."""
        raise NotImplementedError


class QuoteSink(Protocol):
    async def insert(self, quote: Quote, deadline: Deadline) -> int: ...
