from __future__ import annotations

"""Request orchestration for GET /cotacao.

Stages (logged under the `stage` field):
    received -> fetching -> fetch_failed            (request fails)
                         -> fetch_succeeded -> responded
                                            -> persist_attempted (after the
                                               response value is fixed)

Budgets:
    - fetch deadline   = request_deadline.child(budgets.fetch)
    - persist deadline = request_deadline.child(budgets.persist)

Both are fixed budgets clipped by the request deadline, never fractions of
what is left. A fetch failure fails the request. A persistence failure is
logged and absorbed: `persist()` never raises.
"""
import enum
import logging
import time
from typing import Any, Callable, Optional

from quote_relay.core.deadlines import Deadline, StageBudgets
from quote_relay.core.errors import QuoteFetchError
from quote_relay.models import Quote
from .base import QuoteFetcher, QuoteSink

logger = logging.getLogger(__name__)

# Schedules `fn(*args)` to run later, e.g. BackgroundTasks.add_task
Defer = Callable[..., Any]


class RequestStage(str, enum.Enum):
    RECEIVED = "received"
    FETCHING = "fetching"
    FETCH_FAILED = "fetch_failed"
    FETCH_SUCCEEDED = "fetch_succeeded"
    PERSIST_ATTEMPTED = "persist_attempted"
    RESPONDED = "responded"


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 1)


class QuoteOrchestrator:
    def __init__(self, fetcher: QuoteFetcher, sink: QuoteSink, budgets: StageBudgets):
        self.fetcher = fetcher
        self.sink = sink
        self.budgets = budgets

    def new_request_deadline(self) -> Deadline:
        return Deadline.after(self.budgets.request)

    async def handle(
        self, request_deadline: Deadline, *, defer: Optional[Defer] = None
    ) -> Quote:
        """Fetch the quote for one request and arrange its persistence.

        With `defer`, persistence is handed off and runs after the caller has
        responded. Without it, persistence runs inline once the quote is fixed;
        either way its outcome cannot change the returned quote.
        """
        logger.debug("quote request received", extra={"stage": RequestStage.RECEIVED.value})
        quote = await self.fetch(request_deadline)
        if defer is not None:
            defer(self.persist, quote, request_deadline)
        else:
            await self.persist(quote, request_deadline)
        logger.debug("quote ready for response", extra={"stage": RequestStage.RESPONDED.value})
        return quote

    async def fetch(self, request_deadline: Deadline) -> Quote:
        deadline = request_deadline.child(self.budgets.fetch)
        started = time.monotonic()
        logger.debug("fetching quote", extra={"stage": RequestStage.FETCHING.value})
        try:
            quote = await self.fetcher.fetch(deadline)
        except QuoteFetchError as e:
            logger.warning(
                "quote fetch failed",
                extra={
                    "stage": RequestStage.FETCH_FAILED.value,
                    "elapsed_ms": _elapsed_ms(started),
                    "error": str(e),
                },
            )
            raise
        logger.info(
            "quote fetched",
            extra={
                "stage": RequestStage.FETCH_SUCCEEDED.value,
                "elapsed_ms": _elapsed_ms(started),
            },
        )
        return quote

    async def persist(self, quote: Quote, request_deadline: Deadline) -> bool:
        """Best-effort write of `quote`. Returns True when a row was written."""
        deadline = request_deadline.child(self.budgets.persist)
        stage = RequestStage.PERSIST_ATTEMPTED.value
        if deadline.expired:
            logger.warning(
                "quote not persisted: request deadline exhausted",
                extra={"stage": stage, "error": "deadline exhausted"},
            )
            return False
        started = time.monotonic()
        try:
            record_id = await self.sink.insert(quote, deadline)
        except Exception as e:  # any storage failure is just "persistence failed"
            logger.error(
                "quote persistence failed",
                exc_info=not isinstance(e, TimeoutError),
                extra={
                    "stage": stage,
                    "elapsed_ms": _elapsed_ms(started),
                    "error": repr(e),
                },
            )
            return False
        logger.info(
            "quote persisted",
            extra={"stage": stage, "elapsed_ms": _elapsed_ms(started), "record_id": record_id},
        )
        return True
