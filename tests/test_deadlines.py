import asyncio
import time

import pytest

from quote_relay.core.deadlines import Deadline, StageBudgets


def test_child_is_tighter_budget_when_parent_has_room():
    parent = Deadline.after(1.0)
    child = parent.child(0.2)
    assert child.expires_at < parent.expires_at
    assert child.remaining() <= 0.2


def test_child_never_outlives_parent():
    parent = Deadline.after(0.05)
    child = parent.child(0.2)
    assert child.expires_at == parent.expires_at


def test_expired_deadline_has_no_remaining_time():
    d = Deadline(time.monotonic() - 1)
    assert d.expired
    assert d.remaining() == 0.0
    assert d.child(10).expired


def test_scope_cancels_body_at_deadline():
    async def run():
        started = time.monotonic()
        with pytest.raises(TimeoutError):
            async with Deadline.after(0.05).scope():
                await asyncio.sleep(1)
        return time.monotonic() - started

    assert asyncio.run(run()) < 0.5


def test_scope_lets_fast_body_finish():
    async def run():
        async with Deadline.after(0.5).scope():
            await asyncio.sleep(0)
            return "done"

    assert asyncio.run(run()) == "done"


def test_stage_budgets_from_millis():
    b = StageBudgets.from_millis(300, 200, 10)
    assert (b.request, b.fetch, b.persist) == (0.3, 0.2, 0.01)


@pytest.mark.parametrize(
    "request_ms, fetch_ms, persist_ms",
    [(300, 300, 10), (300, 200, 200), (200, 300, 10), (300, 200, 0)],
)
def test_stage_budgets_must_descend(request_ms, fetch_ms, persist_ms):
    with pytest.raises(ValueError):
        StageBudgets.from_millis(request_ms, fetch_ms, persist_ms)
