"""Property-based tests for bounded parallel task execution.

**Property: Concurrency bound** - with limit k, at most k tasks are in flight
**Property: Index-preserving results** - results[i] belongs to tasks[i] whatever the
completion order
"""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from metafield_sync.sync.concurrency import run_bounded


class Probe:
    def __init__(self) -> None:
        self.in_flight = 0
        self.max_in_flight = 0
        self.started: list[int] = []

    def task(self, index: int, delay: float, fail: bool = False):
        async def run() -> int:
            self.started.append(index)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(delay)
            finally:
                self.in_flight -= 1
            if fail:
                raise ValueError(f"task {index} failed")
            return index * 10

        return run


@given(
    delays=st.lists(st.floats(min_value=0.0, max_value=0.003), max_size=25),
    limit=st.integers(min_value=1, max_value=8),
)
@settings(max_examples=50, deadline=None)
def test_bound_and_order_hold_for_random_latencies(delays: list[float], limit: int) -> None:
    probe = Probe()
    tasks = [probe.task(i, delay) for i, delay in enumerate(delays)]

    results = asyncio.run(run_bounded(tasks, limit))

    assert len(results) == len(delays)
    assert [r.index for r in results] == list(range(len(delays)))
    assert [r.value for r in results] == [i * 10 for i in range(len(delays))]
    assert all(r.ok for r in results)
    assert probe.max_in_flight <= limit
    if delays:
        assert probe.max_in_flight >= 1
    # Admission follows submission order
    assert probe.started == list(range(len(delays)))


def test_pool_is_saturated_when_tasks_are_slow() -> None:
    probe = Probe()
    tasks = [probe.task(i, 0.01) for i in range(12)]

    asyncio.run(run_bounded(tasks, 5))

    assert probe.max_in_flight == 5


def test_completion_order_does_not_change_result_order() -> None:
    probe = Probe()
    # Earlier tasks finish last
    tasks = [probe.task(i, 0.02 - i * 0.004) for i in range(5)]

    results = asyncio.run(run_bounded(tasks, 5))

    assert [r.value for r in results] == [0, 10, 20, 30, 40]


def test_failures_are_captured_without_cancelling_siblings() -> None:
    probe = Probe()
    tasks = [probe.task(i, 0.001, fail=(i % 3 == 0)) for i in range(7)]

    results = asyncio.run(run_bounded(tasks, 2))

    assert len(results) == 7
    for i, result in enumerate(results):
        if i % 3 == 0:
            assert not result.ok
            assert isinstance(result.error, ValueError)
            assert str(result.error) == f"task {i} failed"
        else:
            assert result.ok
            assert result.value == i * 10


def test_no_tasks_returns_empty_list() -> None:
    assert asyncio.run(run_bounded([], 5)) == []


def test_limit_must_be_positive() -> None:
    with pytest.raises(ValueError):
        asyncio.run(run_bounded([], 0))
