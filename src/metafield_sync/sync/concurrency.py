"""Bounded parallel execution of independent coroutine tasks."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class TaskResult(Generic[T]):
    """Outcome of one task: either a value or the exception it raised."""

    index: int
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[TaskResult[T]]:
    """
    Run task factories with at most ``limit`` in flight at once.

    ``min(limit, len(tasks))`` workers pull tasks in submission order; a worker
    starts the next pending task as soon as its current one finishes. A task
    that raises does not affect its siblings: the exception is captured in its
    TaskResult. Results are returned in submission order regardless of
    completion order.

    Args:
        tasks: Zero-argument callables returning awaitables
        limit: Maximum number of concurrently running tasks

    Returns:
        One TaskResult per task, ``results[i]`` belonging to ``tasks[i]``

    Raises:
        ValueError: If limit is less than 1
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    results: list[TaskResult[T] | None] = [None] * len(tasks)
    pending = iter(enumerate(tasks))

    async def worker() -> None:
        # The shared iterator hands out each task exactly once
        for index, task in pending:
            try:
                value = await task()
            except Exception as e:
                results[index] = TaskResult(index=index, error=e)
            else:
                results[index] = TaskResult(index=index, value=value)

    await asyncio.gather(*(worker() for _ in range(min(limit, len(tasks)))))
    return [result for result in results if result is not None]
