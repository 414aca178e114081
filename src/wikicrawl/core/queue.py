"""Bounded-parallelism task queue with per-task timeouts."""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from ..errors import TaskTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Task = Callable[[], Awaitable[T]]


@dataclass
class TaskOutcome(Generic[T]):
    """Settled result of one task: either a value or an error."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def fulfilled(self) -> bool:
        return self.error is None


def _consume_result(task: asyncio.Future) -> None:
    # Abandoned after a timeout; read the outcome so asyncio does not warn.
    if not task.cancelled():
        task.exception()


class ConcurrencyQueue:
    """Runs no-argument async callables with at most ``max_concurrent`` in flight.

    Each task races a ``timeout``. A task that loses the race is abandoned,
    not cancelled: it keeps running but its result is discarded, and its
    slot goes to the next queued task.
    """

    def __init__(self, max_concurrent: int = 5, timeout: float = 30.0):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self._pending: deque[tuple[Task, asyncio.Future]] = deque()
        self._running = 0
        self._runners: set[asyncio.Task] = set()

    async def add(self, task: Task[T]) -> T:
        """Queue ``task`` and wait for its result."""
        future = asyncio.get_running_loop().create_future()
        self._pending.append((task, future))
        self._process_queue()
        return await future

    async def add_all(self, tasks: Iterable[Task[T]]) -> list[T]:
        """Run every task; raise the first failure."""
        return list(await asyncio.gather(*(self.add(task) for task in tasks)))

    async def add_all_settled(self, tasks: Iterable[Task[T]]) -> list[TaskOutcome[T]]:
        """Run every task and collect each outcome. Never raises for a task failure."""
        results = await asyncio.gather(*(self.add(task) for task in tasks), return_exceptions=True)
        outcomes: list[TaskOutcome[T]] = []
        for result in results:
            if isinstance(result, BaseException):
                outcomes.append(TaskOutcome(error=result))
            else:
                outcomes.append(TaskOutcome(value=result))
        return outcomes

    def get_stats(self) -> dict[str, int]:
        return {
            "queue_length": len(self._pending),
            "running": self._running,
            "max_concurrent": self.max_concurrent,
        }

    def _process_queue(self) -> None:
        while self._running < self.max_concurrent and self._pending:
            task, future = self._pending.popleft()
            if future.done():
                continue
            self._running += 1
            runner = asyncio.create_task(self._run(task, future))
            self._runners.add(runner)
            runner.add_done_callback(self._runners.discard)

    async def _run(self, task: Task, future: asyncio.Future) -> None:
        try:
            result = await self._execute_with_timeout(task)
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self._running -= 1
            self._process_queue()

    async def _execute_with_timeout(self, task: Task[T]) -> T:
        inner = asyncio.ensure_future(task())
        done, _ = await asyncio.wait({inner}, timeout=self.timeout)
        if inner in done:
            return inner.result()
        inner.add_done_callback(_consume_result)
        logger.warning("task_timeout", timeout=self.timeout)
        raise TaskTimeoutError(self.timeout)


async def process_concurrently(
    items: Sequence[Any],
    processor: Callable[[Any, int], Awaitable[R]],
    max_concurrent: int = 5,
    timeout: float = 30.0,
) -> list[R]:
    """Apply ``processor(item, index)`` to every item; results keep input order."""
    queue = ConcurrencyQueue(max_concurrent=max_concurrent, timeout=timeout)
    return await queue.add_all(
        [lambda item=item, index=index: processor(item, index) for index, item in enumerate(items)]
    )


async def process_concurrently_settled(
    items: Sequence[Any],
    processor: Callable[[Any, int], Awaitable[R]],
    max_concurrent: int = 5,
    timeout: float = 30.0,
) -> tuple[list[R], list[tuple[int, BaseException]]]:
    """Like process_concurrently, but split successes from ``(index, error)`` failures."""
    queue = ConcurrencyQueue(max_concurrent=max_concurrent, timeout=timeout)
    outcomes = await queue.add_all_settled(
        [lambda item=item, index=index: processor(item, index) for index, item in enumerate(items)]
    )

    results: list[R] = []
    errors: list[tuple[int, BaseException]] = []
    for index, outcome in enumerate(outcomes):
        if outcome.fulfilled:
            results.append(outcome.value)
        else:
            errors.append((index, outcome.error))
    return results, errors
