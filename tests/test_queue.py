"""Tests for the concurrency-limited task queue."""

import asyncio

import pytest

from wikicrawl.core import ConcurrencyQueue, process_concurrently, process_concurrently_settled
from wikicrawl.errors import TaskTimeoutError


class TestConcurrencyLimit:
    async def test_respects_max_concurrent(self):
        """No more than max_concurrent tasks run at once; results keep order."""
        queue = ConcurrencyQueue(max_concurrent=2, timeout=1.0)
        running = 0
        peak = 0

        def make(i):
            async def task():
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.02)
                running -= 1
                return f"task-{i}"
            return task

        results = await queue.add_all([make(i) for i in range(5)])

        assert results == [f"task-{i}" for i in range(5)]
        assert peak <= 2

    async def test_stats(self):
        """Stats show in-flight and queued tasks."""
        queue = ConcurrencyQueue(max_concurrent=2, timeout=1.0)

        async def slow():
            await asyncio.sleep(0.05)

        pending = [asyncio.ensure_future(queue.add(slow)) for _ in range(3)]
        await asyncio.sleep(0)

        stats = queue.get_stats()
        assert stats == {"queue_length": 1, "running": 2, "max_concurrent": 2}

        await asyncio.gather(*pending)
        assert queue.get_stats()["running"] == 0

    def test_invalid_limit(self):
        """A queue needs at least one slot."""
        with pytest.raises(ValueError):
            ConcurrencyQueue(max_concurrent=0)


class TestFailures:
    async def test_add_all_fails_fast(self):
        """add_all raises the first error."""
        queue = ConcurrencyQueue()

        async def boom():
            raise ValueError("boom")

        async def ok():
            return 1

        with pytest.raises(ValueError):
            await queue.add_all([ok, boom, ok])

    async def test_add_all_settled_keeps_every_outcome(self):
        """One failure does not hide the other results."""
        queue = ConcurrencyQueue(max_concurrent=2)

        async def ok1():
            return "success1"

        async def boom():
            raise ValueError("failure")

        async def ok2():
            return "success2"

        outcomes = await queue.add_all_settled([ok1, boom, ok2])

        assert [o.fulfilled for o in outcomes] == [True, False, True]
        assert outcomes[0].value == "success1"
        assert isinstance(outcomes[1].error, ValueError)
        assert outcomes[2].value == "success2"

    async def test_add_all_settled_empty(self):
        """An empty batch settles to an empty list."""
        assert await ConcurrencyQueue().add_all_settled([]) == []


class TestTimeout:
    async def test_slow_task_times_out(self):
        """A task past its deadline fails with TaskTimeoutError."""
        queue = ConcurrencyQueue(timeout=0.05)

        async def slow():
            await asyncio.sleep(1.0)

        with pytest.raises(TaskTimeoutError):
            await queue.add(slow)

    async def test_timed_out_task_is_not_cancelled(self):
        """The abandoned task keeps running; only its result is discarded."""
        queue = ConcurrencyQueue(timeout=0.05)
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.1)
            finished.set()
            return "late"

        with pytest.raises(TaskTimeoutError):
            await queue.add(slow)
        await asyncio.wait_for(finished.wait(), timeout=1.0)

    async def test_timeout_frees_the_slot(self):
        """The next queued task starts once a task times out."""
        queue = ConcurrencyQueue(max_concurrent=1, timeout=0.05)

        async def hang():
            await asyncio.sleep(0.5)

        async def quick():
            return "done"

        outcomes = await queue.add_all_settled([hang, quick])

        assert isinstance(outcomes[0].error, TaskTimeoutError)
        assert outcomes[1].value == "done"


class TestHelpers:
    async def test_process_concurrently(self):
        """Items map to results in input order, with their index."""
        async def processor(item, index):
            await asyncio.sleep(0.01 * (3 - index))
            return f"{item}-{index}"

        results = await process_concurrently(["a", "b", "c"], processor, max_concurrent=3)
        assert results == ["a-0", "b-1", "c-2"]

    async def test_process_concurrently_settled(self):
        """Failures are reported with their input index."""
        async def processor(item, index):
            if item == 2:
                raise ValueError(f"Error for {item}")
            return item * 2

        results, errors = await process_concurrently_settled([1, 2, 3, 4], processor)

        assert results == [2, 6, 8]
        assert len(errors) == 1
        assert errors[0][0] == 1
        assert str(errors[0][1]) == "Error for 2"
