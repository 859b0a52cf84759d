"""Tests for the paced FIFO request queue."""

from __future__ import annotations

import asyncio

import pytest

from gitblog.github.request_queue import PacedRequestQueue


class FakeTimer:
    """Clock and sleep pair where sleeping advances the clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def queue(timer: FakeTimer) -> PacedRequestQueue:
    return PacedRequestQueue(0.2, clock=timer.clock, sleep=timer.sleep)


class TestPacedRequestQueue:
    async def test_first_call_not_delayed(
        self, queue: PacedRequestQueue, timer: FakeTimer
    ) -> None:
        async def call() -> str:
            return "ok"

        assert await queue.submit(call) == "ok"
        assert timer.sleeps == []

    async def test_calls_run_in_submission_order(
        self, queue: PacedRequestQueue, timer: FakeTimer
    ) -> None:
        order: list[int] = []

        def make_call(index: int):
            async def call() -> int:
                order.append(index)
                await asyncio.sleep(0)
                return index

            return call

        results = await asyncio.gather(*(queue.submit(make_call(i)) for i in range(5)))

        assert results == [0, 1, 2, 3, 4]
        assert order == [0, 1, 2, 3, 4]

    async def test_spacing_measured_from_previous_dispatch(
        self, queue: PacedRequestQueue, timer: FakeTimer
    ) -> None:
        dispatched: list[float] = []

        async def call() -> None:
            dispatched.append(timer.now)

        await asyncio.gather(*(queue.submit(call) for _ in range(3)))

        assert dispatched == pytest.approx([0.0, 0.2, 0.4])
        assert timer.sleeps == pytest.approx([0.2, 0.2])

    async def test_no_wait_when_interval_already_elapsed(
        self, queue: PacedRequestQueue, timer: FakeTimer
    ) -> None:
        async def call() -> None:
            return None

        await queue.submit(call)
        timer.now += 5
        await queue.submit(call)
        assert timer.sleeps == []

    async def test_failure_does_not_block_later_calls(
        self, queue: PacedRequestQueue, timer: FakeTimer
    ) -> None:
        async def failing() -> None:
            raise RuntimeError("boom")

        async def succeeding() -> str:
            return "after"

        results = await asyncio.gather(
            queue.submit(failing), queue.submit(succeeding), return_exceptions=True
        )

        assert isinstance(results[0], RuntimeError)
        assert results[1] == "after"
