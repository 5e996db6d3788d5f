"""Scan loop debounce and cancellation tests."""

from __future__ import annotations

import asyncio

import pytest

from stockcheck.scanner import QueueBarcodeSource, ScanLoop


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class FlakySource(QueueBarcodeSource):
    """Source whose first detection raises, as a camera frame grab might."""

    def __init__(self, codes) -> None:
        super().__init__(codes, wait=0.01)
        self.failures = 1

    async def detect(self):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("frame grab failed")
        return await super().detect()


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def test_should_emit_suppresses_identical_code_inside_window() -> None:
    clock = FakeClock()
    loop = ScanLoop(QueueBarcodeSource(), lambda code: asyncio.sleep(0), debounce_seconds=0.9, clock=clock)

    assert loop.should_emit("A1")
    clock.now += 0.5
    assert not loop.should_emit("A1")
    clock.now += 0.5
    assert not loop.should_emit("A1")
    clock.now += 1.0
    assert loop.should_emit("A1")
    assert loop.should_emit("B2")
    assert loop.should_emit("A1")


def test_loop_delivers_debounced_codes_and_closes_source() -> None:
    async def scenario() -> None:
        received: list[str] = []

        async def on_code(code: str) -> None:
            received.append(code)

        source = QueueBarcodeSource(["A1", "A1", " B2 ", "", "A1"], wait=0.01)
        loop = ScanLoop(source, on_code, debounce_seconds=0.9, poll_interval=0.001)
        async with loop:
            assert source.opened
            await _wait_for(lambda: loop.processed == 4)

        assert received == ["A1", "B2", "A1"]
        assert source.closed
        assert not loop.running

    asyncio.run(scenario())


def test_no_callback_fires_after_stop() -> None:
    async def scenario() -> None:
        received: list[str] = []

        async def on_code(code: str) -> None:
            received.append(code)

        source = QueueBarcodeSource(wait=0.01)
        loop = ScanLoop(source, on_code, poll_interval=0.001)
        await loop.start()
        source.feed("A1")
        await _wait_for(lambda: received == ["A1"])
        await loop.stop()

        source.feed("B2")
        await asyncio.sleep(0.05)
        assert received == ["A1"]
        assert source.closed

        await loop.stop()

    asyncio.run(scenario())


def test_detector_errors_are_logged_and_polling_continues(caplog) -> None:
    async def scenario() -> None:
        received: list[str] = []

        async def on_code(code: str) -> None:
            received.append(code)

        loop = ScanLoop(FlakySource(["A1"]), on_code, poll_interval=0.001)
        async with loop:
            await _wait_for(lambda: received == ["A1"])

    asyncio.run(scenario())
    assert "Barcode detection failed" in caplog.text


def test_handler_error_is_raised_from_stop() -> None:
    async def scenario() -> None:
        async def on_code(code: str) -> None:
            raise RuntimeError(f"cannot store {code}")

        source = QueueBarcodeSource(["A1"], wait=0.01)
        loop = ScanLoop(source, on_code, poll_interval=0.001)
        await loop.start()
        await _wait_for(lambda: not loop.running)
        with pytest.raises(RuntimeError, match="cannot store A1"):
            await loop.stop()
        assert source.closed

    asyncio.run(scenario())


def test_start_twice_is_rejected() -> None:
    async def scenario() -> None:
        loop = ScanLoop(QueueBarcodeSource(wait=0.01), lambda code: asyncio.sleep(0), poll_interval=0.001)
        await loop.start()
        with pytest.raises(RuntimeError, match="already running"):
            await loop.start()
        await loop.stop()

    asyncio.run(scenario())
