"""Debounced polling loop over an asynchronous barcode detection source."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

logger = logging.getLogger(__name__)

CodeHandler = Callable[[str], Awaitable[object]]


class BarcodeSource(Protocol):
    """Capture capability yielding decoded strings, or None when nothing was seen."""

    async def open(self) -> None: ...

    async def detect(self) -> str | None: ...

    async def close(self) -> None: ...


class QueueBarcodeSource:
    """Source fed through an asyncio queue; used for replaying captured codes."""

    def __init__(self, codes: Iterable[str] = (), *, wait: float = 0.05) -> None:
        self.queue: asyncio.Queue[str] = asyncio.Queue()
        self.wait = wait
        self.opened = False
        self.closed = False
        for code in codes:
            self.queue.put_nowait(code)

    async def open(self) -> None:
        self.opened = True

    async def detect(self) -> str | None:
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=self.wait)
        except asyncio.TimeoutError:
            return None

    async def close(self) -> None:
        self.closed = True

    def feed(self, code: str) -> None:
        self.queue.put_nowait(code)

    @property
    def drained(self) -> bool:
        return self.queue.empty()


class ScanLoop:
    """Poll a barcode source and hand debounced codes to `on_code`.

    A detection equal to the previous one within `debounce_seconds` of when
    that code was last seen is dropped. Once `stop()` has been requested no
    further code reaches `on_code`, and the source is closed exactly once. A
    code already being handled when `stop()` is called runs to completion.
    """

    def __init__(
        self,
        source: BarcodeSource,
        on_code: CodeHandler,
        *,
        debounce_seconds: float = 0.9,
        poll_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.on_code = on_code
        self.debounce_seconds = debounce_seconds
        self.poll_interval = poll_interval
        self.clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stop_requested = False
        self._closed = False
        self._handling = False
        self._last_code: str | None = None
        self._last_seen = 0.0
        self.processed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def should_emit(self, code: str) -> bool:
        """Apply the debounce window to a detection and remember it."""

        now = self.clock()
        suppressed = code == self._last_code and (now - self._last_seen) < self.debounce_seconds
        self._last_code = code
        self._last_seen = now
        return not suppressed

    async def start(self) -> None:
        if self.running:
            raise RuntimeError("Scan loop already running")
        self._stop_requested = False
        self._closed = False
        await self.source.open()
        self._task = asyncio.create_task(self._run())
        logger.info("Scan session started")

    async def _run(self) -> None:
        while not self._stop_requested:
            try:
                raw = await self.source.detect()
            except Exception:
                logger.exception("Barcode detection failed; continuing")
                raw = None

            code = (raw or "").strip()
            if code and not self._stop_requested:
                if self.should_emit(code):
                    self._handling = True
                    try:
                        await self.on_code(code)
                    finally:
                        self._handling = False
                else:
                    logger.debug("Debounced repeat detection of %s", code)
                self.processed += 1

            await asyncio.sleep(self.poll_interval)

    async def stop(self) -> None:
        """Halt polling and release the source.

        An exception raised by `on_code` ends the polling task and is re-raised
        here after the source has been closed.
        """

        self._stop_requested = True
        task, self._task = self._task, None
        error: BaseException | None = None
        if task is not None:
            if not task.done() and not self._handling:
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                error = exc
        if not self._closed:
            self._closed = True
            await self.source.close()
            logger.info("Scan session stopped")
        if error is not None:
            raise error

    async def __aenter__(self) -> ScanLoop:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
