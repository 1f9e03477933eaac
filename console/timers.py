"""Cancellable timers on top of the asyncio event loop."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class Debouncer:
    """
    One armed callback at a time.

    ``arm()`` cancels whatever is pending and restarts the delay, so the
    callback only fires after ``delay_s`` of quiet. A callback that has already
    started firing is not cancelled by a later ``arm()``.
    """

    def __init__(self, delay_s: float, callback: Callback) -> None:
        self.delay_s = delay_s
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self._firing: asyncio.Task[None] | None = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._fire_later())

    def cancel(self) -> bool:
        """Drop the pending callback. Returns True if one was pending."""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def wait(self) -> None:
        """Wait for a callback that has already started firing."""
        task = self._firing
        if task is not None and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay_s)
        # Detach before firing: from here on arm()/cancel() no longer touch us
        if self._task is asyncio.current_task():
            self._firing, self._task = self._task, None
        try:
            await self._callback()
        finally:
            if self._firing is asyncio.current_task():
                self._firing = None


class IntervalPoller:
    """
    Idle/Polling state machine driving ``tick`` at a fixed interval.

    Ticks start every ``interval_s`` and never overlap: a tick that outlasts
    the interval pushes the next one back. Exceptions from a tick are logged
    and polling continues.
    """

    def __init__(
        self,
        interval_s: float,
        tick: Callback,
        immediate: bool = False,
        name: str = "poller",
    ) -> None:
        self.interval_s = interval_s
        self.immediate = immediate
        self.name = name
        self._tick = tick
        self._task: asyncio.Task[None] | None = None

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.polling:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.debug("%s started (interval %.2fs)", self.name, self.interval_s)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("%s stopped", self.name)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        if self.immediate:
            await self._safe_tick()
        while True:
            # Fixed cadence: time spent inside a tick is taken off the next sleep
            next_at += self.interval_s
            now = loop.time()
            if next_at < now:
                next_at = now
            await asyncio.sleep(next_at - now)
            await self._safe_tick()

    async def _safe_tick(self) -> None:
        try:
            await self._tick()
        except Exception:
            logger.exception("%s tick failed", self.name)
