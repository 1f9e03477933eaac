"""
Remote script: edit -> debounced save -> run -> poll -> stop.

ScriptEditor owns the local document and pushes it one way to the device.
ScriptRunner owns RunState; the device is the source of truth for it and
local changes are provisional until the next poll.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from console.api import DeviceApi
from console.bus import SCRIPT_DOCUMENT, SCRIPT_RUN, EventBus
from console.config import config
from console.messages import RunState, ScriptDocument
from console.timers import Debouncer, IntervalPoller

logger = logging.getLogger(__name__)


class ScriptEditor:
    def __init__(
        self,
        api: DeviceApi,
        bus: EventBus,
        debounce_s: float = config.script.debounce_s,
        placeholder: str = config.script.placeholder,
    ) -> None:
        self._api = api
        self._bus = bus
        self.text = placeholder
        self.last_saved_text: str | None = None
        self._edited = False
        self._save_lock = asyncio.Lock()
        self._debouncer = Debouncer(debounce_s, self._persist)

    @property
    def dirty(self) -> bool:
        """Dirty-Pending: an autosave is counting down."""
        return self._debouncer.armed

    @property
    def in_sync(self) -> bool:
        return self.last_saved_text is not None and self.last_saved_text == self.text

    def snapshot(self) -> ScriptDocument:
        return ScriptDocument(text=self.text, dirty=self.dirty, in_sync=self.in_sync)

    async def load(self) -> bool:
        """Pull the device copy once. Keeps the local text on any failure."""
        result = await self._api.get_script()
        if not result.ok or result.data is None or not result.data.success:
            logger.debug("Script load failed, keeping placeholder: %s", result.error)
            return False
        if self._edited:
            # Operator already typed something; local text wins
            logger.info("Script loaded after local edits, ignoring device copy")
            return False

        self.text = result.data.script or ""
        self.last_saved_text = self.text
        await self._bus.publish(SCRIPT_DOCUMENT, self.snapshot())
        return True

    def edit(self, text: str) -> None:
        self.text = text
        self._edited = True
        self._debouncer.arm()

    async def save(self) -> bool:
        """Explicit save: drop the pending autosave and persist right now."""
        self._debouncer.cancel()
        return await self._persist()

    async def close(self) -> None:
        # Unsaved keystrokes are flushed rather than dropped with the timer
        if self._debouncer.cancel():
            await self._persist()
        # An autosave already on the wire must land before teardown goes on
        await self._debouncer.wait()

    async def _persist(self) -> bool:
        async with self._save_lock:
            # Snapshot at send time, never at arm time
            text = self.text
            result = await self._api.save_script(text)
            if result.ok:
                self.last_saved_text = text
            else:
                logger.warning("Script save failed (%d chars): %s", len(text), result.error)
        await self._bus.publish(SCRIPT_DOCUMENT, self.snapshot())
        return result.ok


@dataclass(frozen=True)
class RunRequested:
    pass


@dataclass(frozen=True)
class StopRequested:
    pass


@dataclass(frozen=True)
class StatusPolled:
    running: bool
    output: str
    error: str | None = None


RunEvent = RunRequested | StopRequested | StatusPolled


def reduce_run_state(state: RunState, event: RunEvent) -> RunState:
    """
    Poll results are authoritative and replace the state wholesale.
    Run is an optimistic hint; stop waits for the device to confirm.
    """
    if isinstance(event, StatusPolled):
        return RunState(running=event.running, output=event.output, error=event.error)
    if isinstance(event, RunRequested):
        return RunState(running=True, output="", error=None)
    return state


class ScriptRunner:
    def __init__(
        self,
        api: DeviceApi,
        bus: EventBus,
        script_text: Callable[[], str],
        interval_s: float = config.polling.interval_s,
    ) -> None:
        self._api = api
        self._bus = bus
        self._script_text = script_text
        self.state = RunState()
        # Bumped on every local intent; polls started before it are stale
        self._epoch = 0
        self._poller = IntervalPoller(interval_s, self.poll_once, immediate=True, name="script-status")

    @property
    def can_run(self) -> bool:
        return not self.state.running

    @property
    def can_stop(self) -> bool:
        return self.state.running

    @property
    def polling(self) -> bool:
        return self._poller.polling

    def start_polling(self) -> None:
        self._poller.start()

    async def stop_polling(self) -> None:
        await self._poller.stop()

    async def run(self) -> bool:
        if self.state.running:
            logger.debug("Run ignored: script already running")
            return False
        text = self._script_text()
        if not text.strip():
            logger.info("Run ignored: script is empty")
            return False

        await self._apply(RunRequested())
        result = await self._api.run_script(text)
        if not result.ok:
            # No rollback; the next poll corrects the optimistic flag
            logger.warning("Script run request failed: %s", result.error)
        return True

    async def stop(self) -> bool:
        await self._apply(StopRequested())
        result = await self._api.stop_script()
        if not result.ok:
            logger.warning("Script stop request failed: %s", result.error)
        return result.ok

    async def poll_once(self) -> bool:
        epoch = self._epoch
        result = await self._api.get_script_status()
        if not result.ok or result.data is None:
            logger.debug("Script status poll missed: %s", result.error)
            return False
        if epoch != self._epoch:
            logger.debug("Dropping script status fetched before the last run/stop")
            return False

        data = result.data
        await self._apply(StatusPolled(running=data.running, output=data.output, error=data.error))
        return True

    async def _apply(self, event: RunEvent) -> None:
        if not isinstance(event, StatusPolled):
            self._epoch += 1
        self.state = reduce_run_state(self.state, event)
        await self._bus.publish(SCRIPT_RUN, self.state)
