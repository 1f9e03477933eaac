"""One operator view: every controller of the console wired to a private bus."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

import httpx

from console.api import DeviceApi
from console.bus import SCRIPT_DOCUMENT, EventBus
from console.config import config
from console.endpoint import resolve_base_url, video_stream_url
from console.messages import Direction, RotateDirection
from console.nodes.drive import CommandDispatcher
from console.nodes.script import ScriptEditor, ScriptRunner
from console.nodes.settings import SettingsStore
from console.nodes.status import StatusPoller

logger = logging.getLogger(__name__)


class ConsoleSession:
    def __init__(
        self,
        hostname: str | None = None,
        client: httpx.AsyncClient | None = None,
        stop_on_close: bool = config.drive.stop_on_disconnect,
    ) -> None:
        self.hostname = hostname
        self.stop_on_close = stop_on_close
        self.bus = EventBus()

        self._client = client or httpx.AsyncClient(timeout=config.device.request_timeout_s)
        self.api = DeviceApi(lambda: resolve_base_url(self.hostname), self._client)

        self.drive = CommandDispatcher(self.api)
        self.status = StatusPoller(self.api, self.bus)
        self.editor = ScriptEditor(self.api, self.bus)
        self.runner = ScriptRunner(self.api, self.bus, script_text=lambda: self.editor.text)
        self.settings = SettingsStore(self.bus, http_host=hostname, client=self._client)

        self._tasks: set[asyncio.Task[Any]] = set()
        self._mounted = False
        self._closed = False

    @property
    def base_url(self) -> str:
        return resolve_base_url(self.hostname)

    @property
    def video_url(self) -> str:
        return video_stream_url(self.hostname)

    async def mount(self) -> None:
        if self._mounted or self._closed:
            return
        self._mounted = True
        logger.info("Console session mounted for %s", self.base_url)
        self.status.start()
        self.runner.start_polling()
        # Placeholder first; the device copy follows if the load succeeds
        await self.bus.publish(SCRIPT_DOCUMENT, self.editor.snapshot())
        self._spawn(self.editor.load())
        self._spawn(self.settings.load())

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._mounted = False

        await self.status.stop()
        await self.runner.stop_polling()

        # In-flight commands and saves get a chance to land, then are cut off
        if self._tasks:
            _, pending = await asyncio.wait(set(self._tasks), timeout=config.device.request_timeout_s)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

        await self.editor.close()
        if self.stop_on_close:
            await self.drive.stop()
        await self.settings.close()
        await self.bus.clear()
        await self._client.aclose()
        logger.info("Console session closed for %s", self.base_url)

    async def handle(self, msg: dict[str, Any]) -> None:
        """
        Route one UI event.

        Network work is spawned so a slow device never blocks the next
        event; a stop issued right after a move is not queued behind it.

        Raises:
            ValueError: Unknown message type or bad payload
        """
        msg_type = msg.get("type")

        if msg_type == "move":
            self._spawn(self.drive.move(Direction(msg["direction"]), _speed(msg)))
        elif msg_type == "rotate":
            self._spawn(self.drive.rotate(RotateDirection(msg["direction"]), _speed(msg)))
        elif msg_type == "stop":
            self._spawn(self.drive.stop())
        elif msg_type == "switch_camera":
            self._spawn(self.drive.switch_camera())
        elif msg_type == "speed":
            self.drive.speed = float(msg["value"])

        elif msg_type == "edit":
            self.editor.edit(str(msg["text"]))
        elif msg_type == "save":
            self._spawn(self.editor.save())
        elif msg_type == "run":
            if self.runner.can_run:
                self._spawn(self.runner.run())
        elif msg_type == "script_stop":
            if self.runner.can_stop:
                self._spawn(self.runner.stop())

        elif msg_type == "set_host":
            self._spawn(self.settings.set_http_host(str(msg["host"])))
        elif msg_type == "set_ip":
            self.settings.set_ip(str(msg["ip"]))
        elif msg_type == "save_ip":
            ip = msg.get("ip")
            self._spawn(self.settings.save(None if ip is None else str(ip)))
        elif msg_type == "test_robot":
            self._spawn(self.settings.test_connection())

        else:
            raise ValueError(f"Unknown message type: {msg_type!r}")

    async def drain(self) -> None:
        """Wait for every spawned request to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


def _speed(msg: dict[str, Any]) -> float | None:
    speed = msg.get("speed")
    return None if speed is None else float(speed)
