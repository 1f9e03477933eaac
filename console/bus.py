import asyncio
from collections import defaultdict
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

T = TypeVar("T")
Handler = Callable[[T], Coroutine[Any, Any, None]]

ROBOT_STATUS = "robot/status"
SCRIPT_DOCUMENT = "script/document"
SCRIPT_RUN = "script/run"
SETTINGS_STATE = "settings/state"
SETTINGS_CONNECTIVITY = "settings/connectivity"

TOPICS = (ROBOT_STATUS, SCRIPT_DOCUMENT, SCRIPT_RUN, SETTINGS_STATE, SETTINGS_CONNECTIVITY)


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler[Any]]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def subscribe(self, topic: str, handler: Handler[T]) -> None:
        async with self._lock:
            self._subscribers[topic].append(handler)  # type: ignore[arg-type]

    async def clear(self) -> None:
        async with self._lock:
            self._subscribers.clear()

    async def publish(self, topic: str, message: T) -> None:
        async with self._lock:
            handlers = list(self._subscribers.get(topic, []))
        if not handlers:
            return
        await asyncio.gather(*(h(message) for h in handlers))
