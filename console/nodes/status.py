import logging

from console.api import DeviceApi
from console.bus import ROBOT_STATUS, EventBus
from console.config import config
from console.messages import DeviceStatus
from console.timers import IntervalPoller

logger = logging.getLogger(__name__)


class StatusPoller:
    """Периодически забирает состояние робота и публикует его целиком."""

    def __init__(
        self,
        api: DeviceApi,
        bus: EventBus,
        interval_s: float = config.polling.interval_s,
    ) -> None:
        self._api = api
        self._bus = bus
        self.status = DeviceStatus()
        self._poller = IntervalPoller(interval_s, self.poll_once, immediate=True, name="robot-status")

    @property
    def polling(self) -> bool:
        return self._poller.polling

    def start(self) -> None:
        self._poller.start()

    async def stop(self) -> None:
        await self._poller.stop()

    async def poll_once(self) -> bool:
        """
        Один тик опроса.

        Returns:
            True, если опубликовано новое состояние. При любой ошибке
            предыдущее состояние остаётся как есть.
        """
        result = await self._api.get_status()
        if not result.ok or result.data is None:
            logger.debug("Status poll missed: %s", result.error)
            return False
        if not result.data.success:
            logger.debug("Status poll returned success=false")
            return False

        data = result.data
        self.status = DeviceStatus(
            is_moving=data.is_moving,
            last_command=data.last_command,
            camera_facing=data.camera_facing,
            timestamp=data.timestamp,
        )
        await self._bus.publish(ROBOT_STATUS, self.status)
        return True
