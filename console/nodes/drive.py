import logging

from console.api import DeviceApi
from console.config import config
from console.messages import (
    Direction,
    MotionCommand,
    MoveCommand,
    RotateCommand,
    RotateDirection,
    StopCommand,
    SwitchCameraCommand,
    clamp_speed,
)

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Fire-and-forget motion commands.

    Holds no robot state: whether a command landed shows up on the next
    status poll. Stop is never gated.
    """

    def __init__(self, api: DeviceApi, speed: float = config.drive.default_speed) -> None:
        self._api = api
        self._speed = clamp_speed(speed)

    @property
    def speed(self) -> float:
        """Последняя скорость, выставленная ползунком."""
        return self._speed

    @speed.setter
    def speed(self, value: float) -> None:
        self._speed = clamp_speed(value)

    async def move(self, direction: Direction | str, speed: float | None = None) -> bool:
        return await self.dispatch(MoveCommand(direction, self._pick(speed)))

    async def rotate(self, direction: RotateDirection | str, speed: float | None = None) -> bool:
        return await self.dispatch(RotateCommand(direction, self._pick(speed)))

    async def stop(self) -> bool:
        return await self.dispatch(StopCommand())

    async def switch_camera(self) -> bool:
        return await self.dispatch(SwitchCameraCommand())

    async def dispatch(self, cmd: MotionCommand) -> bool:
        result = await self._api.send_command(cmd)
        if not result.ok:
            logger.warning("Command %s not delivered: %s", cmd.path, result.error)
        return result.ok

    def _pick(self, speed: float | None) -> float:
        return self._speed if speed is None else clamp_speed(speed)
