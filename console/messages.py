from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"


class RotateDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"


def clamp_speed(speed: float) -> float:
    """Ограничить скорость диапазоном [0, 1]."""
    speed = float(speed)
    if speed != speed:  # NaN
        return 0.0
    return min(1.0, max(0.0, speed))


@dataclass(frozen=True)
class MoveCommand:
    direction: Direction
    speed: float  # 0..1

    path = "/api/robot/move"

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", Direction(self.direction))
        object.__setattr__(self, "speed", clamp_speed(self.speed))

    def body(self) -> dict:
        return {"direction": self.direction.value, "speed": self.speed}


@dataclass(frozen=True)
class RotateCommand:
    direction: RotateDirection
    speed: float  # 0..1

    path = "/api/robot/rotate"

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", RotateDirection(self.direction))
        object.__setattr__(self, "speed", clamp_speed(self.speed))

    def body(self) -> dict:
        return {"direction": self.direction.value, "speed": self.speed}


@dataclass(frozen=True)
class StopCommand:
    path = "/api/robot/stop"

    def body(self) -> dict:
        return {}


@dataclass(frozen=True)
class SwitchCameraCommand:
    path = "/api/robot/camera/switch"

    def body(self) -> dict:
        return {}


MotionCommand = MoveCommand | RotateCommand | StopCommand | SwitchCameraCommand


@dataclass(frozen=True)
class DeviceStatus:
    is_moving: bool = False
    last_command: str = "none"
    camera_facing: int = 0  # 0 - back, 1 - front
    timestamp: int | None = None


@dataclass(frozen=True)
class RunState:
    running: bool = False
    output: str = ""
    error: str | None = None


class SaveOutcome(str, Enum):
    SAVED = "Saved"
    FAILED = "Failed"
    ERROR = "Error"


@dataclass(frozen=True)
class ConnectivityReport:
    server_online: bool
    robot_ip: str | None = None
    udp_port: int | None = None
    message: str | None = None


@dataclass(frozen=True)
class ScriptDocument:
    text: str
    dirty: bool = False  # autosave pending
    in_sync: bool = False  # last save acknowledged and nothing edited since


@dataclass(frozen=True)
class SettingsState:
    http_host: str
    robot_ip: str = ""
    message: SaveOutcome | None = None
