"""Тела ответов HTTP API устройства."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _DeviceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AckResponse(_DeviceModel):
    success: bool = False
    message: str | None = None


class RobotStatusResponse(_DeviceModel):
    success: bool
    is_moving: bool = Field(alias="isMoving")
    last_command: str = Field(alias="lastCommand")
    camera_facing: Literal[0, 1] = Field(alias="cameraFacing")
    timestamp: int | None = None


class RobotIpResponse(_DeviceModel):
    success: bool
    robot_ip: str | None = Field(None, alias="robotIp")


class RobotTestResponse(_DeviceModel):
    success: bool
    robot_ip: str | None = Field(None, alias="robotIp")
    udp_port: int | None = Field(None, alias="udpPort")
    message: str | None = None


class ServerInfoResponse(_DeviceModel):
    status: str
    http_port: int | None = Field(None, alias="httpPort")
    websocket_port: int | None = Field(None, alias="webSocketPort")
    websocket_clients: int | None = Field(None, alias="webSocketClients")


class ScriptResponse(_DeviceModel):
    success: bool
    script: str | None = None


class ScriptStatusResponse(_DeviceModel):
    running: bool
    output: str = ""
    error: str | None = None
