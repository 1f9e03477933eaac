"""
HTTP client for the device control API.

Every call returns an ApiResult instead of raising. The device is treated as
unreliable: a failed request is an ordinary outcome that callers may ignore.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from console.config import config
from console.messages import MotionCommand
from console.schemas import (
    AckResponse,
    RobotIpResponse,
    RobotStatusResponse,
    RobotTestResponse,
    ScriptResponse,
    ScriptStatusResponse,
    ServerInfoResponse,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ApiResult(Generic[M]):
    ok: bool
    data: M | None = None
    error: str | None = None
    status_code: int | None = None


class DeviceApi:
    """
    Thin async wrapper over the device endpoints.

    The base URL is obtained from ``base_url`` on every request, never cached.
    """

    def __init__(
        self,
        base_url: Callable[[], str],
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.device.request_timeout_s)

    @property
    def base_url(self) -> str:
        return self._base_url()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        model: type[M] | None = None,
        allow_error_status: bool = False,
    ) -> ApiResult[M]:
        url = f"{self._base_url()}{path}"
        try:
            response = await self._client.request(method, url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("%s %s failed: %r", method, url, exc)
            return ApiResult(ok=False, error=f"{type(exc).__name__}: {exc}")

        if response.is_error and not allow_error_status:
            return ApiResult(
                ok=False,
                error=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if model is None:
            return ApiResult(ok=True, status_code=response.status_code)

        try:
            data = model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            # ValueError covers undecodable JSON
            return ApiResult(
                ok=False,
                error=f"Malformed response from {path}: {exc}",
                status_code=response.status_code,
            )
        return ApiResult(ok=True, data=data, status_code=response.status_code)

    # --- Robot ---

    async def send_command(self, cmd: MotionCommand) -> ApiResult[AckResponse]:
        return await self._request("POST", cmd.path, cmd.body())

    async def get_status(self) -> ApiResult[RobotStatusResponse]:
        return await self._request("GET", "/api/robot/status", model=RobotStatusResponse)

    async def get_robot_ip(self) -> ApiResult[RobotIpResponse]:
        return await self._request("GET", "/api/robot/ip", model=RobotIpResponse)

    async def set_robot_ip(self, ip: str) -> ApiResult[AckResponse]:
        # The device answers 400 with {"success": false} on a rejected address
        return await self._request(
            "POST", "/api/robot/ip", {"ip": ip}, model=AckResponse, allow_error_status=True
        )

    async def test_robot(self) -> ApiResult[RobotTestResponse]:
        return await self._request("GET", "/api/robot/test", model=RobotTestResponse)

    async def server_info(self) -> ApiResult[ServerInfoResponse]:
        return await self._request("GET", "/api/status", model=ServerInfoResponse)

    # --- Script ---

    async def get_script(self) -> ApiResult[ScriptResponse]:
        return await self._request("GET", "/api/script", model=ScriptResponse)

    async def save_script(self, text: str) -> ApiResult[AckResponse]:
        return await self._request("POST", "/api/script", {"script": text})

    async def run_script(self, text: str) -> ApiResult[AckResponse]:
        return await self._request("POST", "/api/script/run", {"script": text})

    async def stop_script(self) -> ApiResult[AckResponse]:
        return await self._request("POST", "/api/script/stop", {})

    async def get_script_status(self) -> ApiResult[ScriptStatusResponse]:
        return await self._request("GET", "/api/script/status", model=ScriptStatusResponse)
