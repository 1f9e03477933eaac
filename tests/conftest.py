"""Фейковое устройство поверх httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest


class FakeDevice:
    """
    Отвечает как HTTP API робота и записывает все запросы.

    Маршрут можно заменить на dict (JSON-ответ), httpx.Response,
    исключение или функцию ``request -> Response``.
    """

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, Any]] = []
        self.routes: dict[tuple[str, str], Any] = {
            ("GET", "/api/robot/status"): {
                "success": True,
                "isMoving": False,
                "lastCommand": "none",
                "cameraFacing": 0,
            },
            ("GET", "/api/robot/ip"): {"success": True, "robotIp": "192.168.1.42"},
            ("GET", "/api/script"): {"success": True, "script": "robot.forward(1);"},
            ("GET", "/api/script/status"): {"success": True, "running": False, "output": ""},
            ("GET", "/api/status"): {"status": "online", "httpPort": 8080, "webSocketPort": 8081},
            ("GET", "/api/robot/test"): {
                "success": True,
                "robotIp": "192.168.1.42",
                "udpPort": 4210,
                "message": "Robot IP configured",
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, str(request.url), body))

        route = self.routes.get((request.method, request.url.path))
        if isinstance(route, Exception):
            raise route
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        if route is None:
            return httpx.Response(200, json={"success": True})
        return httpx.Response(200, json=route)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def bodies(self, method: str, path: str) -> list[Any]:
        """Тела запросов на указанный путь, в порядке отправки."""
        return [body for m, url, body in self.requests if m == method and httpx.URL(url).path == path]

    def urls(self, method: str, path: str) -> list[str]:
        return [url for m, url, _ in self.requests if m == method and httpx.URL(url).path == path]


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()
