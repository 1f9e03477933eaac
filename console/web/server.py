import dataclasses
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from console.bus import TOPICS
from console.config import config
from console.endpoint import resolve_base_url, video_stream_url
from console.session import ConsoleSession

logger = logging.getLogger(__name__)

FRONTEND_DIR = Path(__file__).resolve().parents[2] / "frontend"

app = FastAPI(title="Robot Console")
app.mount("/static", StaticFiles(directory=FRONTEND_DIR), name="static")

# Replaced in tests to inject a fake device transport
session_factory = ConsoleSession

# Keep sessions reachable while their socket is open
_sessions: set[ConsoleSession] = set()


def _to_json(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return {k: _to_json(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, Enum):
        return value.value
    return value


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(FRONTEND_DIR / "index.html")


@app.get("/api/config")
async def get_config(request: Request) -> dict[str, Any]:
    """Параметры для фронтенда"""
    hostname = request.url.hostname
    return {
        "device": {
            "base_url": resolve_base_url(hostname),
            "video_url": video_stream_url(hostname),
        },
        "polling": {"interval_ms": int(config.polling.interval_s * 1000)},
        "script": {
            "debounce_ms": int(config.script.debounce_s * 1000),
            "placeholder": config.script.placeholder,
        },
        "settings": {"message_ttl_ms": int(config.settings.message_ttl_s * 1000)},
        "drive": {"default_speed": config.drive.default_speed},
    }


@app.websocket("/ws/console")
async def ws_console(ws: WebSocket) -> None:
    await ws.accept()
    session = session_factory(hostname=ws.url.hostname)
    _sessions.add(session)

    async def forward(topic: str) -> None:
        async def _send(snapshot: Any) -> None:
            try:
                await ws.send_json({"type": topic, "data": _to_json(snapshot)})
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("Dropping %s update, socket gone: %s", topic, exc)

        await session.bus.subscribe(topic, _send)

    for topic in TOPICS:
        await forward(topic)

    await session.mount()
    try:
        while True:
            msg_text = await ws.receive_text()
            try:
                msg = json.loads(msg_text)
            except ValueError:
                logger.warning("Ignoring non-JSON message: %r", msg_text)
                continue
            if not isinstance(msg, dict):
                logger.warning("Ignoring non-object message: %r", msg)
                continue
            try:
                await session.handle(msg)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Ignoring bad console message %r: %s", msg, exc)
    except WebSocketDisconnect:
        logger.info("Console socket disconnected")
    finally:
        _sessions.discard(session)
        await session.close()
