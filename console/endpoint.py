"""Base URL of the device control API."""

from console.config import config


def resolve_base_url(hostname: str | None = None) -> str:
    """
    Build the device API base URL from the page hostname.

    Not cached: callers pass the hostname they see right now, so a changed
    browsing context is picked up on the next request.

    Args:
        hostname: Hostname of the page the operator opened (may be empty)

    Returns:
        URL like ``http://robot.local:8080``
    """
    host = (hostname or "").strip() or config.device.default_host
    return f"{config.device.scheme}://{host}:{config.device.api_port}"


def video_stream_url(hostname: str | None = None) -> str:
    """URL of the MJPEG camera stream, used directly as an <img> source."""
    return f"{resolve_base_url(hostname)}/stream/video"
