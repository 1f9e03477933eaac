import logging

import httpx

from console.api import DeviceApi
from console.bus import SETTINGS_CONNECTIVITY, SETTINGS_STATE, EventBus
from console.config import config
from console.endpoint import resolve_base_url
from console.messages import ConnectivityReport, SaveOutcome, SettingsState
from console.timers import Debouncer

logger = logging.getLogger(__name__)


def is_valid_ipv4(ip: str) -> bool:
    """Dotted quad, each octet 0..255; leading zeros allowed as on the device."""
    parts = ip.strip().split(".")
    if len(parts) != 4:
        return False
    return all(part.isascii() and part.isdigit() and int(part) <= 255 for part in parts)


class SettingsStore:
    """
    IP робота, хранящийся на устройстве.

    Запросы идут на хост, введённый в поле "HTTP Host", а не на хост страницы.
    Результат сохранения показывается ``message_ttl_s`` секунд; повторное
    сохранение просто заменяет сообщение.
    """

    def __init__(
        self,
        bus: EventBus,
        http_host: str | None = None,
        client: httpx.AsyncClient | None = None,
        message_ttl_s: float = config.settings.message_ttl_s,
    ) -> None:
        self._bus = bus
        self.http_host = (http_host or "").strip() or config.device.default_host
        self.robot_ip = ""
        self.message: SaveOutcome | None = None
        self._api = DeviceApi(lambda: resolve_base_url(self.http_host), client)
        self._message_timer = Debouncer(message_ttl_s, self._clear_message)

    def snapshot(self) -> SettingsState:
        return SettingsState(http_host=self.http_host, robot_ip=self.robot_ip, message=self.message)

    async def set_http_host(self, host: str) -> bool:
        """Change the configured host and reload the IP from it."""
        host = host.strip() or config.device.default_host
        if host == self.http_host:
            return False
        self.http_host = host
        await self._publish()
        return await self.load()

    def set_ip(self, ip: str) -> None:
        self.robot_ip = ip

    async def load(self) -> bool:
        host = self.http_host
        result = await self._api.get_robot_ip()
        if host != self.http_host:
            logger.debug("Discarding robot IP loaded from previous host %s", host)
            return False
        if not result.ok or result.data is None:
            logger.debug("Robot IP load failed: %s", result.error)
            return False
        if not (result.data.success and result.data.robot_ip):
            return False

        self.robot_ip = result.data.robot_ip
        await self._publish()
        return True

    async def save(self, ip: str | None = None) -> SaveOutcome:
        if ip is not None:
            self.robot_ip = ip
        ip = self.robot_ip.strip()

        if not is_valid_ipv4(ip):
            logger.info("Refusing to save invalid robot IP %r", ip)
            outcome = SaveOutcome.FAILED
        else:
            result = await self._api.set_robot_ip(ip)
            if not result.ok or result.data is None:
                logger.warning("Robot IP save errored: %s", result.error)
                outcome = SaveOutcome.ERROR
            elif result.data.success:
                logger.info("Robot IP set to %s", ip)
                outcome = SaveOutcome.SAVED
            else:
                logger.warning("Device rejected robot IP %s: %s", ip, result.data.message)
                outcome = SaveOutcome.FAILED

        await self._show(outcome)
        return outcome

    async def test_connection(self) -> ConnectivityReport:
        info = await self._api.server_info()
        test = await self._api.test_robot()

        server_online = info.ok and info.data is not None and info.data.status == "online"
        if test.ok and test.data is not None and test.data.success:
            report = ConnectivityReport(
                server_online=server_online,
                robot_ip=test.data.robot_ip,
                udp_port=test.data.udp_port,
                message=test.data.message,
            )
        else:
            report = ConnectivityReport(server_online=server_online, message=test.error)

        await self._bus.publish(SETTINGS_CONNECTIVITY, report)
        return report

    async def close(self) -> None:
        self._message_timer.cancel()
        await self._api.aclose()

    async def _show(self, outcome: SaveOutcome) -> None:
        self.message = outcome
        self._message_timer.arm()
        await self._publish()

    async def _clear_message(self) -> None:
        self.message = None
        await self._publish()

    async def _publish(self) -> None:
        await self._bus.publish(SETTINGS_STATE, self.snapshot())
