from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Настройки веб-сервера консоли"""
    host: str = Field("0.0.0.0", description="Адрес для привязки сервера")
    port: int = Field(8000, ge=1, le=65535, description="Порт сервера")
    reload: bool = Field(False, description="Auto-reload при изменении кода (для разработки)")


class DeviceConfig(BaseModel):
    """Параметры HTTP API устройства (робота)"""
    scheme: str = Field("http", description="Схема URL API устройства")
    api_port: int = Field(8080, ge=1, le=65535, description="Порт HTTP API устройства")
    default_host: str = Field("localhost", min_length=1, description="Хост, если страница его не передала")
    request_timeout_s: float = Field(5.0, gt=0.0, le=60.0, description="Таймаут одного запроса")


class PollingConfig(BaseModel):
    """Опрос состояния устройства и скрипта"""
    interval_s: float = Field(1.0, gt=0.0, le=60.0, description="Период опроса (общий для робота и скрипта)")


class ScriptConfig(BaseModel):
    """Редактор скрипта"""
    debounce_s: float = Field(0.8, gt=0.0, le=10.0, description="Пауза перед автосохранением")
    placeholder: str = Field("// Write JS for Rhino here\n", description="Текст до загрузки скрипта с устройства")


class SettingsConfig(BaseModel):
    """Страница настроек"""
    message_ttl_s: float = Field(2.0, gt=0.0, le=30.0, description="Сколько показывать результат сохранения")


class DriveConfig(BaseModel):
    """Управление движением"""
    default_speed: float = Field(0.5, ge=0.0, le=1.0, description="Скорость по умолчанию (ползунок)")
    stop_on_disconnect: bool = Field(True, description="Отправить stop роботу при закрытии консоли")


class Config(BaseModel):
    """Главная конфигурация приложения"""
    server: ServerConfig = ServerConfig()
    device: DeviceConfig = DeviceConfig()
    polling: PollingConfig = PollingConfig()
    script: ScriptConfig = ScriptConfig()
    settings: SettingsConfig = SettingsConfig()
    drive: DriveConfig = DriveConfig()


# Глобальный экземпляр конфигурации
config = Config()
