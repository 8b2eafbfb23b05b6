"""Глобальные настройки Base Swiper API.

Настройки разделены по доменам (Zora API, фоновое обновление, БД, лимиты),
поэтому новые источники токенов подключаются без переписывания базового кода.
Вся конфигурация загружается из переменных окружения через Pydantic Settings,
например ``ZORA__BASE_URL`` или ``REFRESH__INTERVAL_MINUTES``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
ACCESSIBLE_ENV_FILE = BASE_DIR / "config" / "runtime.env"
DEFAULT_ENV_FILE = BASE_DIR / ".env"
ENV_FILE = ACCESSIBLE_ENV_FILE if ACCESSIBLE_ENV_FILE.exists() else DEFAULT_ENV_FILE

DEFAULT_LIST_TYPES = ["NEW", "MOST_VALUABLE", "TOP_GAINERS", "FEATURED"]


class ZoraSettings(BaseModel):
    """Подключение к публичному explore API Zora."""

    base_url: AnyHttpUrl = Field(
        "https://api-sdk.zora.engineering",
        description="Базовый URL Zora SDK API",
    )
    timeout_sec: PositiveFloat = Field(10.0, description="Таймаут одного HTTP запроса")
    user_agent: str = "Base-Swiper-API/1.0.0"
    max_count: PositiveInt = Field(100, description="Жёсткий лимит count на стороне Zora")
    default_chain_id: int = 8453


class RefreshSettings(BaseModel):
    """Параметры фонового обновления категорий."""

    enabled: bool = Field(True, description="Запускать таймер при старте процесса")
    interval_minutes: PositiveFloat = 5
    cooldown_seconds: PositiveFloat = Field(
        120, description="Минимальный интервал между стартами циклов обновления"
    )
    list_type: str = "FEATURED"
    fetch_count: PositiveInt = 100
    list_types: list[str] = Field(default_factory=lambda: list(DEFAULT_LIST_TYPES))
    cleanup_days: PositiveInt = Field(7, description="Возраст записи для мягкого удаления")

    @field_validator("list_types", mode="before")
    @classmethod
    def _split_csv(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @model_validator(mode="after")
    def _check_schedule(self) -> "RefreshSettings":
        if self.cooldown_seconds >= self.interval_minutes * 60:
            raise ValueError("cooldown_seconds должен быть меньше interval_minutes")
        if self.list_type not in self.list_types:
            raise ValueError(f"list_type {self.list_type} отсутствует в list_types")
        return self


class DatabaseSettings(BaseModel):
    """SQLModel + aiosqlite (по умолчанию) и готовность к Postgres."""

    dsn: str = Field(
        "sqlite+aiosqlite:///./database/swiper.db",
        description="Строка подключения SQLAlchemy/SQLModel",
    )
    echo: bool = False


class CacheSettings(BaseModel):
    """Настройки кеша счётчиков rate limit (aiocache поддерживает memory / redis)."""

    backend: Literal["memory", "redis"] = "memory"
    ttl_seconds: int = 900
    redis_dsn: str | None = None


class RateLimitSettings(BaseModel):
    """Окна и пороги ограничений запросов (на IP клиента)."""

    enabled: bool = True
    api_window_sec: PositiveInt = 15 * 60
    api_max_requests: PositiveInt = 100
    search_window_sec: PositiveInt = 60
    search_max_requests: PositiveInt = 30
    refresh_window_sec: PositiveInt = 5 * 60
    refresh_max_requests: PositiveInt = 5


class ServerSettings(BaseModel):
    """HTTP сервер и CORS."""

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origin: str = "http://localhost:3000"
    version: str = "1.0.0"
    forwarded_allow_ips: str = Field(
        "127.0.0.1",
        description="Прокси, чьим X-Forwarded-For доверяет uvicorn (через запятую или *)",
    )


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = Field(False, description="JSON-строки вместо человекочитаемого формата")


class AppSettings(BaseSettings):
    """Главный контейнер настроек Base Swiper API."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    zora: ZoraSettings = ZoraSettings()
    refresh: RefreshSettings = RefreshSettings()
    database: DatabaseSettings = DatabaseSettings()
    cache: CacheSettings = CacheSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    server: ServerSettings = ServerSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def is_production(self) -> bool:
        """True, если сервис запущен в продовой среде."""

        return self.environment == "production"


# Ленивый экземпляр для точки входа; сервисы получают настройки явно.
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Возвращает единый экземпляр настроек процесса.

    Используется только при сборке контекста приложения (``swiper.context``)
    и в скриптах. Значения кэшируются, поэтому .env читается один раз.
    """

    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


__all__ = [
    "AppSettings",
    "CacheSettings",
    "DatabaseSettings",
    "DEFAULT_LIST_TYPES",
    "LoggingSettings",
    "RateLimitSettings",
    "RefreshSettings",
    "ServerSettings",
    "ZoraSettings",
    "get_settings",
]
