"""Кеш aiocache для счётчиков rate limit.

Экземпляр создаётся на контекст приложения (``swiper.context``), глобального
реестра ``caches`` нет: каждый build_cache честно читает свои настройки.
"""

from __future__ import annotations

from urllib.parse import urlparse

from aiocache import Cache, SimpleMemoryCache
from aiocache.base import BaseCache

from config.settings import CacheSettings


def build_cache(settings: CacheSettings) -> BaseCache:
    """Создаёт кеш по backend (memory/redis) с TTL из настроек."""

    if settings.backend == "redis":
        cache = Cache.from_url(_check_redis_dsn(settings.redis_dsn))
    else:
        cache = SimpleMemoryCache()
    cache.ttl = settings.ttl_seconds
    return cache


def _check_redis_dsn(dsn: str | None) -> str:
    if not dsn:
        raise RuntimeError("CACHE__BACKEND=redis, но redis_dsn не указан")
    scheme = urlparse(dsn).scheme
    if scheme != "redis":
        raise ValueError(f"Неподдерживаемая схема Redis DSN: {scheme}")
    return dsn


__all__ = ["build_cache"]
