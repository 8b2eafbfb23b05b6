"""Ограничение частоты запросов к API.

Счётчики фиксированного окна на IP клиента (из ASGI scope) хранятся в aiocache, поэтому с
redis-бэкендом лимиты общие для нескольких воркеров.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from aiocache.base import BaseCache
from fastapi import Request
from loguru import logger

from config.settings import RateLimitSettings


class RateLimitExceeded(Exception):
    """Клиент превысил лимит окна."""

    def __init__(self, rule: "RateLimitRule") -> None:
        super().__init__(rule.message)
        self.rule = rule

    @property
    def retry_after(self) -> int:
        return self.rule.window_sec


@dataclass(slots=True, frozen=True)
class RateLimitRule:
    name: str
    window_sec: int
    max_requests: int
    message: str = "Too many requests, please try again later"


class RateLimiter:
    """Счётчик запросов одного правила."""

    def __init__(self, rule: RateLimitRule, cache: BaseCache, enabled: bool = True) -> None:
        self.rule = rule
        self._cache = cache
        self._enabled = enabled

    async def hit(self, client_key: str) -> int:
        """Учитывает запрос и бросает RateLimitExceeded сверх лимита."""

        if not self._enabled:
            return 0
        key = f"ratelimit:{self.rule.name}:{client_key}"
        count = await self._cache.increment(key, 1)
        if count == 1:
            await self._cache.expire(key, self.rule.window_sec)
        if count > self.rule.max_requests:
            logger.debug(
                "Rate limit {name}: {client} превысил {limit} запросов",
                name=self.rule.name,
                client=client_key,
                limit=self.rule.max_requests,
            )
            raise RateLimitExceeded(self.rule)
        return count


def build_rate_limiters(settings: RateLimitSettings, cache: BaseCache) -> dict[str, RateLimiter]:
    rules = (
        RateLimitRule(
            "api",
            settings.api_window_sec,
            settings.api_max_requests,
            "Too many API requests, please try again later",
        ),
        RateLimitRule(
            "search",
            settings.search_window_sec,
            settings.search_max_requests,
            "Too many search requests, please try again later",
        ),
        RateLimitRule(
            "refresh",
            settings.refresh_window_sec,
            settings.refresh_max_requests,
            "Too many refresh requests, please wait before trying again",
        ),
    )
    return {rule.name: RateLimiter(rule, cache, enabled=settings.enabled) for rule in rules}


def client_ip(request: Request) -> str:
    """Адрес клиента из ASGI scope.

    Заголовки прокси сюда не доходят напрямую: их разбирает uvicorn
    (``proxy_headers`` + ``forwarded_allow_ips``), подставляя client в scope.
    """

    return request.client.host if request.client else "unknown"


def rate_limit(name: str) -> Callable[[Request], Awaitable[None]]:
    """FastAPI-зависимость, применяющая правило name к запросу."""

    async def dependency(request: Request) -> None:
        limiter = request.app.state.context.rate_limiters.get(name)
        if limiter is not None:
            await limiter.hit(client_ip(request))

    return dependency


__all__ = [
    "RateLimitExceeded",
    "RateLimitRule",
    "RateLimiter",
    "build_rate_limiters",
    "client_ip",
    "rate_limit",
]
