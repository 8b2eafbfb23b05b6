"""Сервисы Base Swiper, собранные один раз при старте процесса.

Экземпляры не живут в глобальных переменных модулей: build_context создаёт
их явно, а веб-слой получает контекст через ``app.state.context``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from aiocache.base import BaseCache
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import AppSettings
from .db import build_engine, build_session_maker
from .services.refresh_job import DataRefreshJob
from .services.zora.client import ZoraClient
from .utils.cache import build_cache
from .web.rate_limit import RateLimiter, build_rate_limiters


@dataclass(slots=True)
class AppContext:
    settings: AppSettings
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    zora_client: ZoraClient
    refresh_job: DataRefreshJob
    rate_limiters: dict[str, RateLimiter] = field(default_factory=dict)
    cache: BaseCache | None = None


def build_context(settings: AppSettings, cache: BaseCache | None = None) -> AppContext:
    engine = build_engine(settings.database)
    session_maker = build_session_maker(engine)
    zora_client = ZoraClient(settings.zora)
    refresh_job = DataRefreshJob(
        zora_client,
        session_maker,
        settings.refresh,
        max_count=settings.zora.max_count,
    )
    limiter_cache = cache if cache is not None else build_cache(settings.cache)
    return AppContext(
        settings=settings,
        engine=engine,
        session_maker=session_maker,
        zora_client=zora_client,
        refresh_job=refresh_job,
        rate_limiters=build_rate_limiters(settings.rate_limit, limiter_cache),
        cache=limiter_cache,
    )


__all__ = ["AppContext", "build_context"]
