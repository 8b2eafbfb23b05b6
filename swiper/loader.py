"""Loader Base Swiper — запуск и остановка фоновых сервисов."""

from __future__ import annotations

from loguru import logger

from .context import AppContext
from .db import init_db

SHUTDOWN_GRACE_SEC = 30


async def on_startup(context: AppContext) -> None:
    """Инициализация БД, HTTP клиента и таймера обновления."""

    settings = context.settings
    logger.info("Base Swiper стартует в окружении {env}", env=settings.environment)
    logger.debug("on_startup: init database")
    await init_db(context.engine)
    logger.debug("on_startup: start zora client")
    await context.zora_client.start()
    if settings.refresh.enabled:
        logger.debug("on_startup: start data refresh job")
        await context.refresh_job.start(settings.refresh.interval_minutes)
    else:
        logger.info("Фоновое обновление отключено (REFRESH__ENABLED=false)")
    logger.info(
        "on_startup завершён: интервал обновления {minutes} мин, CORS {origin}",
        minutes=settings.refresh.interval_minutes,
        origin=settings.server.cors_origin,
    )


async def on_shutdown(context: AppContext) -> None:
    """Мягкое выключение сервиса."""

    await context.refresh_job.stop()
    await context.refresh_job.join(timeout=SHUTDOWN_GRACE_SEC)
    await context.zora_client.close()
    if context.cache is not None:
        await context.cache.close()
    await context.engine.dispose()
    logger.info("Base Swiper корректно остановлен")


__all__ = ["on_shutdown", "on_startup"]
