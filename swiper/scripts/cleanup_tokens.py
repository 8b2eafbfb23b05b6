"""Мягкое удаление токенов, не обновлявшихся заданное число дней."""

from __future__ import annotations

import argparse
import asyncio

from loguru import logger

from config.settings import get_settings
from swiper.context import build_context
from swiper.db import init_db
from swiper.logging_config import setup_logging


async def _run(days_old: int | None) -> int:
    context = build_context(get_settings())
    try:
        await init_db(context.engine)
        return await context.refresh_job.cleanup_stale(days_old)
    finally:
        await context.engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--days", type=int, default=None, help="Возраст записи в днях (REFRESH__CLEANUP_DAYS)")
    args = parser.parse_args()
    setup_logging()
    cleaned = asyncio.run(_run(args.days))
    logger.info("Очистка завершена: {count} токенов деактивировано", count=cleaned)


if __name__ == "__main__":
    main()
