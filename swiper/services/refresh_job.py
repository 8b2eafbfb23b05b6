"""Фоновое обновление категории токенов из Zora.

Один таймер (asyncio.Task) раз в ``interval_minutes`` запускает цикл
fetch -> transform -> replace. Защита от наложения циклов построена на
метке времени последней попытки (cooldown), а не на блокировке: два
запуска, разнесённые больше чем на cooldown, могут идти параллельно.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import RefreshSettings
from swiper.repositories import ReplaceResult, deactivate_stale_tokens, replace_category
from swiper.services.zora.transformer import transform_edges

MAX_EXPLORE_COUNT = 100


class ExploreSource(Protocol):
    async def fetch(self, list_type: str, count: int) -> list[dict[str, Any]]: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class JobStatus:
    is_running: bool
    last_run: datetime | None
    next_run: datetime | None
    interval: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "nextRun": self.next_run.isoformat() if self.next_run else None,
            "interval": self.interval,
        }


class DataRefreshJob:
    """Периодически перезаписывает одну категорию токенов свежими данными."""

    def __init__(
        self,
        client: ExploreSource,
        session_maker: async_sessionmaker[AsyncSession],
        settings: RefreshSettings,
        *,
        max_count: int = MAX_EXPLORE_COUNT,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client
        self._session_maker = session_maker
        self._settings = settings
        self._list_type = settings.list_type
        self._cooldown = timedelta(seconds=settings.cooldown_seconds)
        self._max_count = max_count
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self.is_running = False
        self.last_run: datetime | None = None
        self.next_run: datetime | None = None

    @property
    def list_type(self) -> str:
        return self._list_type

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    async def start(self, interval_minutes: float | None = None) -> None:
        """Запускает таймер; первый цикл стартует сразу."""

        if self.is_running:
            logger.info("Data refresh job уже запущен, повторный start пропущен")
            return
        minutes = interval_minutes or self._settings.interval_minutes
        logger.info("Запуск data refresh job с интервалом {minutes} мин", minutes=minutes)
        self.is_running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._run_loop(minutes * 60, self._stop_event),
            name="data-refresh-loop",
        )

    async def stop(self) -> None:
        """Отменяет будущие тики; текущий цикл доходит до конца."""

        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self.is_running = False
        self.next_run = None
        logger.info("Data refresh job остановлен")

    async def join(self, timeout: float | None = None) -> None:
        """Ждёт завершения фоновой задачи после stop() (используется при shutdown)."""

        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Цикл обновления не завершился за {timeout}s, отменяем", timeout=timeout)
            task.cancel()

    async def run_refresh(
        self,
        list_type: str | None = None,
        count: int | None = None,
    ) -> ReplaceResult | None:
        """Один цикл fetch -> transform -> replace.

        Возвращает None, если предыдущая попытка стартовала меньше cooldown
        назад: вызов ничего не делает и upstream не трогает. Ошибки загрузки
        и БД пробрасываются вызывающему.
        """

        now = self._clock()
        if self.last_run is not None and now - self.last_run < self._cooldown:
            logger.info(
                "Обновление уже запускалось {ago:.0f}s назад, пропускаем",
                ago=(now - self.last_run).total_seconds(),
            )
            return None
        self.last_run = now

        target = list_type or self._list_type
        requested = count if count is not None else self._settings.fetch_count
        limit = max(1, min(requested, self._max_count))
        logger.info("Старт обновления {list_type} токенов (count={count})", list_type=target, count=limit)
        try:
            edges = await self._client.fetch(target, limit)
            tokens = transform_edges(edges, target, now=now)
            async with self._session_maker() as session:
                result = await replace_category(session, target, tokens)
        except Exception as exc:
            logger.error("❌ Обновление {list_type} упало: {error}", list_type=target, error=str(exc))
            raise
        logger.info(
            "✅ {list_type} токены обновлены: удалено {deleted}, вставлено {inserted}",
            list_type=target,
            deleted=result.deleted,
            inserted=result.inserted,
        )
        return result

    async def force_refresh(self) -> ReplaceResult | None:
        """Ручной запуск в обход таймера (cooldown действует)."""

        logger.info("Принудительное обновление {list_type}", list_type=self._list_type)
        return await self.run_refresh()

    async def refresh_list_type(self, list_type: str) -> ReplaceResult | None:
        if list_type not in self._settings.list_types:
            raise ValueError(f"Invalid list type: {list_type}")
        logger.info("Принудительное обновление {list_type}", list_type=list_type)
        return await self.run_refresh(list_type)

    async def cleanup_stale(self, days_old: int | None = None) -> int:
        """Мягко удаляет записи, не обновлявшиеся days_old дней."""

        async with self._session_maker() as session:
            return await deactivate_stale_tokens(
                session,
                self._settings.cleanup_days if days_old is None else days_old,
            )

    def get_status(self) -> JobStatus:
        return JobStatus(
            is_running=self.is_running,
            last_run=self.last_run,
            next_run=self.next_run,
            interval="active" if self.is_running else "inactive",
        )

    async def _run_loop(self, interval_sec: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            started = time.monotonic()
            self.next_run = utcnow() + timedelta(seconds=interval_sec)
            await self._tick()
            remaining = max(0.0, interval_sec - (time.monotonic() - started))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                continue

    async def _tick(self) -> None:
        try:
            await self.run_refresh()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Плановый цикл обновления не удался, ждём следующий тик: {error}",
                error=str(exc),
            )


__all__ = ["DataRefreshJob", "ExploreSource", "JobStatus", "MAX_EXPLORE_COUNT"]
