"""Async движок SQLModel и фабрика сессий."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import DatabaseSettings
from swiper import models  # noqa: F401  импортируем модели для регистрации метаданных


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    _ensure_sqlite_dir(settings.dsn)
    return create_async_engine(
        settings.dsn,
        echo=settings.echo,
        poolclass=NullPool,
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Создаёт таблицы (миграций нет, схема живёт в моделях)."""

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def ping(engine: AsyncEngine) -> dict[str, Any]:
    """Проверка соединения для /health."""

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Проверка БД не прошла: {error}", error=str(exc))
        return {
            "status": "unhealthy",
            "message": "Database health check failed",
            "error": str(exc),
        }
    return {
        "status": "healthy",
        "message": "Database connection is healthy",
        "backend": engine.url.get_backend_name(),
    }


def _ensure_sqlite_dir(dsn: str) -> None:
    url = make_url(dsn)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


__all__ = ["build_engine", "build_session_maker", "init_db", "ping"]
