"""Общие фикстуры: временная SQLite база, фейковый источник Zora, контекст приложения."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from config.settings import AppSettings, CacheSettings, DatabaseSettings, RefreshSettings
from swiper.context import AppContext
from swiper.db import build_engine, build_session_maker, init_db
from swiper.services.refresh_job import DataRefreshJob
from swiper.services.zora.client import ZoraClient
from swiper.services.zora.transformer import transform_edges
from swiper.utils.cache import build_cache
from swiper.web.app import create_app
from swiper.web.rate_limit import build_rate_limiters


def make_node(index: int, **overrides: Any) -> dict[str, Any]:
    """Узел explore-листа в формате Zora."""

    node = {
        "id": f"coin-{index:03d}",
        "name": f"Coin {index}",
        "description": f"Description of coin {index}",
        "address": "0x" + f"{index:040X}",
        "symbol": f"C{index}",
        "totalSupply": "1000000000",
        "totalVolume": "5000",
        "volume24h": str(100 * index),
        "createdAt": "2025-01-15T10:00:00Z",
        "creatorAddress": "0x1111111111111111111111111111111111111111",
        "marketCap": str(1000 * index),
        "marketCapDelta24h": "12.5",
        "chainId": 8453,
        "uniqueHolders": index,
        "tokenPrice": {"priceInUsdc": "0.01", "currencyAddress": "0xabc", "priceInPoolToken": "1"},
    }
    node.update(overrides)
    return node


def make_edges(count: int, start: int = 0, **overrides: Any) -> list[dict[str, Any]]:
    return [{"node": make_node(i, **overrides)} for i in range(start, start + count)]


def make_tokens(count: int, list_type: str = "FEATURED", start: int = 0, now: datetime | None = None):
    return transform_edges(
        make_edges(count, start),
        list_type,
        now=now or datetime.now(timezone.utc),
    )


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        environment="test",
        database=DatabaseSettings(dsn=f"sqlite+aiosqlite:///{tmp_path / 'swiper.db'}"),
        refresh=RefreshSettings(enabled=False),
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.database)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
def explore_source() -> AsyncMock:
    source = AsyncMock()
    source.fetch.return_value = make_edges(5)
    return source


@pytest.fixture
def refresh_job(explore_source, session_maker, settings) -> DataRefreshJob:
    return DataRefreshJob(explore_source, session_maker, settings.refresh)


@pytest.fixture
async def limiter_cache():
    cache = build_cache(CacheSettings())
    await cache.clear()
    yield cache
    await cache.clear()


@pytest.fixture
def context(settings, engine, session_maker, refresh_job, limiter_cache) -> AppContext:
    return AppContext(
        settings=settings,
        engine=engine,
        session_maker=session_maker,
        zora_client=ZoraClient(settings.zora),
        refresh_job=refresh_job,
        rate_limiters=build_rate_limiters(settings.rate_limit, limiter_cache),
        cache=limiter_cache,
    )


@pytest.fixture
async def api(context):
    app = create_app(context, manage_lifecycle=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
