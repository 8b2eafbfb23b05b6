"""HTTP клиент explore API Zora.

ZoraClient держит одну aiohttp-сессию на процесс и выполняет GET-запросы
к ``/explore`` и ``/coin``. Таймаут фиксирован настройками и не меняется
на уровне отдельного вызова.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable

import aiohttp
from loguru import logger

from config.settings import ZoraSettings


class FetchError(RuntimeError):
    """Upstream недоступен, ответил не 2xx или прислал неразборчивое тело."""


@dataclass(slots=True)
class PageInfo:
    """Курсор пагинации explore-листа."""

    has_next_page: bool
    end_cursor: str | None
    total_count: int


class ZoraClient:
    """Лёгкий клиент Zora SDK API поверх aiohttp."""

    def __init__(self, settings: ZoraSettings) -> None:
        self._base_url = str(settings.base_url).rstrip("/")
        self._timeout = settings.timeout_sec
        self._max_count = settings.max_count
        self._default_chain_id = settings.default_chain_id
        self._headers = {
            "Accept": "application/json",
            "User-Agent": settings.user_agent,
        }
        self._session: aiohttp.ClientSession | None = None

    @property
    def max_count(self) -> int:
        return self._max_count

    async def start(self) -> None:
        """Создаёт HTTP-сессию (повторный вызов безопасен)."""

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._headers,
            )
            logger.info("ZoraClient готов: {url}", url=self._base_url)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_explore(
        self,
        list_type: str = "FEATURED",
        count: int = 100,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        """Возвращает сырое тело ответа ``/explore`` для листа list_type."""

        params: dict[str, Any] = {"listType": list_type, "count": min(count, self._max_count)}
        if cursor:
            params["cursor"] = cursor
        logger.debug("Запрос {list_type} токенов из Zora (count={count})", list_type=list_type, count=params["count"])
        try:
            data = await self._get_json("/explore", params)
        except FetchError as exc:
            logger.error("Ошибка загрузки {list_type} токенов: {error}", list_type=list_type, error=str(exc))
            raise FetchError(f"Failed to fetch {list_type} tokens: {exc}") from exc
        info = self.get_pagination_info(data)
        logger.info(
            "Получено {total} {list_type} токенов (hasNextPage={has_next})",
            total=info.total_count,
            list_type=list_type,
            has_next=info.has_next_page,
        )
        return data

    async def fetch(self, list_type: str, count: int) -> list[dict[str, Any]]:
        """Возвращает только edges explore-листа."""

        data = await self.fetch_explore(list_type, count)
        edges = ((data.get("exploreList") or {}).get("edges")) if isinstance(data, dict) else None
        return edges if isinstance(edges, list) else []

    async def fetch_token_details(self, address: str, chain: int | None = None) -> dict[str, Any]:
        """Детальная информация о монете по адресу контракта."""

        params = {"address": address, "chain": chain or self._default_chain_id}
        try:
            return await self._get_json("/coin", params)
        except FetchError as exc:
            logger.error("Ошибка загрузки токена {address}: {error}", address=address, error=str(exc))
            raise FetchError(f"Failed to fetch token details: {exc}") from exc

    async def fetch_all_list_types(
        self,
        list_types: Iterable[str],
        count: int = 100,
    ) -> dict[str, dict[str, Any]]:
        """Параллельно загружает несколько листов; любая ошибка валит весь вызов."""

        names = list(list_types)
        try:
            results = await asyncio.gather(*(self.fetch_explore(name, count) for name in names))
        except FetchError as exc:
            raise FetchError(f"Failed to fetch all list types: {exc}") from exc
        return dict(zip(names, results))

    @staticmethod
    def get_pagination_info(data: dict[str, Any]) -> PageInfo:
        explore = (data or {}).get("exploreList") or {}
        page_info = explore.get("pageInfo") or {}
        edges = explore.get("edges")
        return PageInfo(
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
            total_count=len(edges) if isinstance(edges, list) else 0,
        )

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        if self._session is None or self._session.closed:
            await self.start()
        assert self._session is not None
        url = f"{self._base_url}{path}"
        try:
            async with self._session.get(url, params=params) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise FetchError(f"HTTP {resp.status}: {text[:200]}")
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise FetchError(f"timeout after {self._timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise FetchError(str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise FetchError(f"invalid JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise FetchError("unexpected response body")
        return data


__all__ = ["FetchError", "PageInfo", "ZoraClient"]
