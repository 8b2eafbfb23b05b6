"""Работа с таблицей токенов.

Замена категории выполняется двумя отдельными коммитами: сначала удаление,
затем вставка. Между ними категория пуста, читатели должны трактовать это
как «временно нет данных».
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Sequence

from loguru import logger
from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from swiper.models import Token

# sqlite3 бросает OverflowError/ValueError мимо иерархии SQLAlchemy
DRIVER_ERRORS = (SQLAlchemyError, OverflowError, ValueError, TypeError)


class StoreError(RuntimeError):
    """Ошибка БД при изменении данных (удаление/вставка/очистка)."""


@dataclass(slots=True)
class ReplaceResult:
    success: bool
    deleted: int = 0
    inserted: int = 0
    total: int = 0
    message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "deleted": self.deleted,
            "inserted": self.inserted,
            "total": self.total,
        }
        if self.message:
            payload["message"] = self.message
        return payload


@dataclass(slots=True)
class Pagination:
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass(slots=True)
class TokenPage:
    tokens: list[Token]
    pagination: Pagination


@dataclass(slots=True)
class StoreStats:
    total_tokens: int
    by_list_type: dict[str, int]
    recent_tokens: int
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalTokens": self.total_tokens,
            "byListType": dict(self.by_list_type),
            "recentTokens": self.recent_tokens,
            "lastUpdated": self.last_updated.isoformat(),
        }


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    skip = (page - 1) * limit
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if limit else 0,
        has_next=skip + limit < total,
        has_prev=page > 1,
    )


async def replace_category(
    session: AsyncSession,
    list_type: str,
    tokens: Sequence[Token],
) -> ReplaceResult:
    """Удаляет все записи категории и вставляет новый набор.

    Вместе с категорией удаляются записи с теми же zora_id из других
    категорий: запись живёт ровно в одной категории.
    """

    if not tokens:
        logger.warning("Нет токенов для замены категории {list_type}", list_type=list_type)
        return ReplaceResult(success=False, message="No tokens to store")

    batch = _dedupe(tokens)
    zora_ids = [token.zora_id for token in batch if token.zora_id]
    logger.info(
        "Замена категории {list_type}: {count} новых токенов",
        list_type=list_type,
        count=len(batch),
    )

    condition = Token.list_type == list_type
    if zora_ids:
        condition = or_(condition, col(Token.zora_id).in_(zora_ids))
    try:
        deleted = (await session.exec(delete(Token).where(condition))).rowcount or 0
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Не удалось удалить {list_type} токены: {error}", list_type=list_type, error=str(exc))
        raise StoreError(f"Failed to replace {list_type} tokens: {exc}") from exc

    try:
        session.add_all(batch)
        await session.commit()
    except DRIVER_ERRORS as exc:
        await session.rollback()
        logger.error(
            "Категория {list_type} удалена ({deleted}), но вставка упала: {error}",
            list_type=list_type,
            deleted=deleted,
            error=str(exc),
        )
        raise StoreError(f"Failed to replace {list_type} tokens: {exc}") from exc

    logger.info(
        "Категория {list_type} заменена: удалено {deleted}, вставлено {inserted}",
        list_type=list_type,
        deleted=deleted,
        inserted=len(batch),
    )
    return ReplaceResult(success=True, deleted=deleted, inserted=len(batch), total=len(tokens))


async def get_tokens_by_list_type(
    session: AsyncSession,
    list_type: str,
    page: int = 1,
    limit: int = 20,
) -> TokenPage:
    skip = (page - 1) * limit
    stmt = (
        select(Token)
        .where(Token.list_type == list_type, Token.is_active == True)  # noqa: E712
        .order_by(col(Token.last_updated).desc(), col(Token.id).asc())
        .offset(skip)
        .limit(limit)
    )
    tokens = list((await session.exec(stmt)).all())
    total = await count_tokens(session, list_type=list_type)
    return TokenPage(tokens=tokens, pagination=build_pagination(page, limit, total))


async def count_tokens(session: AsyncSession, list_type: str | None = None) -> int:
    stmt = select(func.count()).select_from(Token).where(Token.is_active == True)  # noqa: E712
    if list_type:
        stmt = stmt.where(Token.list_type == list_type)
    return int((await session.exec(stmt)).one())


async def get_token_by_address(session: AsyncSession, address: str) -> Token | None:
    stmt = select(Token).where(
        Token.address == address.lower(),
        Token.is_active == True,  # noqa: E712
    )
    return (await session.exec(stmt)).first()


async def get_tokens_by_addresses(session: AsyncSession, addresses: Iterable[str]) -> list[Token]:
    normalized = [address.lower() for address in addresses]
    if not normalized:
        return []
    stmt = select(Token).where(
        col(Token.address).in_(normalized),
        Token.is_active == True,  # noqa: E712
    )
    return list((await session.exec(stmt)).all())


async def search_tokens(
    session: AsyncSession,
    query: str,
    list_type: str | None = None,
    limit: int = 20,
) -> list[Token]:
    """Регистронезависимый поиск подстроки по name/symbol/description."""

    stmt = select(Token).where(
        Token.is_active == True,  # noqa: E712
        or_(
            col(Token.name).icontains(query, autoescape=True),
            col(Token.symbol).icontains(query, autoescape=True),
            col(Token.description).icontains(query, autoescape=True),
        ),
    )
    if list_type:
        stmt = stmt.where(Token.list_type == list_type)
    stmt = stmt.order_by(col(Token.market_cap_numeric).desc(), col(Token.id).asc()).limit(limit)
    return list((await session.exec(stmt)).all())


async def get_top_tokens_by_market_cap(
    session: AsyncSession,
    list_type: str,
    limit: int = 10,
) -> list[Token]:
    stmt = (
        select(Token)
        .where(
            Token.list_type == list_type,
            Token.is_active == True,  # noqa: E712
            Token.market_cap_numeric > 0,
        )
        .order_by(col(Token.market_cap_numeric).desc())
        .limit(limit)
    )
    return list((await session.exec(stmt)).all())


async def get_trending_tokens(
    session: AsyncSession,
    list_type: str,
    limit: int = 10,
) -> list[Token]:
    stmt = (
        select(Token)
        .where(
            Token.list_type == list_type,
            Token.is_active == True,  # noqa: E712
            Token.volume_24h_numeric > 0,
        )
        .order_by(col(Token.volume_24h_numeric).desc())
        .limit(limit)
    )
    return list((await session.exec(stmt)).all())


async def aggregate_counts(session: AsyncSession) -> dict[str, int]:
    stmt = (
        select(Token.list_type, func.count())
        .where(Token.is_active == True)  # noqa: E712
        .group_by(Token.list_type)
    )
    return {list_type: int(count) for list_type, count in (await session.exec(stmt)).all()}


async def get_stats(session: AsyncSession) -> StoreStats:
    since = datetime.now(timezone.utc) - timedelta(hours=24)
    recent_stmt = select(func.count()).select_from(Token).where(
        Token.is_active == True,  # noqa: E712
        Token.last_updated >= since,
    )
    return StoreStats(
        total_tokens=await count_tokens(session),
        by_list_type=await aggregate_counts(session),
        recent_tokens=int((await session.exec(recent_stmt)).one()),
    )


async def deactivate_stale_tokens(session: AsyncSession, days_old: int = 7) -> int:
    """Мягко удаляет (is_active=False) записи старше days_old дней."""

    cutoff = datetime.now(timezone.utc) - timedelta(days=days_old)
    stmt = (
        update(Token)
        .where(Token.is_active == True, Token.last_updated < cutoff)  # noqa: E712
        .values(is_active=False)
    )
    try:
        cleaned = (await session.exec(stmt)).rowcount or 0
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError(f"Failed to cleanup tokens: {exc}") from exc
    logger.info("Деактивировано {count} устаревших токенов", count=cleaned)
    return cleaned


def _dedupe(tokens: Sequence[Token]) -> list[Token]:
    by_id: dict[str, Token] = {}
    anonymous: list[Token] = []
    for token in tokens:
        if token.zora_id:
            by_id.pop(token.zora_id, None)
            by_id[token.zora_id] = token
        else:
            anonymous.append(token)
    return [*by_id.values(), *anonymous]


__all__ = [
    "Pagination",
    "ReplaceResult",
    "StoreError",
    "StoreStats",
    "TokenPage",
    "aggregate_counts",
    "build_pagination",
    "count_tokens",
    "deactivate_stale_tokens",
    "get_stats",
    "get_token_by_address",
    "get_tokens_by_addresses",
    "get_tokens_by_list_type",
    "get_top_tokens_by_market_cap",
    "get_trending_tokens",
    "replace_category",
    "search_tokens",
]
