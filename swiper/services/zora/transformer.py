"""Преобразование ответа Zora explore в записи Token.

Функции модуля чистые: без I/O и без исключений на кривых данных. Битый
узел всё равно попадает в выборку с пустыми значениями по умолчанию.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from swiper.models import (
    CreatorProfile,
    MediaContent,
    PoolCurrencyToken,
    Token,
    TokenPrice,
    UniswapV4PoolKey,
    ZoraModel,
)

DEFAULT_CHAIN_ID = 8453
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


def transform_tokens(
    data: dict[str, Any] | None,
    list_type: str,
    *,
    now: datetime | None = None,
) -> list[Token]:
    """Маппит ``exploreList.edges[].node`` в список Token одной категории."""

    explore = data.get("exploreList") if isinstance(data, dict) else None
    edges = explore.get("edges") if isinstance(explore, dict) else None
    if not isinstance(edges, list):
        return []
    return transform_edges(edges, list_type, now=now)


def transform_edges(edges: list[Any], list_type: str, *, now: datetime | None = None) -> list[Token]:
    stamp = now or datetime.now(timezone.utc)
    return [transform_node(_node_of(edge), list_type, now=stamp) for edge in edges]


def transform_node(node: dict[str, Any], list_type: str, *, now: datetime) -> Token:
    market_cap = _text(node.get("marketCap"))
    volume_24h = _text(node.get("volume24h"))
    unique_holders = _text(node.get("uniqueHolders"))
    address = _text(node.get("address"))
    return Token(
        zora_id=_text(node.get("id")),
        name=_text(node.get("name")),
        description=_text(node.get("description")),
        address=address.lower() if address else None,
        symbol=_text(node.get("symbol")),
        total_supply=_text(node.get("totalSupply")),
        total_volume=_text(node.get("totalVolume")),
        volume_24h=volume_24h,
        created_at=_parse_datetime(node.get("createdAt")),
        creator_address=_text(node.get("creatorAddress")),
        pool_currency_token=_nested(PoolCurrencyToken, node.get("poolCurrencyToken")),
        token_price=_nested(TokenPrice, node.get("tokenPrice")),
        market_cap=market_cap,
        market_cap_delta_24h=_text(node.get("marketCapDelta24h")),
        chain_id=_int(node.get("chainId")) or DEFAULT_CHAIN_ID,
        token_uri=_text(node.get("tokenUri")),
        platform_referrer_address=_text(node.get("platformReferrerAddress")),
        payout_recipient_address=_text(node.get("payoutRecipientAddress")),
        creator_profile=_nested(CreatorProfile, node.get("creatorProfile")),
        media_content=_nested(MediaContent, node.get("mediaContent")),
        unique_holders=unique_holders,
        uniswap_v4_pool_key=_nested(UniswapV4PoolKey, node.get("uniswapV4PoolKey")),
        list_type=list_type,
        last_updated=now,
        is_active=True,
        market_cap_numeric=_number(market_cap),
        volume_24h_numeric=_number(volume_24h),
        unique_holders_numeric=_number(unique_holders),
    )


def _node_of(edge: Any) -> dict[str, Any]:
    node = edge.get("node") if isinstance(edge, dict) else None
    return node if isinstance(node, dict) else {}


def _nested(model: type[ZoraModel], value: Any) -> dict[str, Any] | None:
    if not isinstance(value, dict):
        return None
    try:
        return model.model_validate(value).model_dump(by_alias=True, exclude_none=True)
    except ValidationError:
        return None


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _int(value: Any) -> int | None:
    """Целое в пределах SQLite INTEGER, иначе None."""

    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            number = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None
    if not INT64_MIN <= number <= INT64_MAX:
        return None
    return number


def _number(value: str | None) -> float:
    """parseFloat-подобное приведение: мусор и NaN дают 0."""

    if not value:
        return 0.0
    try:
        number = float(value)
    except ValueError:
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["transform_edges", "transform_node", "transform_tokens"]
