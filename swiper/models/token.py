"""Токен из explore-листов Zora.

Вложенные документы Zora (профиль автора, медиа, пул Uniswap v4) описаны
явными pydantic-моделями с необязательными полями и хранятся в JSON-колонках
в camelCase, как их отдаёт upstream.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict
from pydantic import Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Index
from sqlmodel import Column, Field

from .base import TimeStampedModel


class ZoraModel(BaseModel):
    """Общая конфигурация вложенных структур Zora (camelCase, лишние поля игнорируем)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class PreviewImage(ZoraModel):
    blurhash: Optional[str] = None
    medium: Optional[str] = None
    small: Optional[str] = None


class ProfileAvatar(ZoraModel):
    preview_image: Optional[PreviewImage] = None


class SocialAccount(ZoraModel):
    username: Optional[str] = None
    display_name: Optional[str] = None
    id: Optional[str] = None


class SocialAccounts(ZoraModel):
    instagram: Optional[SocialAccount] = None
    tiktok: Optional[SocialAccount] = None
    twitter: Optional[SocialAccount] = None
    farcaster: Optional[SocialAccount] = None


class CreatorCoin(ZoraModel):
    address: Optional[str] = None


class CreatorProfile(ZoraModel):
    """Профиль автора монеты."""

    id: Optional[str] = None
    handle: Optional[str] = None
    avatar: Optional[ProfileAvatar] = None
    social_accounts: Optional[SocialAccounts] = None
    creator_coin: Optional[CreatorCoin] = None


class PoolCurrencyToken(ZoraModel):
    address: Optional[str] = None
    name: Optional[str] = None
    decimals: Optional[int] = None


class TokenPrice(ZoraModel):
    price_in_usdc: Optional[str] = None
    currency_address: Optional[str] = None
    price_in_pool_token: Optional[str] = None


class MediaContent(ZoraModel):
    mime_type: Optional[str] = None
    original_uri: Optional[str] = None
    preview_image: Optional[PreviewImage] = None


class UniswapV4PoolKey(ZoraModel):
    token0_address: Optional[str] = None
    token1_address: Optional[str] = None
    fee: Optional[int] = None
    tick_spacing: Optional[int] = None
    hook_address: Optional[str] = None


class Token(TimeStampedModel, table=True):
    """Одна живая запись на zora_id; категория хранится в list_type."""

    __tablename__ = "tokens"
    __table_args__ = (
        Index("ix_tokens_address_list_type", "address", "list_type"),
        Index("ix_tokens_list_type_market_cap", "list_type", "market_cap_numeric"),
        Index("ix_tokens_list_type_volume", "list_type", "volume_24h_numeric"),
        Index("ix_tokens_list_type_created", "list_type", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    zora_id: Optional[str] = Field(default=None, max_length=128, unique=True, index=True)
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=128, index=True)
    symbol: Optional[str] = None
    total_supply: Optional[str] = None
    total_volume: Optional[str] = None
    volume_24h: Optional[str] = None
    created_at: Optional[datetime] = None
    creator_address: Optional[str] = Field(default=None, max_length=128)
    market_cap: Optional[str] = None
    market_cap_delta_24h: Optional[str] = None
    chain_id: int = Field(default=8453, index=True)
    token_uri: Optional[str] = None
    platform_referrer_address: Optional[str] = Field(default=None, max_length=128)
    payout_recipient_address: Optional[str] = Field(default=None, max_length=128)
    unique_holders: Optional[str] = None

    creator_profile: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    pool_currency_token: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    token_price: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    media_content: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    uniswap_v4_pool_key: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    list_type: str = Field(max_length=32, index=True)
    last_updated: datetime = Field(index=True)
    is_active: bool = Field(default=True, index=True)

    market_cap_numeric: float = Field(default=0.0, index=True)
    volume_24h_numeric: float = Field(default=0.0, index=True)
    unique_holders_numeric: float = Field(default=0.0, index=True)

    def as_dict(self) -> dict[str, Any]:
        return TokenRead.model_validate(self).model_dump(by_alias=True, mode="json")


def _camel(name: str, alias: str) -> Any:
    # to_camel даёт volume24H для volume_24h, поэтому алиас задаём явно
    return PydanticField(
        default=None,
        alias=alias,
        validation_alias=AliasChoices(alias, name),
    )


class TokenRead(ZoraModel):
    """Представление токена в ответах API (camelCase, как у upstream)."""

    id: Optional[int] = None
    zora_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    symbol: Optional[str] = None
    total_supply: Optional[str] = None
    total_volume: Optional[str] = None
    volume_24h: Optional[str] = _camel("volume_24h", "volume24h")
    created_at: Optional[datetime] = None
    creator_address: Optional[str] = None
    pool_currency_token: Optional[PoolCurrencyToken] = None
    token_price: Optional[TokenPrice] = None
    market_cap: Optional[str] = None
    market_cap_delta_24h: Optional[str] = _camel("market_cap_delta_24h", "marketCapDelta24h")
    chain_id: Optional[int] = None
    token_uri: Optional[str] = None
    platform_referrer_address: Optional[str] = None
    payout_recipient_address: Optional[str] = None
    creator_profile: Optional[CreatorProfile] = None
    media_content: Optional[MediaContent] = None
    unique_holders: Optional[str] = None
    uniswap_v4_pool_key: Optional[UniswapV4PoolKey] = None
    list_type: Optional[str] = None
    last_updated: Optional[datetime] = None
    is_active: Optional[bool] = None
    market_cap_numeric: Optional[float] = None
    volume_24h_numeric: Optional[float] = _camel("volume_24h_numeric", "volume24hNumeric")
    unique_holders_numeric: Optional[float] = None
    stored_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "CreatorCoin",
    "CreatorProfile",
    "MediaContent",
    "PoolCurrencyToken",
    "PreviewImage",
    "ProfileAvatar",
    "SocialAccount",
    "SocialAccounts",
    "Token",
    "TokenPrice",
    "TokenRead",
    "UniswapV4PoolKey",
    "ZoraModel",
]
