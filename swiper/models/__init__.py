"""SQLModel сущности Base Swiper."""

from .token import (  # noqa: F401
    CreatorCoin,
    CreatorProfile,
    MediaContent,
    PoolCurrencyToken,
    PreviewImage,
    ProfileAvatar,
    SocialAccount,
    SocialAccounts,
    Token,
    TokenPrice,
    TokenRead,
    UniswapV4PoolKey,
    ZoraModel,
)

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
