"""Репозитории для работы с БД."""

from .token_repo import (
    Pagination,
    ReplaceResult,
    StoreError,
    StoreStats,
    TokenPage,
    aggregate_counts,
    build_pagination,
    count_tokens,
    deactivate_stale_tokens,
    get_stats,
    get_token_by_address,
    get_tokens_by_addresses,
    get_tokens_by_list_type,
    get_top_tokens_by_market_cap,
    get_trending_tokens,
    replace_category,
    search_tokens,
)

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
