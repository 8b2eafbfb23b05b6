from datetime import datetime, timedelta, timezone

import pytest
from conftest import make_edges, make_node, make_tokens
from sqlmodel import SQLModel

from swiper import repositories as repo
from swiper.repositories import StoreError, build_pagination
from swiper.services.zora.transformer import transform_edges


async def test_replace_returns_exactly_the_new_set(session_maker):
    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", make_tokens(3))
        result = await repo.replace_category(session, "FEATURED", make_tokens(2, start=10))

    assert result.success is True
    assert result.deleted == 3
    assert result.inserted == 2

    async with session_maker() as session:
        page = await repo.get_tokens_by_list_type(session, "FEATURED", 1, 20)

    assert [token.zora_id for token in page.tokens] == ["coin-010", "coin-011"]
    assert page.pagination.total == 2


async def test_replace_does_not_touch_other_categories(session_maker):
    async with session_maker() as session:
        await repo.replace_category(session, "NEW", make_tokens(4, list_type="NEW", start=100))
        await repo.replace_category(session, "FEATURED", make_tokens(2))
        counts = await repo.aggregate_counts(session)

    assert counts == {"NEW": 4, "FEATURED": 2}


async def test_replace_moves_identifier_between_categories(session_maker):
    async with session_maker() as session:
        await repo.replace_category(session, "NEW", make_tokens(2, list_type="NEW"))
        result = await repo.replace_category(session, "FEATURED", make_tokens(1))
        counts = await repo.aggregate_counts(session)

    assert result.deleted == 1
    assert counts == {"NEW": 1, "FEATURED": 1}


async def test_replace_dedupes_batch_by_identifier(session_maker):
    now = datetime.now(timezone.utc)
    edges = make_edges(2) + [{"node": make_node(0, name="Coin zero v2")}]

    async with session_maker() as session:
        result = await repo.replace_category(session, "FEATURED", transform_edges(edges, "FEATURED", now=now))
        token = await repo.get_token_by_address(session, make_node(0)["address"])

    assert result.inserted == 2
    assert result.total == 3
    assert token.name == "Coin zero v2"


async def test_replace_with_empty_batch_keeps_store(session_maker):
    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", make_tokens(3))
        result = await repo.replace_category(session, "FEATURED", [])
        total = await repo.count_tokens(session, "FEATURED")

    assert result.success is False
    assert result.message == "No tokens to store"
    assert total == 3


async def test_replace_surfaces_store_errors(engine, session_maker):
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    async with session_maker() as session:
        with pytest.raises(StoreError, match="Failed to replace FEATURED tokens"):
            await repo.replace_category(session, "FEATURED", make_tokens(1))


async def test_pagination_windows(session_maker):
    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", make_tokens(45))
        first = await repo.get_tokens_by_list_type(session, "FEATURED", page=1, limit=20)
        last = await repo.get_tokens_by_list_type(session, "FEATURED", page=3, limit=20)

    assert [t.zora_id for t in first.tokens] == [f"coin-{i:03d}" for i in range(20)]
    assert first.pagination.has_next is True
    assert first.pagination.has_prev is False
    assert first.pagination.pages == 3

    assert [t.zora_id for t in last.tokens] == [f"coin-{i:03d}" for i in range(40, 45)]
    assert last.pagination.has_next is False
    assert last.pagination.has_prev is True


def test_build_pagination_arithmetic():
    assert build_pagination(2, 20, 45).as_dict() == {
        "page": 2,
        "limit": 20,
        "total": 45,
        "pages": 3,
        "hasNext": True,
        "hasPrev": True,
    }
    empty = build_pagination(1, 20, 0)
    assert (empty.pages, empty.has_next, empty.has_prev) == (0, False, False)


async def test_address_lookup_is_case_insensitive(session_maker):
    mixed = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
    tokens = transform_edges([{"node": make_node(1, address=mixed)}], "FEATURED")

    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", tokens)
        upper = await repo.get_token_by_address(session, mixed.upper().replace("0X", "0x"))
        lower = await repo.get_token_by_address(session, mixed.lower())
        many = await repo.get_tokens_by_addresses(session, [mixed])

    assert upper is not None and lower is not None
    assert upper.id == lower.id
    assert upper.address == mixed.lower()
    assert [token.id for token in many] == [upper.id]


async def test_search_matches_name_symbol_description(session_maker):
    edges = [
        {"node": make_node(1, name="Based Frog", symbol="FROG", marketCap="10")},
        {"node": make_node(2, name="Other", symbol="based", marketCap="500")},
        {"node": make_node(3, name="Third", symbol="T3", description="the BASED one", marketCap="50")},
        {"node": make_node(4, name="Unrelated", symbol="UN", description="nothing")},
    ]
    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", transform_edges(edges, "FEATURED"))
        found = await repo.search_tokens(session, "bAsEd")
        limited = await repo.search_tokens(session, "based", limit=1)
        other_category = await repo.search_tokens(session, "based", list_type="NEW")

    assert [token.zora_id for token in found] == ["coin-002", "coin-003", "coin-001"]
    assert [token.zora_id for token in limited] == ["coin-002"]
    assert other_category == []


async def test_search_escapes_like_wildcards(session_maker):
    edges = [
        {"node": make_node(1, name="100% organic")},
        {"node": make_node(2, name="plain")},
    ]
    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", transform_edges(edges, "FEATURED"))
        found = await repo.search_tokens(session, "0%")

    assert [token.zora_id for token in found] == ["coin-001"]


async def test_top_and_trending_order_and_filter(session_maker):
    edges = [
        {"node": make_node(1, marketCap="0", volume24h="300")},
        {"node": make_node(2, marketCap="900", volume24h="0")},
        {"node": make_node(3, marketCap="100", volume24h="50")},
    ]
    async with session_maker() as session:
        await repo.replace_category(session, "FEATURED", transform_edges(edges, "FEATURED"))
        top = await repo.get_top_tokens_by_market_cap(session, "FEATURED")
        trending = await repo.get_trending_tokens(session, "FEATURED", limit=5)

    assert [token.zora_id for token in top] == ["coin-002", "coin-003"]
    assert [token.zora_id for token in trending] == ["coin-001", "coin-003"]


async def test_stale_tokens_are_soft_deleted_and_hidden(session_maker):
    old = datetime.now(timezone.utc) - timedelta(days=10)
    async with session_maker() as session:
        await repo.replace_category(session, "NEW", make_tokens(2, list_type="NEW", start=50, now=old))
        await repo.replace_category(session, "FEATURED", make_tokens(3))
        cleaned = await repo.deactivate_stale_tokens(session, days_old=7)
        stats = await repo.get_stats(session)
        hidden = await repo.get_token_by_address(session, make_node(50)["address"])

    assert cleaned == 2
    assert hidden is None
    assert stats.total_tokens == 3
    assert stats.by_list_type == {"FEATURED": 3}
    assert stats.recent_tokens == 3
    assert stats.as_dict()["totalTokens"] == 3


async def test_oversized_holder_count_is_stored_as_text(session_maker):
    edges = make_edges(2) + [{"node": make_node(2, uniqueHolders="1e20", chainId=10**20)}]

    async with session_maker() as session:
        result = await repo.replace_category(session, "FEATURED", transform_edges(edges, "FEATURED"))
        token = await repo.get_token_by_address(session, make_node(2)["address"])

    assert result.inserted == 3
    assert token.unique_holders == "1e20"
    assert token.unique_holders_numeric == 1e20
    assert token.chain_id == 8453
    assert token.as_dict()["uniqueHolders"] == "1e20"


async def test_insert_driver_error_becomes_store_error(session_maker):
    tokens = make_tokens(2)
    tokens[1].chain_id = 10**20

    async with session_maker() as session:
        with pytest.raises(StoreError, match="Failed to replace FEATURED tokens"):
            await repo.replace_category(session, "FEATURED", tokens)
