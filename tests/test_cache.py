import pytest

from config.settings import AppSettings, CacheSettings, DatabaseSettings
from swiper.context import build_context
from swiper.utils.cache import build_cache


def test_each_cache_follows_its_own_settings():
    short = build_cache(CacheSettings(ttl_seconds=5))
    long = build_cache(CacheSettings(ttl_seconds=600))

    assert short is not long
    assert (short.ttl, long.ttl) == (5, 600)


def test_redis_backend_requires_dsn():
    with pytest.raises(RuntimeError, match="redis_dsn"):
        build_cache(CacheSettings(backend="redis"))
    with pytest.raises(ValueError, match="http"):
        build_cache(CacheSettings(backend="redis", redis_dsn="http://localhost:6379"))


def test_contexts_do_not_share_cache(tmp_path):
    database = DatabaseSettings(dsn=f"sqlite+aiosqlite:///{tmp_path / 'swiper.db'}")
    first = build_context(AppSettings(database=database, cache=CacheSettings(ttl_seconds=10)))
    second = build_context(AppSettings(database=database, cache=CacheSettings(ttl_seconds=20)))

    assert first.cache is not second.cache
    assert (first.cache.ttl, second.cache.ttl) == (10, 20)
    assert first.rate_limiters["api"]._cache is first.cache
