"""Tests for the Redis analysis cache."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from lotwise.services.cache import (
    TTL_ANALYSIS,
    _make_key,
    analysis_cache_id,
    cache_get,
    cache_set,
    fingerprint,
    get_cached_analysis,
    set_cached_analysis,
)

INPUTS = {"address": "1 Main St", "municipality": "Vancouver", "lot_size_sqft": 6820}


class TestKeys:
    def test_make_key(self):
        assert _make_key("analysis", "abc") == "lotwise:analysis:abc"

    def test_fingerprint_stable_across_key_order(self):
        reordered = {"lot_size_sqft": 6820, "municipality": "Vancouver", "address": "1 Main St"}
        assert fingerprint(INPUTS, "v1") == fingerprint(reordered, "v1")

    def test_fingerprint_changes_with_rules_version(self):
        assert fingerprint(INPUTS, "v1") != fingerprint(INPUTS, "v2")

    def test_cache_id_normalizes_address(self):
        a = analysis_cache_id("1 Main St", "Vancouver", INPUTS, "v1")
        b = analysis_cache_id("  1  MAIN st ", "vancouver", INPUTS, "v1")
        assert a == b

    def test_cache_id_changes_with_inputs(self):
        a = analysis_cache_id("1 Main St", "Vancouver", INPUTS, "v1")
        b = analysis_cache_id("1 Main St", "Vancouver", {**INPUTS, "lot_size_sqft": 5000}, "v1")
        assert a != b


class TestRedisAccess:
    @pytest.mark.asyncio
    async def test_get_without_redis(self):
        with patch("lotwise.services.cache.get_redis", new=AsyncMock(return_value=None)):
            assert await cache_get("analysis", "abc") is None

    @pytest.mark.asyncio
    async def test_set_without_redis(self):
        with patch("lotwise.services.cache.get_redis", new=AsyncMock(return_value=None)):
            assert await cache_set("analysis", "abc", {"a": 1}) is False

    @pytest.mark.asyncio
    async def test_set_and_get(self):
        mock_redis = AsyncMock()
        mock_redis.get.return_value = '{"a": 1}'
        with patch("lotwise.services.cache.get_redis", new=AsyncMock(return_value=mock_redis)):
            assert await set_cached_analysis("abc", {"a": 1}) is True
            mock_redis.setex.assert_awaited_once_with("lotwise:analysis:abc", TTL_ANALYSIS, '{"a": 1}')
            assert await get_cached_analysis("abc") == {"a": 1}

    @pytest.mark.asyncio
    async def test_read_error_is_a_miss(self):
        mock_redis = AsyncMock()
        mock_redis.get.side_effect = ConnectionError("reset")
        with patch("lotwise.services.cache.get_redis", new=AsyncMock(return_value=mock_redis)):
            assert await cache_get("analysis", "abc") is None

    @pytest.mark.asyncio
    async def test_write_error_returns_false(self):
        mock_redis = AsyncMock()
        mock_redis.setex.side_effect = ConnectionError("reset")
        with patch("lotwise.services.cache.get_redis", new=AsyncMock(return_value=mock_redis)):
            assert await cache_set("analysis", "abc", {"a": 1}) is False
