"""
Redis caching layer for finished parcel analyses.

Keys combine the normalized address, municipality and a fingerprint of the
request inputs plus the rule-table version, so a table update never serves a
stale report.

TTLs:
  - Comprehensive reports: 1 hour
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Optional

import redis.asyncio as redis

from lotwise.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None

# TTLs in seconds
TTL_ANALYSIS = 3600     # 1 hour


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis client. Returns None if Redis is not configured or unreachable."""
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    redis_url = settings.redis_url
    if not redis_url:
        return None

    try:
        _redis_client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
        )
        await _redis_client.ping()
        return _redis_client
    except Exception as exc:
        logger.debug("Redis unavailable at %s: %s", redis_url, exc)
        _redis_client = None
        return None


def _make_key(prefix: str, identifier: str) -> str:
    """Build a cache key."""
    return f"lotwise:{prefix}:{identifier}"


def _normalize_address(address: str) -> str:
    return " ".join((address or "").lower().split())


def fingerprint(inputs: dict, rules_version: str) -> str:
    """Stable hash of request inputs and rule-table version."""
    payload = json.dumps({"inputs": inputs, "rules": rules_version}, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode()).hexdigest()


def analysis_cache_id(address: str, municipality: str, inputs: dict, rules_version: str) -> str:
    raw = "|".join([
        _normalize_address(address),
        " ".join((municipality or "").lower().split()),
        fingerprint(inputs, rules_version),
    ])
    return hashlib.sha256(raw.encode()).hexdigest()


async def cache_get(prefix: str, identifier: str) -> Optional[dict]:
    """Get a cached value. Returns None on miss or Redis unavailable."""
    r = await get_redis()
    if not r:
        return None
    try:
        val = await r.get(_make_key(prefix, identifier))
        if val:
            return json.loads(val)
    except Exception as exc:
        logger.warning("Cache read failed for %s:%s: %s", prefix, identifier, exc)
    return None


async def cache_set(prefix: str, identifier: str, data: dict, ttl: int = TTL_ANALYSIS) -> bool:
    """Set a cached value. Returns True on success."""
    r = await get_redis()
    if not r:
        return False
    try:
        await r.setex(_make_key(prefix, identifier), ttl, json.dumps(data, default=str))
        return True
    except Exception as exc:
        logger.warning("Cache write failed for %s:%s: %s", prefix, identifier, exc)
        return False


# ──────────────────────────────────────────────────────────────────
# CONVENIENCE FUNCTIONS
# ──────────────────────────────────────────────────────────────────

async def get_cached_analysis(cache_id: str) -> Optional[dict]:
    return await cache_get("analysis", cache_id)


async def set_cached_analysis(cache_id: str, data: dict) -> bool:
    return await cache_set("analysis", cache_id, data, TTL_ANALYSIS)
