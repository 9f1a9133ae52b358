"""Redis cache in front of the ``domain_settings`` table.

Values are cached as the raw stored text (JSON encoded) and coerced by the
caller on every read, so a cache hit and a database hit go through the same
validation. Every operation degrades to a logged warning when Redis is
unreachable; the database stays authoritative.
"""

import json
import logging
from typing import Any, cast

import redis

from app.config import settings

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


def get_settings_redis() -> redis.Redis:
    """Lazily create the shared client from ``REDIS_URL``."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
    return _redis_client


class SettingsCache:
    """Per-key cache entries named ``settings:{domain}:{key}``.

    Entries expire after ``SETTINGS_CACHE_TTL`` seconds as a backstop;
    writers replace or evict them explicitly.
    """

    PREFIX = "settings:"

    @staticmethod
    def _cache_key(domain: str, key: str) -> str:
        return f"{SettingsCache.PREFIX}{domain}:{key}"

    @staticmethod
    def _decode(domain: str, key: str, value: str | None) -> Any | None:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Ignoring undecodable cache entry for %s.%s", domain, key)
            return None

    @staticmethod
    def get(domain: str, key: str) -> Any | None:
        """Return the cached raw value, or None on a miss or cache failure."""
        try:
            value = cast(str | None, get_settings_redis().get(SettingsCache._cache_key(domain, key)))
        except redis.RedisError as exc:
            logger.warning("Settings cache get failed for %s.%s: %s", domain, key, exc)
            return None
        return SettingsCache._decode(domain, key, value)

    @staticmethod
    def get_multi(domain: str, keys: list[str]) -> dict[str, Any]:
        """Fetch several keys in one round trip; misses are left out."""
        try:
            values = cast(
                list[str | None],
                get_settings_redis().mget([SettingsCache._cache_key(domain, k) for k in keys]),
            )
        except redis.RedisError as exc:
            logger.warning("Settings cache get_multi failed for %s: %s", domain, exc)
            return {}
        result = {}
        for key, value in zip(keys, values):
            decoded = SettingsCache._decode(domain, key, value)
            if decoded is not None:
                result[key] = decoded
        return result

    @staticmethod
    def set(domain: str, key: str, value: Any) -> bool:
        try:
            get_settings_redis().setex(
                SettingsCache._cache_key(domain, key),
                settings.settings_cache_ttl_seconds,
                json.dumps(value),
            )
            return True
        except redis.RedisError as exc:
            logger.warning("Settings cache set failed for %s.%s: %s", domain, key, exc)
        except (TypeError, ValueError) as exc:
            logger.warning("Settings cache could not encode %s.%s: %s", domain, key, exc)
        return False

    @staticmethod
    def prime(domain: str, key: str, value: Any) -> bool:
        """Cache a value read from the database unless the key is already set.

        A writer's value always wins over a reader that loaded an older row.
        """
        try:
            return bool(
                get_settings_redis().set(
                    SettingsCache._cache_key(domain, key),
                    json.dumps(value),
                    ex=settings.settings_cache_ttl_seconds,
                    nx=True,
                )
            )
        except redis.RedisError as exc:
            logger.warning("Settings cache prime failed for %s.%s: %s", domain, key, exc)
        except (TypeError, ValueError) as exc:
            logger.warning("Settings cache could not encode %s.%s: %s", domain, key, exc)
        return False

    @staticmethod
    def invalidate(domain: str, key: str) -> bool:
        try:
            get_settings_redis().delete(SettingsCache._cache_key(domain, key))
            return True
        except redis.RedisError as exc:
            logger.warning("Settings cache invalidate failed for %s.%s: %s", domain, key, exc)
        return False
