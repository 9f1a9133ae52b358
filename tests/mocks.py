"""Mock utilities for testing external dependencies."""

import redis


class FakeRedis:
    """In-memory stand-in for the settings cache client.

    Set ``fail`` to make every call raise ``redis.ConnectionError``.
    """

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False
        self.deleted: list[str] = []

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("cache unavailable")

    def get(self, key: str) -> str | None:
        self._check()
        return self.store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def set(self, key: str, value: str, ex: int | None = None, nx: bool = False) -> bool | None:
        self._check()
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            self.deleted.append(key)
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def mget(self, keys: list[str]) -> list[str | None]:
        self._check()
        return [self.store.get(key) for key in keys]
