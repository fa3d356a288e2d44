import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class CacheTTL:
    SHORT = 30
    MEDIUM = 60
    LONG = 300
    EXTENDED = 900


class CacheKeys:
    @staticmethod
    def daily_stats(day: str) -> str:
        return f"stats:daily:{day}"

    @staticmethod
    def restaurant_stats(restaurant_id: int, day: str) -> str:
        return f"stats:restaurant:{restaurant_id}:{day}"

    @staticmethod
    def leaderboard(limit: int) -> str:
        return f"stats:leaderboard:{limit}"

    @staticmethod
    def driver_ratings(driver_id: int) -> str:
        return f"ratings:driver:{driver_id}"


@dataclass
class _Entry:
    value: Any
    expires_at: float


class MemoryCache:
    """
    In-process TTL cache for memoized reads.

    Constructed once per application and passed to the services that use it.
    `clock` returns seconds; tests pass a fake to control expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float = CacheTTL.MEDIUM) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl_seconds: float = CacheTTL.MEDIUM,
    ) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await factory()
        self.set(key, value, ttl_seconds)
        return value

    def invalidate(self, pattern: str) -> None:
        """Drop one key, or every key sharing a prefix when `pattern` ends in `*`."""
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            for key in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[key]
        else:
            self._entries.pop(pattern, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        hit_rate = f"{self.hits / total * 100:.2f}%" if total else "0%"
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": len(self._entries),
            "hit_rate": hit_rate,
        }


class NullCache(MemoryCache):
    """Never stores anything; every read goes to the factory."""

    def set(self, key: str, value: Any, ttl_seconds: float = CacheTTL.MEDIUM) -> None:
        return None
