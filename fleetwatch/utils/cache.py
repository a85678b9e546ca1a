import time
from typing import Any, Callable, Dict, Optional

from fleetwatch.utils.timeutils import from_epoch

ALL_FLEETS = "all"


class CacheEntry:
    __slots__ = ("value", "inserted_at", "ttl")

    def __init__(self, value: Any, inserted_at: float, ttl: float):
        self.value = value
        self.inserted_at = inserted_at
        self.ttl = ttl

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


class ResultCache:
    """
    Process-local expiring key/value store for analytics results.

    - get() evicts lazily: an entry read after its TTL is dropped and reported absent
    - set() sweeps every expired entry once the cache grows past max_entries
    - invalidate() drops all keys matching a predicate

    The cache is not thread-safe; it is only touched from the event loop.
    """

    def __init__(self, max_entries: int = 100, clock: Callable[[], float] = time.time):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float):
        self._entries[key] = CacheEntry(value, self._clock(), ttl_seconds)

        if len(self._entries) > self.max_entries:
            self.cleanup_expired()

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate(self, predicate: Callable[[str], bool]) -> int:
        matching = [key for key in self._entries if predicate(key)]
        for key in matching:
            del self._entries[key]
        return len(matching)

    def clear(self):
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        inserted = [entry.inserted_at for entry in self._entries.values()]
        return {
            "size": len(self._entries),
            "keys": list(self._entries.keys()),
            "oldestEntry": from_epoch(min(inserted)) if inserted else None,
            "newestEntry": from_epoch(max(inserted)) if inserted else None,
        }


def _normalize(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(sorted(_normalize(item) for item in value))
    return str(value)


def build_cache_key(operation: str, fleet_id: Optional[str] = None, **params: Any) -> str:
    """
    Build a deterministic cache key, e.g. ``fleet_analytics|fleet=F1|time_window=24``.

    The fleet segment always comes first and falls back to ``all``; remaining
    parameters are sorted by name and parameters set to None are written as ``all``.
    """
    parts = [operation, f"fleet={fleet_id or ALL_FLEETS}"]
    for name in sorted(params):
        value = params[name]
        parts.append(f"{name}={ALL_FLEETS if value is None else _normalize(value)}")
    return "|".join(parts)


def fleet_scope(fleet_id: Optional[str]) -> Callable[[str], bool]:
    """Predicate matching keys cached for ``fleet_id`` or for all fleets.

    With no fleet id every key matches.
    """
    if not fleet_id:
        return lambda key: True

    wanted = {f"fleet={fleet_id}", f"fleet={ALL_FLEETS}"}

    def matches(key: str) -> bool:
        segments = key.split("|")
        return len(segments) > 1 and segments[1] in wanted

    return matches
