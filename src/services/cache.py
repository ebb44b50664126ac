from __future__ import annotations

from dataclasses import dataclass
import threading
import time
from typing import Any, Callable, Dict, Generic, Mapping, TypeVar

T = TypeVar("T")

MISSING: Any = object()


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class _Namespace:
    def __init__(self, ttl: float):
        self.ttl = ttl
        self.entries: Dict[str, CacheEntry[Any]] = {}
        self.lock = threading.Lock()


class TTLCache:
    """Namespaced key/value cache with per-entry expiry.

    Expired entries are dropped when they are next read; there is no sweeper.
    Falsy values (0, False, None) are stored like any other value, so lookups
    take an explicit ``default`` to tell a cached negative apart from a miss.
    """

    def __init__(self, namespaces: Mapping[str, float], clock: Callable[[], float] = time.time):
        self._clock = clock
        self._namespaces = {name: _Namespace(ttl) for name, ttl in namespaces.items()}

    def _namespace(self, name: str) -> _Namespace:
        try:
            return self._namespaces[name]
        except KeyError:
            raise KeyError(f"unknown cache namespace: {name}") from None

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        ns = self._namespace(namespace)
        with ns.lock:
            entry = ns.entries.get(key)
            if entry is None:
                return default
            if self._clock() >= entry.expires_at:
                del ns.entries[key]
                return default
            return entry.value

    def set(self, namespace: str, key: str, value: Any, ttl: float | None = None) -> None:
        ns = self._namespace(namespace)
        expires_at = self._clock() + (ns.ttl if ttl is None else ttl)
        with ns.lock:
            ns.entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def get_or_load(self, namespace: str, key: str, loader: Callable[[], T]) -> T:
        """Return the cached value or call ``loader`` and cache what it returns.

        Loader exceptions propagate and nothing is cached.
        """
        value = self.get(namespace, key, MISSING)
        if value is not MISSING:
            return value
        value = loader()
        self.set(namespace, key, value)
        return value

    def size(self, namespace: str) -> int:
        ns = self._namespace(namespace)
        with ns.lock:
            return len(ns.entries)
