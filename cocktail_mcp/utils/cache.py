"""Bounded TTL cache utility.

This module provides a thin, typed wrapper over :class:`cachetools.Cache`
with a minimal API for `get`/`set`. Capacity accounting is delegated to
``cachetools``; the wrapper adds per-entry expiry and swaps the eviction
choice so that, under capacity pressure, the entry closest to expiring goes
first (ties: oldest insertion). Reads never renew an entry's TTL.

The cache is purely in-memory and synchronous. No method awaits, so two
asyncio tasks can never interleave inside a single cache operation.
"""

from __future__ import annotations

import itertools
import json
import logging
import time
from collections.abc import Hashable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Tuple, TypeVar

from cachetools import Cache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_SIZE = 1000


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Stored value plus its absolute expiry on the cache timer."""

    value: V
    expires_at: float
    seq: int

    @property
    def eviction_order(self) -> Tuple[float, int]:
        return (self.expires_at, self.seq)


class _ExpiryOrderedCache(Cache):
    """``cachetools.Cache`` that evicts the earliest-expiring entry."""

    def popitem(self) -> Tuple[Any, Any]:
        try:
            key = min(self, key=lambda k: self[k].eviction_order)
        except ValueError:
            raise KeyError(f"{type(self).__name__} is empty") from None
        return (key, self.pop(key))


class TTLCache(Generic[K, V]):
    """Key/value cache with expiry and a hard capacity.

    Parameters
    ----------
    maxsize: int
        Maximum number of entries to retain. Inserting a new key into a full
        cache evicts exactly one entry: the one with the earliest expiry.
    ttl: float
        Default time-to-live in seconds applied by :meth:`set`.
    timer: Callable[[], float]
        Clock used for expiry bookkeeping. Tests inject a fake clock.
    """

    def __init__(
        self,
        maxsize: int = DEFAULT_MAX_SIZE,
        ttl: float = DEFAULT_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._cache: _ExpiryOrderedCache = _ExpiryOrderedCache(maxsize=maxsize)
        self._ttl = float(ttl)
        self._timer = timer
        self._seq = itertools.count()

    @property
    def maxsize(self) -> int:
        return self._cache.maxsize

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: K) -> Optional[V]:
        """Return value for `key`, or None if missing or expired.

        An expired entry is removed on the way out (lazy expiry). A hit does
        not touch the entry's expiry.
        """
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._timer() >= entry.expires_at:
            del self._cache[key]
            logger.debug("cache.expired", extra={"key": str(key)})
            return None
        return entry.value

    def set(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        """Insert or overwrite `key`.

        Overwriting replaces both value and expiry; TTLs never accumulate.
        """
        ttl = self._ttl if ttl is None else float(ttl)
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        evicting = key not in self._cache and len(self._cache) >= self.maxsize
        self._cache[key] = CacheEntry(
            value=value, expires_at=self._timer() + ttl, seq=next(self._seq)
        )
        if evicting:
            logger.debug("cache.evicted", extra={"size": len(self._cache)})

    def delete(self, key: K) -> bool:
        """Remove `key`; return True if it was present."""
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        self._cache.clear()

    def expire(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._timer()
        stale = [k for k, entry in self._cache.items() if now >= entry.expires_at]
        for k in stale:
            del self._cache[k]
        return len(stale)

    def __contains__(self, key: object) -> bool:
        entry = self._cache.get(key)
        return entry is not None and self._timer() < entry.expires_at

    def __len__(self) -> int:
        return len(self._cache)


def canonical_key(params: Mapping[str, Any]) -> str:
    """Serialize query parameters into a stable cache key.

    Keys are sorted and ``None`` values dropped, so ``{"a": 1, "b": None}``
    and ``{"a": 1}`` share a key.
    """
    cleaned = {k: v for k, v in params.items() if v is not None}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)
