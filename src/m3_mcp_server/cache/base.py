# Copyright contributors to the Material 3 MCP Server project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
TTL key-value cache shared by the in-memory and persistent caches.

Entries are stored as ``{"data": value, "timestamp": written_at_ms, "ttl": seconds}``.
An entry is expired when ``now - timestamp > ttl * 1000``, or when its TTL is
zero or negative. Expired entries are never returned; they are removed when
read or when ``prune()`` sweeps the cache.

Values are deep-copied on write and on read, so callers mutating what they
stored or got back never change the cached entry.
"""

import copy
import inspect
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    TypeVar,
    Union,
)

from m3_mcp_server.utils.common import PartitionStats, now_ms
from m3_mcp_server.utils.constants import DEFAULT_CACHE_TTL

# Logger for this module
logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class TtlCache:
    """
    Key-value cache with per-entry expiry and hit/miss/write statistics.

    Subclasses decide where entries live by overriding ``_flush`` (called after
    every mutation) and ``_reset_storage`` (called by ``clear``).
    """

    def __init__(
        self,
        name: str,
        default_ttl: int = DEFAULT_CACHE_TTL,
        enabled: Optional[Callable[[], bool]] = None,
        clock: Callable[[], int] = now_ms,
        reserved_keys: Iterable[str] = (),
    ):
        """
        Initialize the cache.

        Args:
            name: Name of the cache, used in logs and as the partition name
            default_ttl: TTL in seconds used when ``set`` is called without one
            enabled: Callable consulted on every get/set; when it returns False
                the cache neither returns nor stores anything
            clock: Callable returning the current time in milliseconds
            reserved_keys: Bookkeeping keys excluded from ``keys()`` and ``size()``
        """
        self.name = name
        self.default_ttl = default_ttl
        self._is_enabled = enabled or (lambda: True)
        self._clock = clock
        self._reserved_keys = frozenset(reserved_keys)
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._stats = {"hits": 0, "misses": 0, "writes": 0}

    def _flush(self) -> None:
        """Persist the current entries. No-op for purely in-memory caches."""

    def _reset_storage(self) -> None:
        """Replace the entry mapping with a new, empty one."""
        self._entries = {}

    def _is_expired(self, entry: Dict[str, Any], now: int) -> bool:
        ttl = entry["ttl"]
        return ttl <= 0 or now - entry["timestamp"] > ttl * 1000

    def _lookup(self, key: str) -> Any:
        """Return the live value for key or _MISSING, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING

        now = self._clock()
        if self._is_expired(entry, now):
            del self._entries[key]
            self._flush()
            logger.debug(
                "Cache EXPIRED: %s:%s (age: %ds)",
                self.name,
                key,
                (now - entry["timestamp"]) // 1000,
            )
            return _MISSING
        return copy.deepcopy(entry["data"])

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a value from the cache if present and not expired.

        Args:
            key: The cache key
            default: Returned when the key is absent, expired or caching is off

        Returns:
            The cached value, or default
        """
        if not self._is_enabled():
            return default

        value = self._lookup(key)
        if value is _MISSING:
            self._stats["misses"] += 1
            logger.debug("Cache MISS: %s:%s", self.name, key)
            return default

        self._stats["hits"] += 1
        logger.debug("Cache HIT: %s:%s", self.name, key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """
        Store a value, replacing any existing entry for the key.

        Args:
            key: The cache key
            value: The value to store
            ttl_seconds: Seconds the entry stays valid. Defaults to ``default_ttl``.
        """
        if not self._is_enabled():
            return

        self.put(key, value, ttl_seconds)
        self._stats["writes"] += 1
        logger.debug(
            "Cache SET: %s:%s (TTL: %ss)",
            self.name,
            key,
            ttl_seconds if ttl_seconds is not None else self.default_ttl,
        )

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def peek(self, key: str, default: Any = None) -> Any:
        """
        Read an entry ignoring the caching toggle and statistics.

        Used for bookkeeping records that must survive even when caching is off.
        Expired entries are still treated as absent.
        """
        value = self._lookup(key)
        return default if value is _MISSING else value

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Write an entry ignoring the caching toggle and statistics."""
        self._entries[key] = {
            "data": copy.deepcopy(value),
            "timestamp": self._clock(),
            "ttl": ttl_seconds if ttl_seconds is not None else self.default_ttl,
        }
        self._flush()

    def delete(self, key: str) -> None:
        if self._entries.pop(key, None) is not None:
            self._flush()
            logger.debug("Cache DEL: %s:%s", self.name, key)

    def clear(self) -> None:
        """Remove every entry and reset the statistics."""
        self._reset_storage()
        self._stats = {"hits": 0, "misses": 0, "writes": 0}
        logger.info("Cache cleared: %s", self.name)

    def keys(self) -> List[str]:
        """Keys of live entries, excluding reserved bookkeeping keys."""
        now = self._clock()
        return [
            key
            for key, entry in self._entries.items()
            if key not in self._reserved_keys and not self._is_expired(entry, now)
        ]

    def size(self) -> int:
        return len(self.keys())

    def prune(self) -> int:
        """
        Remove all expired entries.

        Returns:
            The number of entries removed
        """
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if self._is_expired(entry, now)
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            self._flush()
            logger.info(
                "Pruned %d expired cache entries from %s", len(expired), self.name
            )
        return len(expired)

    def get_stats(self) -> PartitionStats:
        hits = self._stats["hits"]
        misses = self._stats["misses"]
        total = hits + misses
        hit_rate = f"{hits / total * 100:.2f}%" if total > 0 else "0%"

        return PartitionStats(
            hits=hits,
            misses=misses,
            writes=self._stats["writes"],
            hit_rate=hit_rate,
            size=self.size(),
        )

    async def wrap(
        self,
        key: str,
        compute_fn: Callable[[], Union[T, Awaitable[T]]],
        ttl_seconds: Optional[int] = None,
    ) -> T:
        """
        Return the cached value for key, computing and storing it on a miss.

        Concurrent callers missing the same key each run compute_fn; the last
        write wins.

        Args:
            key: The cache key
            compute_fn: Sync or async callable producing the value
            ttl_seconds: TTL for the stored value

        Returns:
            The cached or freshly computed value
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        value = compute_fn()
        if inspect.isawaitable(value):
            value = await value

        self.set(key, value, ttl_seconds)
        return value
