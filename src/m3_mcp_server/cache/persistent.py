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
Disk-backed cache partitions.

Each partition is a single JSON file ``<cache_dir>/<name>.json`` holding a flat
``key -> {data, timestamp, ttl}`` mapping. The file is rewritten after every
mutation through a temporary file and ``os.replace`` while holding a
``filelock.FileLock``, so a crash right after ``set`` returns never leaves a
half-written partition behind.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator

from filelock import FileLock, Timeout

from m3_mcp_server.cache.base import TtlCache
from m3_mcp_server.utils.common import now_ms
from m3_mcp_server.utils.config import UserConfigManager
from m3_mcp_server.utils.constants import (
    CACHE_LOCK_TIMEOUT,
    CACHE_VERSION_KEY,
    COMPONENTS_PARTITION,
    DOCS_PARTITION,
    ICONS_PARTITION,
)

# Logger for this module
logger = logging.getLogger(__name__)

_ENTRY_FIELDS = ("data", "timestamp", "ttl")


class PersistentCache(TtlCache):
    """
    TTL cache whose entries survive process restarts.

    A missing, unreadable or corrupt partition file yields an empty cache.
    Write failures are logged and never raised: losing a cache entry is not
    fatal to the caller.
    """

    def __init__(self, name: str, cache_dir: Path, **kwargs):
        """
        Initialize the partition and load its entries from disk.

        Args:
            name: Partition name, also the file name
            cache_dir: Directory holding the partition files
            **kwargs: Passed through to TtlCache
        """
        super().__init__(name, **kwargs)
        self.cache_dir = Path(cache_dir)
        self.path = self.cache_dir / f"{name}.json"
        self._lock = FileLock(f"{self.path}.lock", timeout=CACHE_LOCK_TIMEOUT)

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create cache directory %s: %s", self.cache_dir, e)

        self._entries = self._load()
        logger.info(
            "Persistent cache initialized: %s (dir: %s, entries: %d)",
            name,
            self.cache_dir,
            len(self._entries),
        )

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}

        try:
            with self._lock:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
        except (OSError, ValueError, Timeout) as e:
            logger.error(
                "Cache file %s is unreadable, starting empty: %s", self.path, e
            )
            return {}

        if not isinstance(raw, dict):
            logger.error("Cache file %s is corrupt, starting empty", self.path)
            return {}

        entries = {}
        for key, entry in raw.items():
            if (
                isinstance(entry, dict)
                and all(field in entry for field in _ENTRY_FIELDS)
                and isinstance(entry["timestamp"], (int, float))
                and isinstance(entry["ttl"], (int, float))
            ):
                entries[key] = entry
            else:
                logger.warning("Dropping malformed cache entry %s:%s", self.name, key)
        return entries

    def _serialize(self) -> str:
        try:
            return json.dumps(self._entries)
        except (TypeError, ValueError):
            pass

        persistable = {}
        for key, entry in self._entries.items():
            try:
                json.dumps(entry)
            except (TypeError, ValueError) as e:
                logger.warning(
                    "Cache entry %s:%s is not JSON serializable, keeping it in memory only: %s",
                    self.name,
                    key,
                    e,
                )
                continue
            persistable[key] = entry
        return json.dumps(persistable)

    def _flush(self) -> None:
        try:
            payload = self._serialize()
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with self._lock:
                fd, tmp_path = tempfile.mkstemp(
                    dir=self.cache_dir, prefix=f".{self.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(payload)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self.path)
                except Exception:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
        except (OSError, TypeError, ValueError, Timeout) as e:
            logger.error("Failed to persist cache %s: %s", self.name, e)

    def _reset_storage(self) -> None:
        # Always a new mapping, never the old one emptied.
        self._entries = {}
        try:
            with self._lock:
                self.path.unlink(missing_ok=True)
        except (OSError, Timeout) as e:
            logger.error("Failed to delete cache file %s: %s", self.path, e)
        self._flush()


@dataclass
class CacheStores:
    """The three persistent cache partitions of the server."""

    components: PersistentCache
    icons: PersistentCache
    docs: PersistentCache

    @classmethod
    def create(cls, config: UserConfigManager, clock=now_ms) -> "CacheStores":
        """
        Create all partitions under the configured cache directory.

        Every partition consults ``config.is_cache_enabled`` on each get/set.
        """
        cache_dir = config.cache_dir
        return cls(
            components=PersistentCache(
                COMPONENTS_PARTITION,
                cache_dir,
                enabled=config.is_cache_enabled,
                clock=clock,
                reserved_keys=(CACHE_VERSION_KEY,),
            ),
            icons=PersistentCache(
                ICONS_PARTITION,
                cache_dir,
                enabled=config.is_cache_enabled,
                clock=clock,
            ),
            docs=PersistentCache(
                DOCS_PARTITION,
                cache_dir,
                enabled=config.is_cache_enabled,
                clock=clock,
            ),
        )

    def partitions(self) -> Dict[str, PersistentCache]:
        return {
            COMPONENTS_PARTITION: self.components,
            ICONS_PARTITION: self.icons,
            DOCS_PARTITION: self.docs,
        }

    def __iter__(self) -> Iterator[PersistentCache]:
        return iter(self.partitions().values())
