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
Cache versioning to keep cached upstream data fresh.

A single version record lives under ``cache:version`` in the components
partition. It holds the cache layout version, the time of the last upstream
check and a fingerprint of the upstream repositories' head commits. The whole
cache is invalidated when the recorded version differs from the running build,
or when the fingerprint changes. Upstream is queried at most once per check
interval, and a failed query never invalidates anything: serving stale data is
preferred over failing.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from m3_mcp_server.cache.persistent import CacheStores
from m3_mcp_server.utils.common import CacheHealth, Framework, now_ms
from m3_mcp_server.utils.constants import (
    CACHE_VERSION_KEY,
    CURRENT_CACHE_VERSION,
    VERSION_CHECK_INTERVAL_MS,
    VERSION_RECORD_TTL,
)

# Logger for this module
logger = logging.getLogger(__name__)


class CacheVersion(BaseModel):
    """The persisted cache version record."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(description="Cache layout version that wrote the cache")
    last_checked: int = Field(
        alias="lastChecked", description="Last upstream check, ms since epoch"
    )
    git_commit_sha: Optional[str] = Field(
        default=None,
        alias="gitCommitSha",
        description="Combined head commits of the upstream repositories",
    )


class FingerprintSource(Protocol):
    async def fetch_fingerprint(self) -> str: ...


def format_duration(ms: int) -> str:
    """Format a duration in milliseconds as e.g. '2d 3h', '1h 5m', '4m 10s' or '7s'."""
    seconds = max(ms, 0) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


class CacheVersionManager:
    """
    Owns the cache version record and decides when the whole cache is stale.

    Only this class clears partitions wholesale. Providers keep ordinary
    read/write access to individual entries.
    """

    def __init__(
        self,
        stores: CacheStores,
        fingerprint_source: FingerprintSource,
        clock: Callable[[], int] = now_ms,
        current_version: str = CURRENT_CACHE_VERSION,
        check_interval_ms: int = VERSION_CHECK_INTERVAL_MS,
    ):
        """
        Initialize the version manager.

        Args:
            stores: The cache partitions to manage
            fingerprint_source: Produces the upstream fingerprint (usually an
                UpstreamFingerprintChecker)
            clock: Callable returning the current time in milliseconds
            current_version: Cache version of the running build
            check_interval_ms: Minimum time between two upstream checks
        """
        self.stores = stores
        self.fingerprint_source = fingerprint_source
        self.current_version = current_version
        self.check_interval_ms = check_interval_ms
        self._clock = clock

    def get_version_record(self) -> Optional[CacheVersion]:
        raw = self.stores.components.peek(CACHE_VERSION_KEY)
        if raw is None:
            return None
        try:
            return CacheVersion.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring malformed cache version record: %s", str(e))
            return None

    def _write_version_record(self, record: CacheVersion) -> None:
        self.stores.components.put(
            CACHE_VERSION_KEY,
            record.model_dump(by_alias=True, exclude_none=True),
            VERSION_RECORD_TTL,
        )

    def _stamp_current_version(self, fingerprint: Optional[str] = None) -> None:
        self._write_version_record(
            CacheVersion(
                version=self.current_version,
                last_checked=self._clock(),
                git_commit_sha=fingerprint,
            )
        )
        logger.info("Cache version set: %s", self.current_version)

    async def check_cache_version(self, force: bool = False) -> bool:
        """
        Check whether the cache must be invalidated, and invalidate it if so.

        Safe to call often: upstream is only queried once the check interval
        has elapsed. A missing record or a version mismatch is handled without
        waiting for the interval.

        Args:
            force: Query upstream even if the check interval has not elapsed.
                Used for explicit requests from the agent.

        Returns:
            True if the cache was (re)initialized or invalidated by this call
        """
        stored = self.stores.components.peek(CACHE_VERSION_KEY)
        record = self.get_version_record()

        if record is None:
            if stored is not None:
                # Unreadable record: the state of the cache is unknown.
                self._clear_partitions()
            self._stamp_current_version()
            return True

        if record.version != self.current_version:
            logger.warning(
                "Cache version mismatch - clearing cache (stored: %s, current: %s)",
                record.version,
                self.current_version,
            )
            self._clear_partitions()
            self._stamp_current_version()
            return True

        if not force and self._clock() - record.last_checked <= self.check_interval_ms:
            return False

        logger.info("Checking for upstream changes")
        fingerprint = await self._fetch_fingerprint()

        # Another check may have updated the record while upstream was queried.
        current = self.get_version_record()
        if current != record:
            logger.debug("Cache version record changed during the upstream check")
            return False

        if (
            fingerprint is not None
            and record.git_commit_sha
            and record.git_commit_sha != fingerprint
        ):
            logger.warning(
                "Upstream changes detected - clearing cache (%s -> %s)",
                record.git_commit_sha,
                fingerprint,
            )
            self._clear_partitions()
            self._stamp_current_version(fingerprint)
            return True

        if fingerprint is not None:
            record.git_commit_sha = fingerprint
        record.last_checked = max(record.last_checked, self._clock())
        self._write_version_record(record)
        return False

    async def _fetch_fingerprint(self) -> Optional[str]:
        try:
            return await self.fingerprint_source.fetch_fingerprint()
        except Exception as e:
            # A failed check never invalidates.
            logger.error("Failed to check upstream changes: %s", str(e))
            return None

    def _clear_partitions(self) -> None:
        logger.warning("Invalidating all caches")
        for store in self.stores:
            store.clear()

    def invalidate_all_caches(self) -> None:
        """
        Clear every cache partition, keeping the version record.

        The recorded version, last check time and upstream fingerprint are
        written back, so a manual invalidation is not mistaken for an upstream
        change by the next check.
        """
        record = self.get_version_record()
        self._clear_partitions()
        if record is not None:
            self._write_version_record(record)

    def invalidate_component(
        self, component_name: str, framework: Union[Framework, str]
    ) -> str:
        """
        Remove the cached default variant of a single component.

        Args:
            component_name: The component name, e.g. "button"
            framework: "web" or "flutter"

        Returns:
            The cache key that was removed
        """
        key = f"{Framework(framework).value}:{component_name}:default"
        self.stores.components.delete(key)
        logger.info("Invalidated cache for %s", key)
        return key

    def needs_check(self) -> bool:
        """Whether the upstream check interval has elapsed (or no check ever ran)."""
        record = self.get_version_record()
        if record is None:
            return True
        return self._clock() - record.last_checked > self.check_interval_ms

    def get_cache_health(self) -> CacheHealth:
        """Read-only snapshot of the cache version, freshness and statistics."""
        record = self.get_version_record()
        elapsed = self._clock() - record.last_checked if record else 0

        return CacheHealth(
            version=record.version if record else "unknown",
            last_checked=datetime.fromtimestamp(
                (record.last_checked if record else 0) / 1000, tz=timezone.utc
            ),
            time_since_check=format_duration(elapsed),
            needs_check=self.needs_check(),
            stats={
                name: store.get_stats()
                for name, store in self.stores.partitions().items()
            },
        )
