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

import asyncio
import logging
import traceback
from typing import Callable, Optional

from m3_mcp_server.cache.persistent import CacheStores
from m3_mcp_server.cache.versioning import CacheVersionManager
from m3_mcp_server.utils.common import now_ms
from m3_mcp_server.utils.constants import (
    MAINTENANCE_TICK_SECONDS,
    PRUNE_INTERVAL_MS,
    TRACEBACK_LIMIT,
)

# Logger for this module
logger = logging.getLogger(__name__)


class CacheMaintenanceScheduler:
    """
    Drives the periodic cache version check and the expired-entry sweep.

    ``tick()`` does one round of maintenance and can be called directly (tests
    use it with a fake clock). ``start()`` runs ticks in a background asyncio
    task: one immediately, then every ``tick_interval`` seconds.
    """

    def __init__(
        self,
        version_manager: CacheVersionManager,
        stores: CacheStores,
        clock: Callable[[], int] = now_ms,
        tick_interval: float = MAINTENANCE_TICK_SECONDS,
        prune_interval_ms: int = PRUNE_INTERVAL_MS,
    ):
        self.version_manager = version_manager
        self.stores = stores
        self.tick_interval = tick_interval
        self.prune_interval_ms = prune_interval_ms
        self._clock = clock
        self._last_prune: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    async def tick(self) -> bool:
        """
        Run one maintenance round.

        Returns:
            True if the cache was invalidated during this round
        """
        invalidated = False
        try:
            invalidated = await self.version_manager.check_cache_version()
        except Exception as e:
            logger.error("Cache version check failed: %s", str(e))
            logger.debug(traceback.format_exc(limit=TRACEBACK_LIMIT))

        now = self._clock()
        if self._last_prune is None or now - self._last_prune >= self.prune_interval_ms:
            self._last_prune = now
            for store in self.stores:
                store.prune()

        return invalidated

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.tick_interval)

    def start(self) -> None:
        """Start ticking in the background. Must be called from a running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())
            logger.info(
                "Cache maintenance scheduler started (tick every %.0fs)",
                self.tick_interval,
            )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache maintenance scheduler stopped")
