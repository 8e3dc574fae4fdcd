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
Cache module for the MCP server.

This module provides the persistent and in-memory TTL caches, the cache
versioning that keeps them fresh, and the scheduler driving maintenance.
"""

# Use relative imports for direct script execution
from .base import TtlCache
from .memory import MemoryCache
from .persistent import PersistentCache, CacheStores
from .upstream import (
    UpstreamFingerprintChecker,
    UpstreamRepository,
    UPSTREAM_REPOSITORIES,
)
from .versioning import CacheVersion, CacheVersionManager, format_duration
from .scheduler import CacheMaintenanceScheduler

__all__ = [
    "TtlCache",
    "MemoryCache",
    "PersistentCache",
    "CacheStores",
    "UpstreamFingerprintChecker",
    "UpstreamRepository",
    "UPSTREAM_REPOSITORIES",
    "CacheVersion",
    "CacheVersionManager",
    "format_duration",
    "CacheMaintenanceScheduler",
]
