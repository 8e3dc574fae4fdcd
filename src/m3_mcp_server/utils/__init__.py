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
Utilities module for the MCP server.

This module provides common utility functions, models and configuration.
"""

from .common import (
    ToolError,
    Framework,
    CacheAction,
    PartitionStats,
    CacheHealth,
    CodeExample,
    ComponentCode,
    now_ms,
)
from .config import UserConfig, CacheTTLSettings, UserConfigManager

# Import commonly used constants for convenience
from .constants import (
    CURRENT_CACHE_VERSION,
    CACHE_VERSION_KEY,
    CACHE_PARTITIONS,
    DEFAULT_CACHE_TTL,
    VERSION_CHECK_INTERVAL_MS,
    TRACEBACK_LIMIT,
)

__all__ = [
    "ToolError",
    "Framework",
    "CacheAction",
    "PartitionStats",
    "CacheHealth",
    "CodeExample",
    "ComponentCode",
    "now_ms",
    "UserConfig",
    "CacheTTLSettings",
    "UserConfigManager",
    # Constants
    "CURRENT_CACHE_VERSION",
    "CACHE_VERSION_KEY",
    "CACHE_PARTITIONS",
    "DEFAULT_CACHE_TTL",
    "VERSION_CHECK_INTERVAL_MS",
    "TRACEBACK_LIMIT",
]
