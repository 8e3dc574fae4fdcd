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
Constants used across the MCP server.

This module centralizes magic numbers and string literals to improve
maintainability and reduce duplication across the codebase.

Constants are organized by category for easy navigation and maintenance.
"""

# ============================================================================
# SERVER IDENTITY
# ============================================================================

SERVER_NAME = "material3-mcp-server"
"""Name reported to MCP clients and used in the HTTP User-Agent."""

SERVER_VERSION = "1.0.0"
"""Version of the running build."""


# ============================================================================
# CACHE VERSIONING
# ============================================================================

CURRENT_CACHE_VERSION = "1.0.0"
"""Compiled-in cache layout version. A stored record with any other value invalidates the cache."""

CACHE_VERSION_KEY = "cache:version"
"""Reserved key of the cache version record inside the components partition."""

VERSION_RECORD_TTL = 365 * 24 * 3600
"""TTL (seconds) of the version record. Long enough that it never expires in practice."""

VERSION_CHECK_INTERVAL_MS = 3600 * 1000
"""Minimum time between two upstream checks, in milliseconds."""


# ============================================================================
# CACHE PARTITIONS AND TTLS
# ============================================================================

COMPONENTS_PARTITION = "components"
ICONS_PARTITION = "icons"
DOCS_PARTITION = "docs"

CACHE_PARTITIONS = (COMPONENTS_PARTITION, ICONS_PARTITION, DOCS_PARTITION)
"""All persistent cache partitions, in invalidation order."""

DEFAULT_CACHE_TTL = 3600
"""Default entry TTL in seconds when the caller does not provide one."""

DEFAULT_COMPONENTS_TTL = 3600
DEFAULT_ICONS_TTL = 86400
DEFAULT_DOCS_TTL = 43200

COMPONENT_LIST_TTL = 3600
"""TTL (seconds) for in-memory component directory listings."""


# ============================================================================
# SCHEDULER
# ============================================================================

MAINTENANCE_TICK_SECONDS = 300.0
"""Interval between two scheduler ticks. Upstream checks stay rate-limited by VERSION_CHECK_INTERVAL_MS."""

PRUNE_INTERVAL_MS = 3600 * 1000
"""Minimum time between two expired-entry sweeps, in milliseconds."""


# ============================================================================
# FILESYSTEM
# ============================================================================

CONFIG_DIR_NAME = ".material3-mcp"
"""Per-user directory (under the home directory) for config and cache files."""

CONFIG_FILE_NAME = "config.json"

CACHE_DIR_NAME = "cache"

CACHE_LOCK_TIMEOUT = 10.0
"""Seconds to wait for a partition file lock before giving up on a flush."""


# ============================================================================
# GITHUB
# ============================================================================

GITHUB_API_URL = "https://api.github.com"

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 2.0
DEFAULT_MAX_RETRY_DELAY = 15.0

RATE_LIMIT_WARNING_PERCENT = 80
"""Warn once this share of the GitHub rate limit has been consumed."""

MATERIAL_WEB_REPO = "material-components/material-web"
MATERIAL_WEB_BRANCH = "main"

FLUTTER_REPO = "flutter/flutter"
FLUTTER_BRANCH = "master"
FLUTTER_MATERIAL_PATH = "packages/flutter/lib/src/material"

MATERIAL_WEB_EXCLUDED_DIRS = [
    "docs",
    "scripts",
    "testing",
    "internal",
    "catalog",
    "elevation",
    "focus",
    "ripple",
    "tokens",
    "typography",
    "labs",
    "migrations",
    "field",
    "icon",
    "color",
]
"""Top-level material-web directories that are not standalone components."""

FLUTTER_EXCLUDED_FILE_PARTS = [
    "theme",
    "style",
    "constants",
    "typography",
    "colors",
    "icons",
    "material_state",
    "debug",
]
"""Substrings marking Flutter material files that are not components."""


# ============================================================================
# ERROR HANDLING
# ============================================================================

TRACEBACK_LIMIT = 5
"""Number of stack frames to include in error tracebacks."""
