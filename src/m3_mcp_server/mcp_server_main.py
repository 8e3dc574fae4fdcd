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
MCP Server Main Module

This module serves as the main entry point for the Model-Context-Protocol (MCP) server
that serves Material 3 component data from GitHub behind a persistent, versioned cache.
It builds every long-lived object at a single composition point, registers the tools,
and runs cache maintenance for the lifetime of the server.
"""

# Standard library imports
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

# Third-party imports
from mcp.server.fastmcp import FastMCP

# Use absolute imports
from m3_mcp_server.cache import (
    CacheMaintenanceScheduler,
    CacheStores,
    CacheVersionManager,
    UpstreamFingerprintChecker,
)
from m3_mcp_server.client import GitHubClient
from m3_mcp_server.providers import ComponentCodeProvider
from m3_mcp_server.tools import register_cache_health_tools, register_component_tools
from m3_mcp_server.utils.config import UserConfigManager
from m3_mcp_server.utils.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    SERVER_NAME,
)

# Configure logging with dynamic level from environment variable
log_level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)

logging.basicConfig(
    level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Log the configured level for debugging
logger.debug("Logging configured at %s level", log_level_name)


def initialize_github_client(config: UserConfigManager) -> GitHubClient:
    """
    Initialize the GitHub client used by providers and the upstream checker.

    Args:
        config: The user configuration (source of the GitHub token)

    Returns:
        GitHubClient: The initialized GitHub client instance
    """
    timeout = float(os.environ.get("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT))
    max_retries = int(os.environ.get("MAX_RETRIES", DEFAULT_MAX_RETRIES))

    return GitHubClient(
        token=config.get_github_token(),
        timeout=timeout,
        max_retries=max_retries,
    )


def build_server(config: Optional[UserConfigManager] = None) -> FastMCP:
    """
    Build the MCP server and everything it depends on.

    Args:
        config: Optional user configuration; loaded from the user directory if omitted

    Returns:
        FastMCP: The server with all tools registered
    """
    config = config or UserConfigManager()

    stores = CacheStores.create(config)
    logger.info("Cache partitions opened in %s", config.cache_dir)

    github_client = initialize_github_client(config)
    version_manager = CacheVersionManager(
        stores, UpstreamFingerprintChecker(github_client)
    )
    scheduler = CacheMaintenanceScheduler(version_manager, stores)
    provider = ComponentCodeProvider(github_client, stores, config)

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        # The first tick runs the startup version check.
        scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            await github_client.close()

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)
    logger.info("Initialized MCP server: %s", SERVER_NAME)

    register_cache_health_tools(mcp, version_manager)
    register_component_tools(mcp, provider)
    logger.info("Tools registered")

    return mcp


def main() -> None:
    """Entry point for the Material 3 MCP server."""
    logger.info("Starting %s", SERVER_NAME)
    mcp = build_server()

    logger.info("Starting %s server - Press Ctrl+C to exit", SERVER_NAME)
    try:
        mcp.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shut down gracefully")


if __name__ == "__main__":
    # Calling main
    main()
