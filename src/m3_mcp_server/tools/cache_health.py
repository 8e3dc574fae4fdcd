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

import logging
import traceback
from typing import Optional, Union

from mcp.server.fastmcp import FastMCP

from m3_mcp_server.cache.versioning import CacheVersionManager
from m3_mcp_server.utils.common import CacheAction, Framework, ToolError
from m3_mcp_server.utils.constants import TRACEBACK_LIMIT

# Logger for this module
logger = logging.getLogger(__name__)


async def manage_cache_health(
    version_manager: CacheVersionManager,
    action: Union[CacheAction, str],
    component_name: Optional[str] = None,
    framework: Optional[Union[Framework, str]] = None,
) -> Union[dict, ToolError]:
    """
    Run a cache management action and build the tool response.

    :param version_manager: The cache version manager to act on
    :param action: One of status, invalidate_all, invalidate_component, check_updates
    :param component_name: Component to invalidate (invalidate_component only)
    :param framework: Framework of that component (invalidate_component only)

    :returns: A dict describing the outcome, or a ToolError
    """
    logger.info(
        "manage_cache_health called: action=%s component=%s framework=%s",
        action,
        component_name,
        framework,
    )

    try:
        action = CacheAction(action)
    except ValueError:
        return ToolError(
            message=f"Unknown action '{action}'",
            suggestions=[f"Use one of: {', '.join(a.value for a in CacheAction)}"],
        )

    try:
        if action == CacheAction.STATUS:
            health = version_manager.get_cache_health()
            return {
                "action": action.value,
                "cache_health": {
                    "version": health.version,
                    "last_upstream_check": health.last_checked.isoformat(),
                    "time_since_check": health.time_since_check,
                    "needs_upstream_check": health.needs_check,
                    "statistics": {
                        name: stats.model_dump() for name, stats in health.stats.items()
                    },
                },
                "recommendation": (
                    'Run "check_updates" to verify upstream changes'
                    if health.needs_check
                    else "Cache is fresh and up-to-date"
                ),
            }

        if action == CacheAction.INVALIDATE_ALL:
            version_manager.invalidate_all_caches()
            return {
                "action": action.value,
                "status": "success",
                "message": "All caches cleared. Next requests will fetch fresh data from GitHub.",
                "affected": ["components", "icons", "documentation"],
            }

        if action == CacheAction.INVALIDATE_COMPONENT:
            if not component_name or not framework:
                return ToolError(
                    message="componentName and framework are required for invalidate_component action",
                    suggestions=[
                        "Provide the component name, e.g. 'button'",
                        "Provide the framework: 'web' or 'flutter'",
                    ],
                )
            try:
                framework = Framework(framework)
            except ValueError:
                return ToolError(
                    message=f"Unknown framework '{framework}'",
                    suggestions=["Use 'web' or 'flutter'"],
                )
            version_manager.invalidate_component(component_name, framework)
            return {
                "action": action.value,
                "status": "success",
                "message": f"Cache cleared for {framework.value}:{component_name}",
                "component": component_name,
                "framework": framework.value,
            }

        # CHECK_UPDATES: an explicit request, so do not wait for the check interval.
        has_updates = await version_manager.check_cache_version(force=True)
        return {
            "action": action.value,
            "status": "success",
            "upstream_changes_detected": has_updates,
            "message": (
                "Upstream changes detected. Cache has been invalidated automatically."
                if has_updates
                else "No upstream changes. Cache is up-to-date."
            ),
            "recommendation": (
                "Fresh data will be fetched on next component request"
                if has_updates
                else "No action needed"
            ),
        }

    except Exception as e:
        logger.error("manage_cache_health failed: %s", str(e))
        logger.error(traceback.format_exc(limit=TRACEBACK_LIMIT))
        return ToolError(
            message=f"manage_cache_health failed: {str(e)}",
            suggestions=[
                "Enable debug logging with LOG_LEVEL=DEBUG for details",
                "Run the 'status' action to inspect the cache",
            ],
        )


def register_cache_health_tools(
    mcp: FastMCP, version_manager: CacheVersionManager
) -> None:
    @mcp.tool(
        name="manage_cache_health",
    )
    async def manage_cache_health_tool(
        action: CacheAction,
        componentName: Optional[str] = None,
        framework: Optional[Framework] = None,
    ) -> Union[dict, ToolError]:
        """
        Check cache status, verify upstream changes, and invalidate stale data.

        :param action: 'status' shows cache health, 'invalidate_all' clears all caches,
                       'invalidate_component' clears a specific component,
                       'check_updates' checks the upstream repositories for changes.
        :param componentName: Component name (required for 'invalidate_component').
        :param framework: 'web' or 'flutter' (required for 'invalidate_component').

        :returns: A dictionary describing the outcome, including a recommendation where relevant.
                  Returns ToolError if required parameters are missing.
        """
        return await manage_cache_health(
            version_manager, action, component_name=componentName, framework=framework
        )
