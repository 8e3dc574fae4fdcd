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
from typing import List, Optional, Union

from mcp.server.fastmcp import FastMCP

from m3_mcp_server.providers.components import ComponentCodeProvider
from m3_mcp_server.utils.common import ComponentCode, Framework, ToolError

# Logger for this module
logger = logging.getLogger(__name__)


def register_component_tools(mcp: FastMCP, provider: ComponentCodeProvider) -> None:
    @mcp.tool(
        name="get_component_code",
    )
    async def get_component_code(
        componentName: str,
        framework: Optional[Framework] = None,
        variant: Optional[str] = None,
    ) -> Union[ComponentCode, ToolError]:
        """
        Retrieve the real source code of a Material 3 component with usage examples.

        :param componentName: Component name, e.g. 'button', 'checkbox', 'card'.
        :param framework: 'web' or 'flutter'. Defaults to the user's configured framework.
        :param variant: Optional variant, e.g. 'filled' or 'outlined'.

        :returns: The component source, imports, CSS variables and examples.
                  When GitHub is unreachable a bundled sample is returned with source='fallback'.
        """
        if not componentName or not componentName.strip():
            return ToolError(
                message="Invalid component name provided",
                suggestions=[
                    "Provide a component name such as 'button'",
                    "Use list_material_components to see available components",
                ],
            )

        if framework is None:
            try:
                framework = Framework(provider.config.get_default_framework())
            except ValueError:
                framework = Framework.FLUTTER

        return await provider.get_component_code(
            componentName.strip(), framework, variant
        )

    @mcp.tool(
        name="list_material_components",
    )
    async def list_material_components(
        framework: Framework = Framework.WEB,
    ) -> Union[List[str], ToolError]:
        """
        List the Material 3 components available for a framework.

        :param framework: 'web' or 'flutter'.

        :returns: Sorted list of component names usable with get_component_code.
        """
        try:
            return await provider.list_components(framework)
        except Exception as e:
            logger.error("list_material_components failed: %s", str(e))
            return ToolError(
                message=f"Failed to list {Framework(framework).value} components: {str(e)}",
                suggestions=[
                    "Check your internet connection",
                    "Set GITHUB_TOKEN if the GitHub rate limit was exceeded",
                ],
            )
