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

import base64
import logging
import re
from typing import List, Optional, Union

from m3_mcp_server.cache.memory import MemoryCache
from m3_mcp_server.cache.persistent import CacheStores
from m3_mcp_server.client.github_client import GitHubClient
from m3_mcp_server.utils.common import CodeExample, ComponentCode, Framework
from m3_mcp_server.utils.config import UserConfigManager
from m3_mcp_server.utils.constants import (
    COMPONENT_LIST_TTL,
    FLUTTER_EXCLUDED_FILE_PARTS,
    FLUTTER_MATERIAL_PATH,
    FLUTTER_REPO,
    MATERIAL_WEB_EXCLUDED_DIRS,
    MATERIAL_WEB_REPO,
)

# Logger for this module
logger = logging.getLogger(__name__)

CSS_VARIABLE_PATTERN = re.compile(r"--md-[\w-]+")

# Bundled samples served when GitHub cannot be reached.
FALLBACK_SOURCES = {
    Framework.WEB: (
        "import {{html, LitElement}} from 'lit';\n\n"
        "// Sample only: the live source for '{name}' could not be fetched.\n"
        "export class Md{pascal} extends LitElement {{\n"
        "  render() {{\n"
        "    return html`<slot></slot>`;\n"
        "  }}\n"
        "}}\n"
    ),
    Framework.FLUTTER: (
        "import 'package:flutter/material.dart';\n\n"
        "// Sample only: the live source for '{name}' could not be fetched.\n"
        "class {pascal} extends StatelessWidget {{\n"
        "  const {pascal}({{super.key}});\n\n"
        "  @override\n"
        "  Widget build(BuildContext context) => const Placeholder();\n"
        "}}\n"
    ),
}


def to_pascal_case(name: str) -> str:
    return "".join(part.capitalize() for part in re.split(r"[-_]", name) if part)


def decode_github_content(file_data: dict, file_name: str) -> str:
    """Decode the base64 payload of a GitHub contents API file response."""
    if not file_data.get("content") or file_data.get("encoding") != "base64":
        raise ValueError(f"Invalid content for {file_name}")
    return base64.b64decode(file_data["content"]).decode("utf-8")


def _is_web_source(file_name: str) -> bool:
    return (
        file_name.endswith(".ts")
        and "test" not in file_name
        and "harness" not in file_name
    )


class ComponentCodeProvider:
    """
    Fetches Material 3 component sources from GitHub for web and Flutter.

    Sources are memoized in the persistent components partition under
    ``{framework}:{name}:{variant or 'default'}``; directory listings are kept in
    a process-local MemoryCache.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        stores: CacheStores,
        config: UserConfigManager,
        listing_cache: Optional[MemoryCache] = None,
    ):
        self.github_client = github_client
        self.stores = stores
        self.config = config
        self.listing_cache = listing_cache or MemoryCache(
            "component-listings",
            default_ttl=COMPONENT_LIST_TTL,
            enabled=config.is_cache_enabled,
        )

    @staticmethod
    def cache_key(
        name: str, framework: Union[Framework, str], variant: Optional[str] = None
    ) -> str:
        return f"{Framework(framework).value}:{name}:{variant or 'default'}"

    async def get_component_code(
        self,
        name: str,
        framework: Union[Framework, str],
        variant: Optional[str] = None,
    ) -> ComponentCode:
        """
        Get the source code of a component, from cache when fresh.

        Falls back to a bundled sample (not cached) when GitHub cannot be reached.

        Args:
            name: Component name, e.g. "button" or "checkbox"
            framework: "web" or "flutter"
            variant: Optional variant, e.g. "filled" or "outlined"

        Returns:
            The component code
        """
        framework = Framework(framework)
        key = self.cache_key(name, framework, variant)

        async def fetch() -> dict:
            if framework == Framework.WEB:
                code = await self._fetch_web_component(name, variant)
            else:
                code = await self._fetch_flutter_component(name, variant)
            return code.model_dump(mode="json")

        try:
            data = await self.stores.components.wrap(
                key, fetch, self.config.get_cache_ttl("components")
            )
        except Exception as e:
            logger.error(
                "Failed to fetch %s component code for %s: %s",
                framework.value,
                name,
                str(e),
            )
            return self._fallback(name, framework, variant, str(e))

        return ComponentCode.model_validate(data)

    async def _fetch_web_component(
        self, name: str, variant: Optional[str]
    ) -> ComponentCode:
        logger.info(
            "Fetching component code for: %s%s",
            name,
            f" ({variant})" if variant else "",
        )
        files = await self.github_client.get_json(
            f"/repos/{MATERIAL_WEB_REPO}/contents/{name}"
        )
        if not isinstance(files, list):
            raise ValueError(f"Expected directory listing for {name}")

        sources = [f["name"] for f in files if _is_web_source(f.get("name", ""))]
        target = f"{variant}-{name}.ts" if variant else (sources[0] if sources else None)
        if not target or target not in sources:
            raise ValueError(f"No TypeScript source found for {name}")

        file_data = await self.github_client.get_json(
            f"/repos/{MATERIAL_WEB_REPO}/contents/{name}/{target}"
        )
        source_code = decode_github_content(file_data, target)

        variants = [
            v
            for v in (s[: -len(".ts")].replace(f"-{name}", "") for s in sources)
            if v
        ]
        resolved_variant = variant or target[: -len(".ts")].replace(f"-{name}", "")
        tag_name = f"md-{resolved_variant}-{name}" if variant else f"md-{name}"

        return ComponentCode(
            component=name,
            framework=Framework.WEB,
            variant=resolved_variant,
            source_code=source_code,
            examples=[
                CodeExample(
                    title=f"Basic {name}",
                    code=f"<{tag_name}>Click me</{tag_name}>",
                    description=f"Standard {name} usage",
                ),
            ],
            imports=[
                f"import '@material/web/{name}/{target[: -len('.ts')]}.js';"
            ],
            css_variables=sorted(set(CSS_VARIABLE_PATTERN.findall(source_code))),
            documentation=f"https://m3.material.io/components/{name}",
            available_variants=variants,
        )

    async def _fetch_flutter_component(
        self, name: str, variant: Optional[str]
    ) -> ComponentCode:
        logger.info(
            "Fetching Flutter component code for: %s%s",
            name,
            f" ({variant})" if variant else "",
        )
        base_name = f"{variant}_{name}" if variant else name
        file_name = f"{base_name.replace('-', '_')}.dart"
        file_data = await self.github_client.get_json(
            f"/repos/{FLUTTER_REPO}/contents/{FLUTTER_MATERIAL_PATH}/{file_name}"
        )
        source_code = decode_github_content(file_data, file_name)
        class_name = to_pascal_case(base_name)

        return ComponentCode(
            component=name,
            framework=Framework.FLUTTER,
            variant=variant or "default",
            source_code=source_code,
            examples=[
                CodeExample(
                    title=f"Basic {class_name}",
                    code=f"{class_name}(onPressed: () {{}}, child: const Text('Click me'))",
                    description=f"Standard {class_name} usage",
                ),
            ],
            imports=["import 'package:flutter/material.dart';"],
            documentation=f"https://api.flutter.dev/flutter/material/{class_name}-class.html",
        )

    def _fallback(
        self,
        name: str,
        framework: Framework,
        variant: Optional[str],
        reason: str,
    ) -> ComponentCode:
        source_code = FALLBACK_SOURCES[framework].format(
            name=name, pascal=to_pascal_case(name)
        )
        return ComponentCode(
            component=name,
            framework=framework,
            variant=variant or "default",
            source_code=source_code,
            documentation=f"https://m3.material.io/components/{name}",
            source="fallback",
            note=f"Live source unavailable: {reason}",
        )

    async def list_components(self, framework: Union[Framework, str]) -> List[str]:
        """
        List the component names available upstream for a framework.

        Args:
            framework: "web" or "flutter"

        Returns:
            Sorted component names
        """
        framework = Framework(framework)

        async def fetch() -> List[str]:
            if framework == Framework.WEB:
                contents = await self.github_client.get_json(
                    f"/repos/{MATERIAL_WEB_REPO}/contents"
                )
                names = [
                    item["name"]
                    for item in contents
                    if item.get("type") == "dir"
                    and item["name"] not in MATERIAL_WEB_EXCLUDED_DIRS
                    and not item["name"].startswith(".")
                ]
            else:
                contents = await self.github_client.get_json(
                    f"/repos/{FLUTTER_REPO}/contents/{FLUTTER_MATERIAL_PATH}"
                )
                names = [
                    item["name"][: -len(".dart")].replace("_", "-")
                    for item in contents
                    if item.get("type") == "file"
                    and item["name"].endswith(".dart")
                    and not item["name"].startswith("_")
                    and not any(p in item["name"] for p in FLUTTER_EXCLUDED_FILE_PARTS)
                ]
            logger.info("Found %d %s components", len(names), framework.value)
            return sorted(names)

        return await self.listing_cache.wrap(
            f"{framework.value}:components:list", fetch, COMPONENT_LIST_TTL
        )
