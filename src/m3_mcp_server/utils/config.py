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
User configuration for the MCP server.

Preferences are stored as JSON in a per-user directory (``~/.material3-mcp`` by
default, overridable with the ``MATERIAL3_MCP_HOME`` environment variable).
The file uses camelCase keys so it stays compatible with configs written by
other Material 3 MCP server installations.
"""

import json
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    CACHE_DIR_NAME,
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_COMPONENTS_TTL,
    DEFAULT_DOCS_TTL,
    DEFAULT_ICONS_TTL,
)

# Logger for this module
logger = logging.getLogger(__name__)

PartitionName = Literal["components", "icons", "docs"]


class CacheTTLSettings(BaseModel):
    """Per-partition entry TTLs in seconds."""

    components: int = Field(default=DEFAULT_COMPONENTS_TTL, ge=0)
    icons: int = Field(default=DEFAULT_ICONS_TTL, ge=0)
    docs: int = Field(default=DEFAULT_DOCS_TTL, ge=0)


class UserConfig(BaseModel):
    """Persistent user preferences."""

    model_config = ConfigDict(populate_by_name=True)

    default_framework: Literal["web", "flutter", "react", "angular"] = Field(
        default="flutter", alias="defaultFramework"
    )
    cache_enabled: bool = Field(default=True, alias="cacheEnabled")
    cache_ttl: CacheTTLSettings = Field(
        default_factory=CacheTTLSettings, alias="cacheTTL"
    )
    github_token: Optional[str] = Field(default=None, alias="githubToken")


def default_config_dir() -> Path:
    """Return the per-user configuration directory."""
    override = os.environ.get("MATERIAL3_MCP_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


class UserConfigManager:
    """
    Loads, updates and persists the user configuration.

    The configuration is read once at construction. Call ``reload()`` to pick up
    edits made to the file while the server is running; ``is_cache_enabled()``
    always reflects the latest loaded state.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_path = self.config_dir / CONFIG_FILE_NAME

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "Cannot create config directory %s: %s", self.config_dir, str(e)
            )

        self._config = self._load_config()

    @property
    def cache_dir(self) -> Path:
        """Directory holding the persistent cache partitions."""
        return self.config_dir / CACHE_DIR_NAME

    def _load_config(self) -> UserConfig:
        """Load config from disk, or create the default file if missing or invalid."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                config = UserConfig.model_validate(data)
                logger.info("User config loaded from %s", self.config_path)
                return config
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.warning(
                    "Failed to load user config from %s, using defaults: %s",
                    self.config_path,
                    str(e),
                )

        config = UserConfig()
        self._save_config(config)
        logger.info("Created default user config at %s", self.config_path)
        return config

    def _save_config(self, config: UserConfig) -> None:
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(
                    config.model_dump(by_alias=True, exclude_none=True), f, indent=2
                )
            logger.debug("User config saved to %s", self.config_path)
        except OSError as e:
            logger.error("Failed to save user config: %s", str(e))

    def reload(self) -> UserConfig:
        """Re-read the configuration file."""
        self._config = self._load_config()
        return self.get_config()

    def get_config(self) -> UserConfig:
        return self._config.model_copy(deep=True)

    def is_cache_enabled(self) -> bool:
        return self._config.cache_enabled

    def set_cache_enabled(self, enabled: bool) -> None:
        self._config.cache_enabled = enabled
        self._save_config(self._config)
        logger.info("Caching %s", "enabled" if enabled else "disabled")

    def get_cache_ttl(self, partition: PartitionName) -> int:
        """
        Get the entry TTL configured for a cache partition.

        Args:
            partition: One of "components", "icons" or "docs"

        Returns:
            The TTL in seconds
        """
        return getattr(self._config.cache_ttl, partition)

    def update_cache_settings(self, **ttls: int) -> None:
        """
        Update one or more partition TTLs and persist the change.

        Args:
            **ttls: New TTLs in seconds keyed by partition name
        """
        updated = self._config.cache_ttl.model_dump()
        updated.update(ttls)
        self._config.cache_ttl = CacheTTLSettings.model_validate(updated)
        self._save_config(self._config)
        logger.info("Cache settings updated: %s", ttls)

    def get_default_framework(self) -> str:
        return self._config.default_framework

    def set_default_framework(self, framework: str) -> None:
        self._config = UserConfig.model_validate(
            {**self._config.model_dump(), "default_framework": framework}
        )
        self._save_config(self._config)
        logger.info("Default framework updated to %s", framework)

    def get_github_token(self) -> Optional[str]:
        """Get the GitHub token, preferring the GITHUB_TOKEN environment variable."""
        return os.environ.get("GITHUB_TOKEN") or self._config.github_token

    def set_github_token(self, token: Optional[str]) -> None:
        self._config.github_token = token
        self._save_config(self._config)
        logger.info("GitHub token updated")

    def reset(self) -> None:
        """Reset the configuration to defaults."""
        self._config = UserConfig()
        self._save_config(self._config)
        logger.info("User config reset to defaults")
