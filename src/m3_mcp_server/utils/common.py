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

import time
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class ToolError(BaseModel):
    """
    Represents an error response from a tool execution.

    This class helps the LLM understand error messages and provides suggestions
    for potential resolutions.
    """

    isError: Literal[True] = Field(
        default=True,
        description="Indicates that an error occurred during tool execution if value is True",
    )

    message: str = Field(description="Detailed error message")

    suggestions: List[str] = Field(
        default_factory=list, description="List of suggestions for resolving the error"
    )


class Framework(str, Enum):
    """Frameworks whose component sources are served and cached."""

    WEB = "web"
    FLUTTER = "flutter"


class CacheAction(str, Enum):
    """Actions accepted by the manage_cache_health tool."""

    STATUS = "status"
    INVALIDATE_ALL = "invalidate_all"
    INVALIDATE_COMPONENT = "invalidate_component"
    CHECK_UPDATES = "check_updates"


class PartitionStats(BaseModel):
    """Running statistics of a single cache partition."""

    hits: int = Field(default=0, description="Lookups answered from the cache")
    misses: int = Field(
        default=0, description="Lookups that found nothing or an expired entry"
    )
    writes: int = Field(default=0, description="Entries written since the last clear")
    hit_rate: str = Field(
        default="0%", description="hits / (hits + misses) as a percentage string"
    )
    size: int = Field(default=0, description="Number of entries currently stored")


class CacheHealth(BaseModel):
    """Freshness information about the whole cache."""

    version: str = Field(description="Cache version recorded in the store")
    last_checked: datetime = Field(description="When upstream was last checked")
    time_since_check: str = Field(
        description="Human readable time elapsed since the last upstream check"
    )
    needs_check: bool = Field(
        description="Whether the upstream check interval has elapsed"
    )
    stats: Dict[str, PartitionStats] = Field(
        description="Statistics of every cache partition keyed by partition name"
    )


class CodeExample(BaseModel):
    title: str
    code: str
    description: str


class ComponentCode(BaseModel):
    """Source code and usage information for a Material 3 component."""

    component: str = Field(description="Component name, e.g. 'button'")
    framework: Framework = Field(description="Framework the source belongs to")
    variant: str = Field(description="Variant that was resolved, or 'default'")
    source_code: str = Field(description="Raw source code of the component")
    examples: List[CodeExample] = Field(default_factory=list)
    imports: List[str] = Field(
        default_factory=list, description="Import statements needed to use it"
    )
    css_variables: List[str] = Field(
        default_factory=list, description="--md-* custom properties referenced"
    )
    documentation: str = Field(description="Link to the component documentation")
    available_variants: List[str] = Field(default_factory=list)
    source: Literal["github", "fallback"] = Field(
        default="github",
        description="'github' for live data, 'fallback' for bundled sample code",
    )
    note: Optional[str] = None
