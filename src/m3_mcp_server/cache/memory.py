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

from m3_mcp_server.cache.base import TtlCache

# Logger for this module
logger = logging.getLogger(__name__)


class MemoryCache(TtlCache):
    """
    Process-local TTL cache.

    Entries live only as long as the process. Used for data that is cheap to
    refetch and does not need to survive a restart, such as directory listings.
    """

    def __init__(self, name: str, **kwargs):
        super().__init__(name, **kwargs)
        logger.info(
            "Memory cache initialized: %s (default TTL: %ss)", name, self.default_ttl
        )
