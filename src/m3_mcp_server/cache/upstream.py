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

import asyncio
import logging
from typing import List, NamedTuple, Sequence

from m3_mcp_server.client.github_client import GitHubClient
from m3_mcp_server.utils.constants import (
    FLUTTER_BRANCH,
    FLUTTER_REPO,
    MATERIAL_WEB_BRANCH,
    MATERIAL_WEB_REPO,
)

# Logger for this module
logger = logging.getLogger(__name__)


class UpstreamRepository(NamedTuple):
    """A GitHub repository branch whose head commit feeds the cache fingerprint."""

    repo: str
    branch: str

    @property
    def commits_path(self) -> str:
        return f"/repos/{self.repo}/commits/{self.branch}"


# Order matters: it fixes the layout of the combined fingerprint.
UPSTREAM_REPOSITORIES = (
    UpstreamRepository(FLUTTER_REPO, FLUTTER_BRANCH),
    UpstreamRepository(MATERIAL_WEB_REPO, MATERIAL_WEB_BRANCH),
)


class UpstreamFingerprintChecker:
    """Computes a fingerprint of the upstream repositories from their head commits."""

    def __init__(
        self,
        github_client: GitHubClient,
        repositories: Sequence[UpstreamRepository] = UPSTREAM_REPOSITORIES,
    ):
        self.github_client = github_client
        self.repositories = tuple(repositories)

    async def latest_commit_sha(self, repository: UpstreamRepository) -> str:
        data = await self.github_client.get_json(repository.commits_path)
        sha = data.get("sha") if isinstance(data, dict) else None
        if not sha:
            raise ValueError(f"No commit sha returned for {repository.repo}")
        return sha

    async def fetch_fingerprint(self) -> str:
        """
        Fetch the head commit of every repository and join them with ':'.

        Any single failure propagates, so a partial fingerprint is never produced.

        Returns:
            The combined fingerprint, e.g. "<flutter sha>:<material-web sha>"
        """
        shas: List[str] = await asyncio.gather(
            *(self.latest_commit_sha(repository) for repository in self.repositories)
        )
        logger.debug(
            "Upstream heads: %s",
            ", ".join(
                f"{repository.repo}@{sha[:7]}"
                for repository, sha in zip(self.repositories, shas)
            ),
        )
        return ":".join(shas)
