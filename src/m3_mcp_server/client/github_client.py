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
import ssl
from datetime import datetime
from typing import Any, Mapping, NamedTuple, Optional

import aiohttp
import truststore

from m3_mcp_server.utils.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    GITHUB_API_URL,
    RATE_LIMIT_WARNING_PERCENT,
    SERVER_NAME,
    SERVER_VERSION,
)

# Logger for this module
logger = logging.getLogger("GitHubClient")


class GitHubRequestError(Exception):
    """Raised when a GitHub API request fails for good."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GitHubResponse(NamedTuple):
    status: int
    headers: Mapping[str, str]
    body: Any


class GitHubClient:
    """
    A service class to handle all communications with the GitHub REST API.
    It manages the client session, authentication headers and retries.
    """

    def __init__(
        self,
        base_url: str = GITHUB_API_URL,
        token: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,  # Maximum number of retries
        retry_delay: float = DEFAULT_RETRY_DELAY,  # Initial delay between retries in seconds
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
    ):
        """
        Initializes the GitHub client with connection details.

        Args:
            base_url: The GitHub API URL
            token: Optional personal access token (raises the rate limit to 5,000/hour)
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries for failed requests
            retry_delay: Initial delay between retries in seconds
            max_retry_delay: Upper bound for the exponential backoff delay
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay

        self._session: Optional[aiohttp.ClientSession] = None
        self._ssl_context: Optional[ssl.SSLContext] = None

        if token:
            logger.info("GitHub token configured")
        logger.info("Initialized GitHubClient for %s", self.base_url)

    def _get_ssl_context(self) -> ssl.SSLContext:
        """
        Get or create the SSL context used by the aiohttp connector.

        The context is created from the system truststore via the truststore
        library. If that fails, it falls back to the default SSL context provided
        by Python's ssl module.
        """
        if self._ssl_context is None:
            try:
                self._ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
                logger.debug("Created SSL context using system truststore")
            except Exception as e:
                logger.error("Failed to create truststore SSL context: %s", str(e))
                self._ssl_context = ssl.create_default_context()
                logger.debug("Created default SSL context")
        return self._ssl_context

    def _prepare_headers(self) -> dict:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"{SERVER_NAME}/{SERVER_VERSION}",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create or reuse an aiohttp session configured with the shared SSL context."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=self._get_ssl_context())
            self._session = aiohttp.ClientSession(
                connector=connector, headers=self._prepare_headers()
            )
            logger.debug("Created aiohttp session for %s", self.base_url)
        return self._session

    async def _fetch(self, url: str) -> GitHubResponse:
        """Perform a single GET request."""
        session = await self._ensure_session()
        async with session.get(
            url, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            if response.status == 200:
                try:
                    body = await response.json(content_type=None)
                except ValueError as e:
                    raise GitHubRequestError(
                        f"Invalid JSON in response from {url}: {str(e)}",
                        response.status,
                    ) from e
            else:
                body = await response.text()
            headers = {k.lower(): v for k, v in response.headers.items()}
            return GitHubResponse(response.status, headers, body)

    def _backoff_delay(self, attempt: int) -> float:
        return min(self.retry_delay * (2 ** (attempt - 1)), self.max_retry_delay)

    def _check_rate_limit_status(self, headers: Mapping[str, str]) -> None:
        """Log a warning when most of the GitHub rate limit has been consumed."""
        try:
            limit = int(headers["x-ratelimit-limit"])
            remaining = int(headers["x-ratelimit-remaining"])
        except (KeyError, ValueError):
            return
        if limit <= 0:
            return

        percentage_used = (limit - remaining) / limit * 100
        if percentage_used >= RATE_LIMIT_WARNING_PERCENT:
            reset = headers.get("x-ratelimit-reset")
            reset_time = (
                datetime.fromtimestamp(int(reset)).isoformat()
                if reset and reset.isdigit()
                else "unknown"
            )
            logger.warning(
                "GitHub API rate limit warning: %d/%d remaining (%d%% used), resets at %s. %s",
                remaining,
                limit,
                round(percentage_used),
                reset_time,
                (
                    "CRITICAL: set GITHUB_TOKEN to raise the limit to 5,000/hour"
                    if remaining < 10
                    else "Consider setting GITHUB_TOKEN for higher limits"
                ),
            )

    async def get_json(self, path: str) -> Any:
        """
        GET a GitHub API path and return the decoded JSON body, with retry logic.

        Network errors, timeouts and 5xx responses are retried with exponential
        backoff. Client errors (4xx) abort immediately, except 429 responses that
        carry a Retry-After header, which wait and retry.

        Args:
            path: API path, e.g. "/repos/flutter/flutter/commits/master"

        Returns:
            The decoded JSON body

        Raises:
            GitHubRequestError: If the request fails, the body is not valid JSON,
                or all retries are exhausted
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        retries = 0

        while True:
            try:
                logger.debug("HTTP GET: %s", url)
                response = await self._fetch(url)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                error_message = f"{type(e).__name__}: {e}"
                status = None
            else:
                self._check_rate_limit_status(response.headers)

                if response.status == 200:
                    logger.debug("HTTP GET success: %s", url)
                    return response.body

                status = response.status
                error_message = f"Request failed with status code: {status}. Response: {response.body}"

                if status == 429:
                    retry_after = response.headers.get("retry-after", "")
                    if not retry_after.isdigit() or retries >= self.max_retries:
                        raise GitHubRequestError(
                            f"Rate limited by GitHub: {error_message}", status
                        )
                    retries += 1
                    logger.warning(
                        "Rate limited. Waiting %ss (%d/%d)",
                        retry_after,
                        retries,
                        self.max_retries,
                    )
                    await asyncio.sleep(int(retry_after))
                    continue

                if 400 <= status < 500:
                    logger.warning("HTTP GET failed: %s (%d)", url, status)
                    raise GitHubRequestError(error_message, status)

            retries += 1
            if retries > self.max_retries:
                logger.error(
                    "Request failed after %d retries: %s", self.max_retries, error_message
                )
                raise GitHubRequestError(
                    f"GitHub request failed after {self.max_retries} retries: {error_message}",
                    status,
                )

            delay = self._backoff_delay(retries)
            logger.warning(
                "Request failed: %s. Retrying in %.2fs (%d/%d)",
                error_message,
                delay,
                retries,
                self.max_retries,
            )
            await asyncio.sleep(delay)

    async def close(self):
        """Close the aiohttp session and its connector."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.info("GitHub client session closed")

    async def __aenter__(self):
        """Async context manager entry"""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
