"""Discord REST API client with rate limit handling.

This module provides an async HTTP client for the few Discord REST endpoints
the exporter needs:
- Automatic rate limit handling (429 responses)
- Exponential backoff for server errors (5xx) and transport failures
- Proper request headers (the token is sent as-is, so bot tokens must carry
  their "Bot " prefix)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from discord_influx.export.logger import logger


# Discord API base URL
BASE_URL = "https://discord.com/api/v10"

# Retry configuration
MAX_RETRIES = 5
MAX_RATE_LIMIT_RETRIES = 30  # Cap on consecutive 429 retries
INITIAL_BACKOFF = 1.0  # seconds
MAX_BACKOFF = 64.0  # seconds

# Discord caps the messages endpoint at 100 per page
MAX_PAGE_SIZE = 100


class DiscordAPIError(Exception):
    """Raised when Discord API returns an error."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Discord API error {status_code}: {message}")


@dataclass
class DiscordClient:
    """Async Discord REST API client.

    Handles rate limits and retries automatically. Once retries are exhausted
    the error is raised to the caller.
    """

    token: str
    user_agent: str

    def __post_init__(self) -> None:
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": self.token,
            "User-Agent": self.user_agent,
            "Content-Type": "application/json",
        }

    async def __aenter__(self) -> "DiscordClient":
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            headers=self.headers,
            timeout=30.0,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request with rate limit and retry handling."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with.")

        backoff = INITIAL_BACKOFF
        rate_limit_retries = 0
        attempt = 0

        while True:
            try:
                response = await self._client.request(method, path, params=params)
            except (httpx.TimeoutException, httpx.TransportError) as e:
                if attempt < MAX_RETRIES:
                    attempt += 1
                    reason = "timeout" if isinstance(e, httpx.TimeoutException) else str(e)
                    logger.retry(attempt, MAX_RETRIES, backoff, reason)
                    await asyncio.sleep(backoff)
                    backoff = min(backoff * 2, MAX_BACKOFF)
                    continue
                raise

            if response.status_code == 200:
                return response.json()

            if response.status_code == 204:
                return None

            # Rate limited - wait and retry (doesn't count as attempt)
            if response.status_code == 429:
                rate_limit_retries += 1
                if rate_limit_retries > MAX_RATE_LIMIT_RETRIES:
                    raise DiscordAPIError(429, "Max rate limit retries exceeded")
                retry_after = float(response.headers.get("Retry-After", 1.0))
                logger.rate_limit(retry_after)
                await asyncio.sleep(retry_after)
                continue

            # Client errors - fail immediately
            if response.status_code in (400, 401, 403, 404):
                raise DiscordAPIError(response.status_code, _error_message(response))

            if response.status_code >= 500 and attempt < MAX_RETRIES:
                attempt += 1
                logger.retry(
                    attempt, MAX_RETRIES, backoff, f"HTTP {response.status_code}"
                )
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF)
                continue

            raise DiscordAPIError(response.status_code, response.text)

    # -------------------------------------------------------------------------
    # Guild endpoints
    # -------------------------------------------------------------------------

    async def get_guild_channels(self, guild_id: int) -> list[dict[str, Any]]:
        """Fetch all channels in a guild (excludes threads)."""
        return await self._request("GET", f"/guilds/{guild_id}/channels")

    # -------------------------------------------------------------------------
    # Channel endpoints
    # -------------------------------------------------------------------------

    async def get_channel(self, channel_id: int) -> dict[str, Any]:
        """Fetch channel information."""
        return await self._request("GET", f"/channels/{channel_id}")

    async def get_messages(
        self,
        channel_id: int,
        limit: int = MAX_PAGE_SIZE,
        before: str | int | None = None,
        after: str | int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch a page of messages from a channel.

        Args:
            channel_id: The channel to fetch from
            limit: Max messages to return (1-100)
            before: Get messages strictly older than this message ID
            after: Get messages strictly newer than this message ID

        Returns:
            List of message objects, ordered by ID descending (newest first)
        """
        params: dict[str, Any] = {"limit": min(limit, MAX_PAGE_SIZE)}
        if before is not None:
            params["before"] = str(before)
        if after is not None:
            params["after"] = str(after)
        return await self._request(
            "GET", f"/channels/{channel_id}/messages", params=params
        )


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text
