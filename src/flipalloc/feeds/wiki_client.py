"""OSRS Wiki real-time prices API client with retry and error handling."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

WIKI_PRICES_URL = "https://prices.runescape.wiki/api/v1/osrs"
# The wiki blocks default library user agents; identify the tool.
DEFAULT_USER_AGENT = "flipalloc/0.1 (capital allocation research)"
DEFAULT_TIMEOUT = 10  # seconds
DEFAULT_MAX_RETRIES = 3


class WikiPricesClient:
    """Async client for the OSRS Wiki prices API.

    Usage:
        async with WikiPricesClient() as client:
            latest = await client.fetch_latest()
    """

    def __init__(
        self,
        base_url: str = WIKI_PRICES_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_retries = max_retries
        self._session: Optional[aiohttp.ClientSession] = None

    async def open(self) -> None:
        """Open aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            )

    async def close(self) -> None:
        """Close aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> WikiPricesClient:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_latest(self) -> dict[int, dict]:
        """GET /latest — 최신 instant buy/sell 가격. 실패 시 빈 dict.

        Returns:
            {item_id: {"high", "highTime", "low", "lowTime"}}
        """
        payload = await self._get_dict(f"{self.base_url}/latest", {})
        return _item_table(payload)

    async def fetch_daily(self) -> dict[int, dict]:
        """GET /24h — 24시간 평균가 및 거래량. 실패 시 빈 dict.

        Returns:
            {item_id: {"avgHighPrice", "highPriceVolume", "avgLowPrice",
            "lowPriceVolume"}}
        """
        payload = await self._get_dict(f"{self.base_url}/24h", {})
        return _item_table(payload)

    async def fetch_mapping(self) -> dict[int, dict]:
        """GET /mapping — item metadata (name, buy limit). 실패 시 빈 dict."""
        rows = await self._get_list(f"{self.base_url}/mapping", {})
        mapping: dict[int, dict] = {}
        for row in rows:
            try:
                mapping[int(row["id"])] = row
            except (KeyError, TypeError, ValueError):
                continue
        return mapping

    # ------------------------------------------------------------------
    # HTTP helpers with retry
    # ------------------------------------------------------------------

    async def _get_json(self, url: str, params: dict):
        """GET → parsed JSON. 429시 지수 백오프. 실패 시 None."""
        if self._session is None or self._session.closed:
            await self.open()

        for attempt in range(1, self.max_retries + 1):
            try:
                async with self._session.get(url, params=params) as resp:
                    if resp.status == 200:
                        return await resp.json()
                    if resp.status == 429:
                        wait = 1.0 * (2 ** (attempt - 1))
                        logger.warning(
                            "API 429 rate limit %s (attempt %d/%d), backing off %.1fs",
                            url, attempt, self.max_retries, wait,
                        )
                        await asyncio.sleep(wait)
                        continue
                    logger.warning(
                        "Wiki API %s returned %d (attempt %d/%d)",
                        url, resp.status, attempt, self.max_retries,
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError, TimeoutError, ValueError) as exc:
                logger.warning(
                    "Wiki API %s error (attempt %d/%d): %s",
                    url, attempt, self.max_retries, exc,
                )

            if attempt < self.max_retries:
                await asyncio.sleep(0.1 * (2 ** (attempt - 1)))

        return None

    async def _get_dict(self, url: str, params: dict) -> Optional[dict]:
        data = await self._get_json(url, params)
        return data if isinstance(data, dict) else None

    async def _get_list(self, url: str, params: dict) -> list[dict]:
        data = await self._get_json(url, params)
        return data if isinstance(data, list) else []


def _item_table(payload: Optional[dict]) -> dict[int, dict]:
    """{"data": {"4151": {...}}} → {4151: {...}}."""
    if not payload:
        return {}
    data = payload.get("data")
    if not isinstance(data, dict):
        return {}
    table: dict[int, dict] = {}
    for key, row in data.items():
        if not isinstance(row, dict):
            continue
        try:
            table[int(key)] = row
        except (TypeError, ValueError):
            continue
    return table
