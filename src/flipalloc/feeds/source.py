"""Market data sources — where opportunities and raw conditions come from."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from flipalloc.feeds.opportunity_builder import (
    build_opportunities,
    estimate_market_conditions,
)
from flipalloc.feeds.wiki_client import WikiPricesClient
from flipalloc.models.opportunity import Opportunity, parse_opportunities

logger = logging.getLogger(__name__)


class MarketDataError(RuntimeError):
    """No usable market data could be fetched."""


@dataclass
class MarketSnapshot:
    """Opportunities plus raw market conditions for one allocation cycle."""

    opportunities: list[Opportunity]
    conditions: dict
    fetched_at: datetime = field(
        default_factory=lambda: datetime.now(tz=timezone.utc)
    )


class MarketDataSource(Protocol):
    async def fetch_snapshot(self) -> MarketSnapshot: ...


class WikiMarketSource:
    """Live snapshot from the OSRS Wiki prices API.

    Args:
        client_factory: Builds the HTTP client (one per snapshot).
        min_volume: Drop items trading less than this per day.
    """

    def __init__(
        self,
        client_factory: Callable[[], WikiPricesClient] = WikiPricesClient,
        min_volume: float = 0,
    ):
        self.client_factory = client_factory
        self.min_volume = min_volume

    async def fetch_snapshot(self) -> MarketSnapshot:
        async with self.client_factory() as client:
            latest = await client.fetch_latest()
            daily = await client.fetch_daily()
            mapping = await client.fetch_mapping()

        if not latest:
            raise MarketDataError("Wiki API returned no latest prices")
        if not daily:
            logger.warning("No 24h data, volumes default to 0")

        opportunities = build_opportunities(
            latest, daily, mapping, min_volume=self.min_volume,
        )
        conditions = estimate_market_conditions(latest, daily, now_ts=time.time())
        return MarketSnapshot(opportunities=opportunities, conditions=conditions)


class FileMarketSource:
    """Snapshot from a JSON file.

    Expected shape::

        {"opportunities": [{...}, ...], "marketConditions": {...}}

    Opportunity records use the signal-generator field names and are
    validated on load.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def fetch_snapshot(self) -> MarketSnapshot:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise MarketDataError(f"Cannot read {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise MarketDataError(f"{self.path}: expected a JSON object")

        conditions = data.get("marketConditions") or data.get("market_conditions") or {}
        return MarketSnapshot(
            opportunities=parse_opportunities(data.get("opportunities") or []),
            conditions=dict(conditions),
        )
