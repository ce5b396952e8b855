"""Build Opportunity records and raw market conditions from wiki price data.

Heuristic signal source used when no ML signal generator is wired in:
- Buy at the latest instant-sell (low) price, sell at the instant-buy (high)
- Profit and margin are after GE tax
- Volume is the 24h traded volume (both sides)
- Volatility is how far the latest mid price sits from the 24h average (0-100)
- Time to flip is how long the market takes to trade one buy limit, both ways
"""

from __future__ import annotations

import logging
import statistics
from typing import Optional

from flipalloc.models.opportunity import Opportunity, RiskLevel
from flipalloc.strategy.ge_tax import profit_after_tax

logger = logging.getLogger(__name__)

DEFAULT_BUY_LIMIT = 100
UNKNOWN_VOLATILITY = 20.0
MAX_TIME_TO_FLIP_MINUTES = 7 * 24 * 60  # GE offers expire after a week
FRESH_TRADE_SECONDS = 3600
TREND_BAND = 0.01


def build_opportunities(
    latest: dict[int, dict],
    daily: dict[int, dict],
    mapping: dict[int, dict],
    min_volume: float = 0,
) -> list[Opportunity]:
    """Wiki tables → profitable Opportunity list (unsorted).

    Items without both prices, without post-tax profit, or below
    ``min_volume`` are skipped.
    """
    opportunities: list[Opportunity] = []
    for item_id, prices in latest.items():
        high = _positive(prices.get("high"))
        low = _positive(prices.get("low"))
        if high is None or low is None or high <= low:
            continue

        net_profit = profit_after_tax(low, high)
        if net_profit <= 0:
            continue

        day = daily.get(item_id, {})
        volume = _volume(day)
        if volume < min_volume:
            continue

        meta = mapping.get(item_id, {})
        volatility = price_volatility(prices, day)
        buy_limit = _positive(meta.get("limit")) or DEFAULT_BUY_LIMIT

        opportunities.append(Opportunity(
            item_id=item_id,
            item_name=str(meta.get("name") or f"Item {item_id}"),
            buy_price=low,
            sell_price=high,
            net_profit_gp=net_profit,
            margin_percent=net_profit / low * 100.0,
            volume=volume,
            volatility=volatility,
            time_to_flip=estimate_time_to_flip(buy_limit, volume),
            risk_level=classify_risk(volatility, volume),
            confidence=estimate_confidence(volatility, volume),
        ))

    logger.info(
        "Built %d opportunities from %d priced items", len(opportunities), len(latest)
    )
    return opportunities


def price_volatility(prices: dict, day: dict) -> float:
    """Deviation of the latest mid price from the 24h average mid, 0-100."""
    deviation = _mid_deviation(prices, day)
    if deviation is None:
        return UNKNOWN_VOLATILITY
    return min(100.0, abs(deviation) * 100.0)


def estimate_time_to_flip(buy_limit: float, daily_volume: float) -> float:
    """Minutes for the market to absorb one buy limit on each side."""
    hourly = daily_volume / 24.0
    if hourly <= 0:
        return float(MAX_TIME_TO_FLIP_MINUTES)
    minutes = 2 * 60.0 * buy_limit / hourly
    return max(1.0, min(float(MAX_TIME_TO_FLIP_MINUTES), minutes))


def classify_risk(volatility: float, volume: float) -> RiskLevel:
    if volatility > 30 or volume < 100:
        return RiskLevel.HIGH
    if volatility <= 10 and volume >= 1000:
        return RiskLevel.LOW
    return RiskLevel.MEDIUM


def estimate_confidence(volatility: float, volume: float) -> float:
    """Liquid and calm → confident. Clamped to [0.1, 1.0]."""
    score = 0.5 + 0.4 * min(1.0, volume / 10_000) - 0.3 * (volatility / 100.0)
    return round(max(0.1, min(1.0, score)), 4)


def estimate_market_conditions(
    latest: dict[int, dict],
    daily: dict[int, dict],
    now_ts: float,
) -> dict:
    """Market-wide raw conditions for MarketConditionAnalyzer.

    - volatility: median |latest mid / 24h mid - 1| (0-1)
    - liquidity: share of priced items traded on both sides within the hour
    - trend: mean mid drift beyond ±1% → bullish / bearish
    """
    deviations: list[float] = []
    fresh = 0
    priced = 0

    for item_id, prices in latest.items():
        if _positive(prices.get("high")) is None or _positive(prices.get("low")) is None:
            continue
        priced += 1
        high_time = prices.get("highTime") or 0
        low_time = prices.get("lowTime") or 0
        if min(high_time, low_time) >= now_ts - FRESH_TRADE_SECONDS:
            fresh += 1
        deviation = _mid_deviation(prices, daily.get(item_id, {}))
        if deviation is not None:
            deviations.append(deviation)

    if not priced:
        return {}

    conditions: dict = {"liquidity": fresh / priced}
    if deviations:
        drift = statistics.fmean(deviations)
        conditions["volatility"] = statistics.median(abs(d) for d in deviations)
        if drift > TREND_BAND:
            conditions["trend"] = "bullish"
        elif drift < -TREND_BAND:
            conditions["trend"] = "bearish"
        else:
            conditions["trend"] = "neutral"
        conditions["priceStability"] = (
            "unstable" if conditions["volatility"] > 0.15 else "stable"
        )

    liquidity = conditions["liquidity"]
    conditions["activeTraders"] = (
        "high" if liquidity > 0.6 else "medium" if liquidity > 0.3 else "low"
    )
    return conditions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _positive(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _volume(day: dict) -> float:
    total = 0.0
    for key in ("highPriceVolume", "lowPriceVolume"):
        value = _positive(day.get(key))
        if value is not None:
            total += value
    return total


def _mid_deviation(prices: dict, day: dict) -> Optional[float]:
    high = _positive(prices.get("high"))
    low = _positive(prices.get("low"))
    avg_high = _positive(day.get("avgHighPrice"))
    avg_low = _positive(day.get("avgLowPrice"))
    if None in (high, low, avg_high, avg_low):
        return None
    avg_mid = (avg_high + avg_low) / 2
    return (high + low) / 2 / avg_mid - 1.0
