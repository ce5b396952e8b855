"""Market condition analysis — raw signals → MarketAnalysis snapshot.

Rules:
- Sentiment: bullish trend with calm prices → bullish; bearish trend or
  volatility above 30% → bearish; otherwise neutral
- Risk: volatility above 30% or liquidity below 30% → high; volatility above
  15% or liquidity below 50% → medium; otherwise low
- Time of day: bucketed from the injected clock's hour (see TimeOfDayPolicy)

Never raises: missing or unreadable inputs fall back to defaults.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from flipalloc.models.market import MarketAnalysis, MarketRisk, TimeOfDay, Trend

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_VOLATILITY = 0.1
DEFAULT_LIQUIDITY = 0.7
DEFAULT_TREND = "neutral"
DEFAULT_SENTIMENT = "neutral"
DEFAULT_ACTIVE_TRADERS = "medium"
DEFAULT_PRICE_STABILITY = "stable"

WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def local_now() -> datetime:
    """Server local wall-clock time."""
    return datetime.now().astimezone()


@dataclass(frozen=True)
class TimeOfDayPolicy:
    """Hour-of-day session buckets (inclusive bounds, checked in order).

    Defaults: peak 18-22, morning 6-10, off-peak from 22 through 6, else
    normal. Hours come from the clock's own timezone.
    """

    peak: tuple[int, int] = (18, 22)
    morning: tuple[int, int] = (6, 10)
    off_peak_start: int = 22
    off_peak_end: int = 6

    def classify(self, hour: int) -> TimeOfDay:
        if self.peak[0] <= hour <= self.peak[1]:
            return TimeOfDay.PEAK
        if self.morning[0] <= hour <= self.morning[1]:
            return TimeOfDay.MORNING
        if hour >= self.off_peak_start or hour <= self.off_peak_end:
            return TimeOfDay.OFF_PEAK
        return TimeOfDay.NORMAL


class MarketConditionAnalyzer:
    """Converts raw market signals into a normalized MarketAnalysis.

    Args:
        clock: Returns the current time. Defaults to server local time.
        time_policy: Session bucket boundaries.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        time_policy: Optional[TimeOfDayPolicy] = None,
    ):
        self.clock = clock or local_now
        self.time_policy = time_policy or TimeOfDayPolicy()

    def analyze(self, raw_conditions: Optional[Mapping] = None) -> MarketAnalysis:
        raw = raw_conditions or {}

        volatility = _fraction(raw, "volatility", DEFAULT_VOLATILITY)
        liquidity = _fraction(raw, "liquidity", DEFAULT_LIQUIDITY)
        trend = _trend(raw.get("trend"))
        now = self.clock()

        analysis = MarketAnalysis(
            volatility=volatility,
            liquidity=liquidity,
            trend=trend,
            sentiment=_label(raw.get("sentiment"), DEFAULT_SENTIMENT),
            market_sentiment=market_sentiment(trend, volatility),
            risk_level=market_risk_level(volatility, liquidity),
            opportunity_level=opportunity_level(volatility, liquidity),
            active_traders=_label(
                _pick(raw, "activeTraders", "active_traders"), DEFAULT_ACTIVE_TRADERS
            ),
            price_stability=_label(
                _pick(raw, "priceStability", "price_stability"), DEFAULT_PRICE_STABILITY
            ),
            time_of_day=self.time_policy.classify(now.hour),
            day_of_week=WEEKDAYS[now.weekday()],
            is_weekend=now.weekday() >= 5,
            timestamp=now,
        )

        logger.debug(
            "Market conditions analyzed: volatility=%.3f liquidity=%.3f "
            "sentiment=%s risk=%s time=%s",
            analysis.volatility,
            analysis.liquidity,
            analysis.market_sentiment.value,
            analysis.risk_level.value,
            analysis.time_of_day.value,
        )
        return analysis


# ---------------------------------------------------------------------------
# Derived labels
# ---------------------------------------------------------------------------


def market_sentiment(trend: Trend, volatility: float) -> Trend:
    if trend is Trend.BULLISH and volatility < 0.15:
        return Trend.BULLISH
    if trend is Trend.BEARISH or volatility > 0.3:
        return Trend.BEARISH
    return Trend.NEUTRAL


def market_risk_level(volatility: float, liquidity: float) -> MarketRisk:
    if volatility > 0.3 or liquidity < 0.3:
        return MarketRisk.HIGH
    if volatility > 0.15 or liquidity < 0.5:
        return MarketRisk.MEDIUM
    return MarketRisk.LOW


def opportunity_level(volatility: float, liquidity: float) -> MarketRisk:
    """How much flipping room the market offers (moving but liquid = high)."""
    if volatility > 0.1 and liquidity > 0.6:
        return MarketRisk.HIGH
    if volatility > 0.05 and liquidity > 0.4:
        return MarketRisk.MEDIUM
    return MarketRisk.LOW


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------


def _pick(raw: Mapping, *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _fraction(raw: Mapping, key: str, default: float) -> float:
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        logger.warning("Ignoring non-numeric %s=%r, using %.2f", key, value, default)
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s=%r, using %.2f", key, value, default)
        return default
    if number != number:  # NaN
        logger.warning("Ignoring NaN %s, using %.2f", key, default)
        return default
    return number


def _trend(value: Any) -> Trend:
    if isinstance(value, Trend):
        return value
    if isinstance(value, str):
        try:
            return Trend(value.strip().lower())
        except ValueError:
            pass
    if value is not None:
        logger.debug("Unknown trend %r, treating as neutral", value)
    return Trend.NEUTRAL


def _label(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)
