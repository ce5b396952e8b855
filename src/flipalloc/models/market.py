"""MarketAnalysis snapshot and market label enums."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Trend(Enum):
    """Price trend / sentiment direction."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class MarketRisk(Enum):
    """Market-wide qualitative level (risk, opportunity)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimeOfDay(Enum):
    """Trading session bucket derived from the clock hour."""

    PEAK = "peak"
    MORNING = "morning"
    OFF_PEAK = "off-peak"
    NORMAL = "normal"


@dataclass(frozen=True)
class MarketAnalysis:
    """Normalized market conditions for a single allocation call.

    ``volatility`` and ``liquidity`` are 0-1 fractions. ``market_sentiment``
    is derived from trend and volatility; ``sentiment`` is the raw input
    label passed through for auditing.
    """

    volatility: float
    liquidity: float
    trend: Trend
    sentiment: str
    market_sentiment: Trend
    risk_level: MarketRisk
    opportunity_level: MarketRisk
    active_traders: str
    price_stability: str
    time_of_day: TimeOfDay
    day_of_week: str
    is_weekend: bool
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "volatility": self.volatility,
            "liquidity": self.liquidity,
            "trend": self.trend.value,
            "sentiment": self.sentiment,
            "market_sentiment": self.market_sentiment.value,
            "risk_level": self.risk_level.value,
            "opportunity_level": self.opportunity_level.value,
            "active_traders": self.active_traders,
            "price_stability": self.price_stability,
            "time_of_day": self.time_of_day.value,
            "day_of_week": self.day_of_week,
            "is_weekend": self.is_weekend,
            "timestamp": self.timestamp.isoformat(),
        }
