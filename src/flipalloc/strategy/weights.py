"""Allocation weight adjustment based on market conditions.

Starts from the configured instant-flip / patient-offer split and nudges it:
- High volatility → instant flips (+10%); very calm market → patient offers
- Thin liquidity → patient offers (+5%)
- Bearish sentiment → both strategies shrink (-5% each); bullish → instant
- Peak hours → instant flips (+5%); off-peak → patient offers

Each weight is clamped to [0.2, 0.8] and the pair renormalized to sum to 1.0.
"""

from __future__ import annotations

import logging

from flipalloc.models.market import MarketAnalysis, TimeOfDay, Trend
from flipalloc.models.plan import AdjustedAllocation

logger = logging.getLogger(__name__)

MIN_WEIGHT = 0.2
MAX_WEIGHT = 0.8
LOW_VOLATILITY = 0.05

VOLATILITY_STEP = 0.10
MARKET_STEP = 0.05


class AllocationWeightAdjuster:
    """Perturb base strategy weights from a MarketAnalysis.

    Args:
        volatility_threshold: Above this, instant flips are favored.
        liquidity_threshold: Below this, instant flips are reduced.
    """

    def __init__(
        self,
        volatility_threshold: float = 0.15,
        liquidity_threshold: float = 0.5,
    ):
        self.volatility_threshold = volatility_threshold
        self.liquidity_threshold = liquidity_threshold

    def adjust(
        self,
        base_instant: float,
        base_patient: float,
        analysis: MarketAnalysis,
    ) -> AdjustedAllocation:
        instant = base_instant
        patient = base_patient
        reasons: list[str] = []

        # 1) Volatility
        if analysis.volatility > self.volatility_threshold:
            instant += VOLATILITY_STEP
            patient -= VOLATILITY_STEP
            reasons.append("High volatility favors instant flips")
        elif analysis.volatility < LOW_VOLATILITY:
            instant -= VOLATILITY_STEP
            patient += VOLATILITY_STEP
            reasons.append("Low volatility favors patient offers")

        # 2) Liquidity
        if analysis.liquidity < self.liquidity_threshold:
            instant -= MARKET_STEP
            patient += MARKET_STEP
            reasons.append("Low liquidity reduces instant flip allocation")

        # 3) Sentiment
        if analysis.market_sentiment is Trend.BEARISH:
            instant -= MARKET_STEP
            patient -= MARKET_STEP
            reasons.append("Bearish market reduces overall risk")
        elif analysis.market_sentiment is Trend.BULLISH:
            instant += MARKET_STEP
            patient -= MARKET_STEP
            reasons.append("Bullish market increases instant flip allocation")

        # 4) Session
        if analysis.time_of_day is TimeOfDay.PEAK:
            instant += MARKET_STEP
            patient -= MARKET_STEP
            reasons.append("Peak hours favor instant flips")
        elif analysis.time_of_day is TimeOfDay.OFF_PEAK:
            instant -= MARKET_STEP
            patient += MARKET_STEP
            reasons.append("Off-peak hours favor patient offers")

        instant = _clamp(instant)
        patient = _clamp(patient)
        total = instant + patient
        instant /= total
        patient /= total

        logger.debug(
            "Adjusted allocation %.2f/%.2f → %.3f/%.3f (%s)",
            base_instant, base_patient, instant, patient,
            "; ".join(reasons) or "no adjustment",
        )
        return AdjustedAllocation(
            instant_pct=instant,
            patient_pct=patient,
            reason="; ".join(reasons),
        )


def _clamp(weight: float) -> float:
    return max(MIN_WEIGHT, min(MAX_WEIGHT, weight))
