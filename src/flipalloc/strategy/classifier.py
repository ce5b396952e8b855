"""Opportunity classification into instant-flip and patient-offer candidates.

Instant flips prioritize speed and tolerate volatility: thin margins are fine
if volume is high and the round trip is short. Ranked by profit per hour.

Patient offers prioritize margin: lower volume and longer waits are fine, but
volatile or HIGH-risk items are rejected. Ranked by margin.

The two lists are filtered independently; an opportunity may land in
neither or both.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Optional

from flipalloc.config import AllocationConfig
from flipalloc.models.market import MarketAnalysis, MarketRisk
from flipalloc.models.opportunity import Opportunity, RiskLevel

logger = logging.getLogger(__name__)

RankingKey = Callable[[Opportunity], Any]

INSTANT_MAX_VOLATILITY = 50.0
PATIENT_MAX_VOLATILITY = 30.0


def by_profit_per_hour(opportunity: Opportunity) -> float:
    return opportunity.expected_profit_per_hour


def by_margin(opportunity: Opportunity) -> float:
    return opportunity.margin_percent


@dataclass(frozen=True)
class Classification:
    """Ranked candidate lists, best first."""

    instant_candidates: list[Opportunity]
    patient_candidates: list[Opportunity]


class OpportunityClassifier:
    """Filter and rank opportunities per strategy.

    Args:
        config: Margin / volume / duration thresholds.
        instant_key: Sort key for instant flips (descending).
        patient_key: Sort key for patient offers (descending).
    """

    def __init__(
        self,
        config: Optional[AllocationConfig] = None,
        instant_key: RankingKey = by_profit_per_hour,
        patient_key: RankingKey = by_margin,
    ):
        self.config = config or AllocationConfig()
        self.instant_key = instant_key
        self.patient_key = patient_key

    def classify(
        self,
        opportunities: Iterable[Opportunity],
        analysis: MarketAnalysis,
    ) -> Classification:
        pool = list(opportunities)
        instant = [o for o in pool if self.is_instant_flip(o, analysis)]
        patient = [o for o in pool if self.is_patient_offer(o)]

        # sorted() is stable with reverse=True, ties keep input order
        instant = sorted(instant, key=self.instant_key, reverse=True)
        patient = sorted(patient, key=self.patient_key, reverse=True)

        logger.debug(
            "Classified %d opportunities: %d instant, %d patient",
            len(pool), len(instant), len(patient),
        )
        return Classification(instant_candidates=instant, patient_candidates=patient)

    def is_instant_flip(self, opp: Opportunity, analysis: MarketAnalysis) -> bool:
        cfg = self.config
        if opp.margin_percent < cfg.instant_flip_min_margin * 100:
            return False
        if opp.volume < cfg.instant_flip_min_volume:
            return False
        if opp.time_to_flip > cfg.instant_flip_max_hours * 60:
            return False
        if opp.volatility > INSTANT_MAX_VOLATILITY:
            return False
        if opp.risk_level is RiskLevel.HIGH and analysis.risk_level is MarketRisk.HIGH:
            return False
        return True

    def is_patient_offer(self, opp: Opportunity) -> bool:
        cfg = self.config
        if opp.margin_percent < cfg.patient_offer_min_margin * 100:
            return False
        if opp.volume < cfg.patient_offer_min_volume:
            return False
        if opp.time_to_flip > cfg.patient_offer_max_hours * 60:
            return False
        if opp.volatility > PATIENT_MAX_VOLATILITY:
            return False
        if opp.risk_level is RiskLevel.HIGH:
            return False
        return True
