"""Greedy per-strategy capital allocation.

Single pass over pre-ranked candidates, no backtracking:
1. Stop once the budget is used up
2. Size each candidate against what is left of the budget
3. Keep it if at least one unit fits, otherwise skip it for good

Greedy is deterministic and O(n); it does not look for the best packing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Optional

from flipalloc.analysis.market_conditions import local_now
from flipalloc.models.opportunity import Opportunity, RiskLevel
from flipalloc.models.plan import StrategyAllocation
from flipalloc.models.trade import Strategy, Trade
from flipalloc.risk.position_sizer import PositionSizer

logger = logging.getLogger(__name__)

RISK_SCORES: dict[RiskLevel, float] = {
    RiskLevel.LOW: 0.3,
    RiskLevel.MEDIUM: 0.6,
    RiskLevel.HIGH: 0.9,
}
DEFAULT_RISK_SCORE = 0.6


def average_risk(trades: Iterable[Trade]) -> float:
    """Mean risk score of ``trades`` (LOW 0.3 / MEDIUM 0.6 / HIGH 0.9)."""
    scores = [RISK_SCORES.get(t.risk_level, DEFAULT_RISK_SCORE) for t in trades]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def average_margin(trades: Iterable[Trade]) -> float:
    margins = [t.margin_percent for t in trades]
    if not margins:
        return 0.0
    return sum(margins) / len(margins)


class StrategyAllocator:
    """Consume one strategy's budget against its ranked candidates.

    Args:
        strategy: Strategy tag stamped on produced trades.
        sizer: Position sizer.
        clock: Timestamp source for trades.
    """

    def __init__(
        self,
        strategy: Strategy,
        sizer: PositionSizer,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.strategy = strategy
        self.sizer = sizer
        self.clock = clock or local_now

    def allocate(
        self,
        budget: float,
        candidates: Iterable[Opportunity],
    ) -> StrategyAllocation:
        trades: list[Trade] = []
        total_allocated = 0.0
        total_expected_profit = 0.0
        skipped = 0
        now = self.clock()

        for opp in candidates:
            if total_allocated >= budget:
                break

            remaining = budget - total_allocated
            position_size = self.sizer.size(opp, remaining, self.strategy)
            quantity = self.sizer.quantity_for(opp, position_size)
            if quantity < 1:
                skipped += 1
                continue

            trade = Trade.from_opportunity(opp, self.strategy, quantity, now)
            trades.append(trade)
            total_allocated += trade.capital_allocated
            total_expected_profit += trade.expected_profit

        utilization = total_allocated / budget if budget > 0 else 0.0

        logger.debug(
            "[%s] budget=%.0f allocated=%.0f trades=%d skipped=%d",
            self.strategy.value, budget, total_allocated, len(trades), skipped,
        )
        return StrategyAllocation(
            trades=tuple(trades),
            budget=budget,
            total_allocated=total_allocated,
            total_expected_profit=total_expected_profit,
            average_margin=average_margin(trades),
            average_risk=average_risk(trades),
            utilization=utilization,
        )
