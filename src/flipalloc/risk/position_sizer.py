"""Position sizer — risk-tier, strategy and confidence scaled trade size."""

from __future__ import annotations

import logging
import math

from flipalloc.models.opportunity import Opportunity, RiskLevel
from flipalloc.models.trade import Strategy

logger = logging.getLogger(__name__)

BASE_POSITION_FRACTION = 0.10

RISK_MULTIPLIERS: dict[RiskLevel, float] = {
    RiskLevel.LOW: 1.5,
    RiskLevel.MEDIUM: 1.0,
    RiskLevel.HIGH: 0.5,
}

STRATEGY_MULTIPLIERS: dict[Strategy, float] = {
    Strategy.INSTANT_FLIP: 1.2,
    Strategy.PATIENT_OFFER: 0.8,
}


class PositionSizer:
    """Size a single position in gp.

    size = remaining × 10% × risk × strategy × confidence, capped at
    remaining × max_risk_per_trade and floored at one unit's price.

    Args:
        max_risk_per_trade: 트레이드당 최대 비중 (0-1).
    """

    def __init__(self, max_risk_per_trade: float = 0.05):
        self.max_risk_per_trade = max_risk_per_trade

    def size(
        self,
        opportunity: Opportunity,
        remaining_budget: float,
        strategy: Strategy,
    ) -> float:
        """포지션 사이즈 (gp).

        Returns:
            Monetary position size, or 0.0 when a single unit does not fit
            in ``remaining_budget``.
        """
        unit_price = opportunity.buy_price
        if remaining_budget <= 0 or unit_price > remaining_budget:
            logger.debug(
                "Floor check failed for %s: unit %.0f > remaining %.0f",
                opportunity.item_name, unit_price, remaining_budget,
            )
            return 0.0

        base = remaining_budget * BASE_POSITION_FRACTION
        risk_mult = RISK_MULTIPLIERS.get(opportunity.risk_level, 1.0)
        strategy_mult = STRATEGY_MULTIPLIERS[strategy]
        size = base * risk_mult * strategy_mult * opportunity.confidence

        max_risk_amount = remaining_budget * self.max_risk_per_trade
        size = min(size, max_risk_amount)

        return max(unit_price, size)

    @staticmethod
    def quantity_for(opportunity: Opportunity, position_size: float) -> int:
        """Whole units purchasable with ``position_size``."""
        if position_size <= 0:
            return 0
        return math.floor(position_size / opportunity.buy_price)
