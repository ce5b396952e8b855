"""Trade and Strategy data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from flipalloc.models.opportunity import Opportunity, RiskLevel


class Strategy(Enum):
    """Trading style a trade is allocated under."""

    INSTANT_FLIP = "instant_flip"
    PATIENT_OFFER = "patient_offer"


@dataclass(frozen=True)
class Trade:
    """One sized position derived from an Opportunity."""

    item_id: int
    item_name: str
    strategy: Strategy
    buy_price: float
    sell_price: float
    quantity: int
    capital_allocated: float
    expected_profit: float
    margin_percent: float
    risk_level: RiskLevel
    time_to_flip: float
    confidence: float
    timestamp: datetime

    @classmethod
    def from_opportunity(
        cls,
        opportunity: Opportunity,
        strategy: Strategy,
        quantity: int,
        timestamp: datetime,
    ) -> Trade:
        return cls(
            item_id=opportunity.item_id,
            item_name=opportunity.item_name,
            strategy=strategy,
            buy_price=opportunity.buy_price,
            sell_price=opportunity.sell_price,
            quantity=quantity,
            capital_allocated=quantity * opportunity.buy_price,
            expected_profit=opportunity.net_profit_gp * quantity,
            margin_percent=opportunity.margin_percent,
            risk_level=opportunity.risk_level,
            time_to_flip=opportunity.time_to_flip,
            confidence=opportunity.confidence,
            timestamp=timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "strategy": self.strategy.value,
            "buy_price": self.buy_price,
            "sell_price": self.sell_price,
            "quantity": self.quantity,
            "capital_allocated": self.capital_allocated,
            "expected_profit": self.expected_profit,
            "margin_percent": self.margin_percent,
            "risk_level": self.risk_level.value,
            "time_to_flip": self.time_to_flip,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }
