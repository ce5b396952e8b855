"""Allocation plan, per-strategy results and engine state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from flipalloc.models.market import MarketAnalysis
from flipalloc.models.trade import Trade

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True)
class StrategyAllocation:
    """Greedy allocation result for one strategy.

    ``target_allocation`` / ``actual_allocation`` are fractions of the total
    capital and are filled in by the orchestrator.
    """

    trades: tuple[Trade, ...] = ()
    budget: float = 0.0
    total_allocated: float = 0.0
    total_expected_profit: float = 0.0
    average_margin: float = 0.0
    average_risk: float = 0.0
    utilization: float = 0.0
    target_allocation: float = 0.0
    actual_allocation: float = 0.0

    def to_dict(self) -> dict:
        return {
            "trades": [t.to_dict() for t in self.trades],
            "budget": self.budget,
            "total_allocated": self.total_allocated,
            "total_expected_profit": self.total_expected_profit,
            "average_margin": self.average_margin,
            "average_risk": self.average_risk,
            "utilization": self.utilization,
            "target_allocation": self.target_allocation,
            "actual_allocation": self.actual_allocation,
        }


@dataclass(frozen=True)
class AdjustedAllocation:
    """Strategy weights after market-condition nudges (sum to 1.0)."""

    instant_pct: float
    patient_pct: float
    reason: str = ""


@dataclass(frozen=True)
class Recommendation:
    type: str
    message: str
    priority: str  # "low" | "medium" | "high"


@dataclass(frozen=True)
class AllocationPlan:
    """Output of a single allocate_capital call."""

    total_capital: float
    total_allocated: float
    remaining_capital: float
    allocation_percentage: float
    instant_flips: StrategyAllocation
    patient_offers: StrategyAllocation
    market_analysis: MarketAnalysis
    adjusted_allocation: AdjustedAllocation
    recommendations: tuple[Recommendation, ...]
    timestamp: datetime

    @property
    def total_expected_profit(self) -> float:
        return (
            self.instant_flips.total_expected_profit
            + self.patient_offers.total_expected_profit
        )

    @property
    def trade_count(self) -> int:
        return len(self.instant_flips.trades) + len(self.patient_offers.trades)

    def to_dict(self) -> dict:
        """JSON-safe representation (enum values, ISO timestamps)."""
        return {
            "total_capital": self.total_capital,
            "total_allocated": self.total_allocated,
            "remaining_capital": self.remaining_capital,
            "allocation_percentage": self.allocation_percentage,
            "instant_flips": self.instant_flips.to_dict(),
            "patient_offers": self.patient_offers.to_dict(),
            "market_analysis": self.market_analysis.to_dict(),
            "adjusted_allocation": {
                "instant_pct": self.adjusted_allocation.instant_pct,
                "patient_pct": self.adjusted_allocation.patient_pct,
                "adjustment_reason": self.adjusted_allocation.reason,
            },
            "recommendations": [
                {"type": r.type, "message": r.message, "priority": r.priority}
                for r in self.recommendations
            ],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class AllocationState:
    """Last committed allocation. Replaced wholesale, never mutated."""

    instant_flips: tuple[Trade, ...] = ()
    patient_offers: tuple[Trade, ...] = ()
    total_capital_used: float = 0.0
    available_capital: float = 0.0
    total_profit: float = 0.0
    last_rebalance: datetime = field(default=_EPOCH)

    @property
    def all_trades(self) -> tuple[Trade, ...]:
        return self.instant_flips + self.patient_offers

    @classmethod
    def from_plan(cls, plan: AllocationPlan) -> AllocationState:
        return cls(
            instant_flips=plan.instant_flips.trades,
            patient_offers=plan.patient_offers.trades,
            total_capital_used=plan.total_allocated,
            available_capital=plan.total_capital,
            total_profit=plan.total_expected_profit,
            last_rebalance=plan.timestamp,
        )
