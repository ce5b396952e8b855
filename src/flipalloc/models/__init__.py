"""Data models for flipalloc."""

from flipalloc.models.market import MarketAnalysis, MarketRisk, TimeOfDay, Trend
from flipalloc.models.opportunity import (
    Opportunity,
    OpportunityValidationError,
    RiskLevel,
    parse_opportunities,
)
from flipalloc.models.plan import (
    AdjustedAllocation,
    AllocationPlan,
    AllocationState,
    Recommendation,
    StrategyAllocation,
)
from flipalloc.models.trade import Strategy, Trade

__all__ = [
    "AdjustedAllocation",
    "AllocationPlan",
    "AllocationState",
    "MarketAnalysis",
    "MarketRisk",
    "Opportunity",
    "OpportunityValidationError",
    "Recommendation",
    "RiskLevel",
    "Strategy",
    "StrategyAllocation",
    "TimeOfDay",
    "Trade",
    "Trend",
    "parse_opportunities",
]
