"""Plan recommendations — pure function of utilization and market analysis."""

from __future__ import annotations

from flipalloc.models.market import MarketAnalysis
from flipalloc.models.plan import Recommendation

LOW_UTILIZATION = 0.5
HIGH_UTILIZATION = 0.9
HIGH_VOLATILITY = 0.3
LOW_LIQUIDITY = 0.3


def generate_recommendations(
    analysis: MarketAnalysis,
    total_allocated: float,
    total_capital: float,
) -> list[Recommendation]:
    """Advice for the operator based on how much capital found a home."""
    recommendations: list[Recommendation] = []
    utilization = total_allocated / total_capital if total_capital > 0 else 0.0

    if utilization < LOW_UTILIZATION:
        recommendations.append(Recommendation(
            type="capital_utilization",
            message="Low capital utilization - consider lowering minimum margins",
            priority="medium",
        ))

    if utilization > HIGH_UTILIZATION:
        recommendations.append(Recommendation(
            type="capital_utilization",
            message="High capital utilization - ensure adequate reserves",
            priority="high",
        ))

    if analysis.volatility > HIGH_VOLATILITY:
        recommendations.append(Recommendation(
            type="market_condition",
            message="High volatility detected - consider reducing position sizes",
            priority="high",
        ))

    if analysis.liquidity < LOW_LIQUIDITY:
        recommendations.append(Recommendation(
            type="market_condition",
            message="Low liquidity - focus on high-volume items",
            priority="medium",
        ))

    if analysis.is_weekend:
        recommendations.append(Recommendation(
            type="timing",
            message="Weekend trading - expect lower volumes",
            priority="low",
        ))

    return recommendations
