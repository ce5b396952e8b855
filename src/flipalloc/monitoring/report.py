"""Console summary of an allocation plan."""

from __future__ import annotations

from flipalloc.models.plan import AllocationPlan, StrategyAllocation

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def format_gp(amount: float) -> str:
    """1_234_567 → '1.23M', 12_345 → '12.3K', 950 → '950'."""
    sign = "-" if amount < 0 else ""
    value = abs(amount)
    if value >= 1_000_000_000:
        return f"{sign}{value / 1_000_000_000:.2f}B"
    if value >= 1_000_000:
        return f"{sign}{value / 1_000_000:.2f}M"
    if value >= 10_000:
        return f"{sign}{value / 1_000:.1f}K"
    return f"{sign}{value:,.0f}"


def _strategy_lines(title: str, alloc: StrategyAllocation, limit: int) -> list[str]:
    lines = [
        f"{title}: {len(alloc.trades)} trades | "
        f"allocated {format_gp(alloc.total_allocated)} / {format_gp(alloc.budget)} "
        f"({alloc.utilization * 100:.1f}%) | "
        f"target {alloc.target_allocation * 100:.1f}% | "
        f"exp. profit {format_gp(alloc.total_expected_profit)} | "
        f"avg margin {alloc.average_margin:.2f}% | avg risk {alloc.average_risk:.2f}",
    ]
    for trade in alloc.trades[:limit]:
        lines.append(
            f"  {trade.item_name[:32]:<32} x{trade.quantity:<6} "
            f"@ {format_gp(trade.buy_price):>8} → {format_gp(trade.sell_price):>8} "
            f"| {trade.margin_percent:5.2f}% | {trade.risk_level.value:<6} "
            f"| profit {format_gp(trade.expected_profit)}"
        )
    hidden = len(alloc.trades) - limit
    if hidden > 0:
        lines.append(f"  ... {hidden} more")
    return lines


def format_plan_report(plan: AllocationPlan, limit: int = 10) -> str:
    """Multi-line plain-text report of ``plan``."""
    analysis = plan.market_analysis
    adjusted = plan.adjusted_allocation

    lines = [
        "━" * 60,
        f"Capital: {format_gp(plan.total_capital)} | "
        f"Allocated: {format_gp(plan.total_allocated)} "
        f"({plan.allocation_percentage:.1f}%) | "
        f"Remaining: {format_gp(plan.remaining_capital)}",
        f"Market: volatility {analysis.volatility:.3f} | "
        f"liquidity {analysis.liquidity:.2f} | "
        f"sentiment {analysis.market_sentiment.value} | "
        f"risk {analysis.risk_level.value} | {analysis.time_of_day.value}",
        f"Split: instant {adjusted.instant_pct * 100:.1f}% / "
        f"patient {adjusted.patient_pct * 100:.1f}%"
        + (f" ({adjusted.reason})" if adjusted.reason else ""),
        "",
    ]
    lines += _strategy_lines("Instant flips", plan.instant_flips, limit)
    lines.append("")
    lines += _strategy_lines("Patient offers", plan.patient_offers, limit)

    if plan.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        for rec in sorted(
            plan.recommendations, key=lambda r: PRIORITY_ORDER.get(r.priority, 3)
        ):
            lines.append(f"  [{rec.priority.upper()}] {rec.message}")

    lines.append("━" * 60)
    return "\n".join(lines)
