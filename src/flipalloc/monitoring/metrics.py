"""Portfolio metrics and allocation history.

할당 결과 기록 → 통계 집계 (avg utilization, expected profit, 시간대별 요약).
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from flipalloc.allocation.strategy_allocator import average_margin, average_risk
from flipalloc.models.plan import AllocationPlan, AllocationState


@dataclass(frozen=True)
class PortfolioMetrics:
    """Aggregate view over the trades of the last committed allocation."""

    total_capital: float
    total_allocated: float
    total_expected_profit: float
    average_margin: float
    average_risk: float
    diversification: float  # unique items / trades
    trade_count: int
    utilization_rate: float


def calculate_portfolio_metrics(state: AllocationState) -> PortfolioMetrics:
    trades = state.all_trades
    capital = state.available_capital
    if not trades:
        return PortfolioMetrics(
            total_capital=capital,
            total_allocated=0.0,
            total_expected_profit=0.0,
            average_margin=0.0,
            average_risk=0.0,
            diversification=0.0,
            trade_count=0,
            utilization_rate=0.0,
        )

    total_allocated = sum(t.capital_allocated for t in trades)
    unique_items = len({t.item_id for t in trades})
    return PortfolioMetrics(
        total_capital=capital,
        total_allocated=total_allocated,
        total_expected_profit=sum(t.expected_profit for t in trades),
        average_margin=average_margin(trades),
        average_risk=average_risk(trades),
        diversification=unique_items / len(trades),
        trade_count=len(trades),
        utilization_rate=total_allocated / capital if capital > 0 else 0.0,
    )


@dataclass(frozen=True)
class HistoryEntry:
    """단일 할당 요약."""

    timestamp: datetime
    total_capital: float
    total_allocated: float
    expected_profit: float
    instant_count: int
    patient_count: int
    instant_pct: float
    patient_pct: float
    market_risk: str

    @property
    def utilization(self) -> float:
        if self.total_capital <= 0:
            return 0.0
        return self.total_allocated / self.total_capital

    @classmethod
    def from_plan(cls, plan: AllocationPlan) -> HistoryEntry:
        return cls(
            timestamp=plan.timestamp,
            total_capital=plan.total_capital,
            total_allocated=plan.total_allocated,
            expected_profit=plan.total_expected_profit,
            instant_count=len(plan.instant_flips.trades),
            patient_count=len(plan.patient_offers.trades),
            instant_pct=plan.adjusted_allocation.instant_pct,
            patient_pct=plan.adjusted_allocation.patient_pct,
            market_risk=plan.market_analysis.risk_level.value,
        )


class AllocationHistory:
    """Bounded allocation history. Oldest entries drop off first.

    Not thread-safe on its own; AllocationStateStore serializes writers.
    """

    def __init__(self, max_entries: int = 100, entries: Iterable[HistoryEntry] = ()):
        self._entries: deque[HistoryEntry] = deque(entries, maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, plan: AllocationPlan) -> HistoryEntry:
        entry = HistoryEntry.from_plan(plan)
        self._entries.append(entry)
        return entry

    def entries(self, limit: int | None = None) -> list[HistoryEntry]:
        """Newest last. ``limit`` keeps only the most recent entries."""
        items = list(self._entries)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def get_stats(self) -> dict:
        """전체 통계 집계.

        Returns:
            dict with total_allocations, avg_utilization, avg_instant_pct,
            total_expected_profit, by_market_risk.
        """
        total = len(self._entries)
        if total == 0:
            return {
                "total_allocations": 0,
                "avg_utilization": 0.0,
                "avg_instant_pct": 0.0,
                "total_expected_profit": 0.0,
                "by_market_risk": {},
            }

        by_risk: dict[str, dict] = defaultdict(
            lambda: {"count": 0, "expected_profit": 0.0}
        )
        for e in self._entries:
            by_risk[e.market_risk]["count"] += 1
            by_risk[e.market_risk]["expected_profit"] += e.expected_profit

        return {
            "total_allocations": total,
            "avg_utilization": sum(e.utilization for e in self._entries) / total,
            "avg_instant_pct": sum(e.instant_pct for e in self._entries) / total,
            "total_expected_profit": sum(e.expected_profit for e in self._entries),
            "by_market_risk": dict(by_risk),
        }

    def hourly_summary(self) -> list[dict]:
        """시간당 요약 리스트.

        Returns:
            list of dicts: [{hour, count, allocated, expected_profit}, ...]
        """
        hourly: dict[str, list[HistoryEntry]] = defaultdict(list)
        for e in self._entries:
            hourly[e.timestamp.strftime("%Y-%m-%d %H:00")].append(e)

        return [
            {
                "hour": hour,
                "count": len(entries),
                "allocated": sum(e.total_allocated for e in entries),
                "expected_profit": sum(e.expected_profit for e in entries),
            }
            for hour, entries in sorted(hourly.items())
        ]

    def reset(self) -> None:
        self._entries.clear()
