"""Tests for greedy per-strategy allocation."""

from __future__ import annotations

import pytest

from flipalloc.allocation.strategy_allocator import (
    StrategyAllocator,
    average_margin,
    average_risk,
)
from flipalloc.models.opportunity import Opportunity, RiskLevel
from flipalloc.models.trade import Strategy
from flipalloc.risk.position_sizer import PositionSizer


def _make_opportunity(
    item_id: int,
    buy_price: float = 100.0,
    margin: float = 8.0,
    risk_level: RiskLevel = RiskLevel.MEDIUM,
) -> Opportunity:
    return Opportunity(
        item_id=item_id,
        item_name=f"Item {item_id}",
        buy_price=buy_price,
        sell_price=buy_price * 1.1,
        net_profit_gp=buy_price * margin / 100,
        margin_percent=margin,
        volume=5_000,
        time_to_flip=30.0,
        risk_level=risk_level,
        confidence=1.0,
    )


def _allocator(clock, strategy=Strategy.INSTANT_FLIP, max_risk=0.05) -> StrategyAllocator:
    return StrategyAllocator(strategy, PositionSizer(max_risk_per_trade=max_risk), clock)


class TestAllocate:
    def test_sizes_each_candidate(self, clock, fixed_now):
        result = _allocator(clock).allocate(100_000, [_make_opportunity(1)])
        assert len(result.trades) == 1
        trade = result.trades[0]
        # min(100k × 10% × 1.2 × 1.0, 5k) = 5k → 50 units
        assert trade.quantity == 50
        assert trade.capital_allocated == 5_000
        assert trade.expected_profit == pytest.approx(400)
        assert trade.strategy is Strategy.INSTANT_FLIP
        assert trade.timestamp == fixed_now
        assert result.total_allocated == 5_000
        assert result.utilization == pytest.approx(0.05)

    def test_remaining_budget_shrinks(self, clock):
        result = _allocator(clock).allocate(100_000, [_make_opportunity(1), _make_opportunity(2)])
        # second trade sized against 95k → 4,750 gp
        assert [t.quantity for t in result.trades] == [50, 47]

    def test_keeps_candidate_order(self, clock):
        opps = [_make_opportunity(i) for i in (7, 3, 5)]
        result = _allocator(clock).allocate(100_000, opps)
        assert [t.item_id for t in result.trades] == [7, 3, 5]

    def test_skips_unaffordable_then_continues(self, clock):
        opps = [_make_opportunity(1, buy_price=50_000), _make_opportunity(2)]
        result = _allocator(clock).allocate(10_000, opps)
        assert [t.item_id for t in result.trades] == [2]

    def test_stops_when_budget_used(self, clock):
        opps = [_make_opportunity(1, buy_price=1_000), _make_opportunity(2, buy_price=10)]
        result = _allocator(clock).allocate(1_000, opps)
        assert [t.item_id for t in result.trades] == [1]
        assert result.total_allocated == 1_000
        assert result.utilization == pytest.approx(1.0)

    def test_never_exceeds_budget(self, clock):
        opps = [_make_opportunity(i, buy_price=p) for i, p in enumerate([333, 777, 1_234, 99, 5], 1)]
        result = _allocator(clock, max_risk=1.0).allocate(2_500, opps)
        assert result.total_allocated <= 2_500
        assert sum(t.capital_allocated for t in result.trades) == result.total_allocated

    def test_zero_budget(self, clock):
        result = _allocator(clock).allocate(0, [_make_opportunity(1)])
        assert result.trades == ()
        assert result.total_allocated == 0
        assert result.utilization == 0.0

    def test_no_candidates(self, clock):
        result = _allocator(clock).allocate(50_000, [])
        assert result.trades == ()
        assert result.budget == 50_000
        assert result.average_margin == 0.0
        assert result.average_risk == 0.0

    def test_aggregates(self, clock):
        opps = [
            _make_opportunity(1, margin=10.0, risk_level=RiskLevel.LOW),
            _make_opportunity(2, margin=20.0, risk_level=RiskLevel.HIGH),
        ]
        result = _allocator(clock, Strategy.PATIENT_OFFER).allocate(100_000, opps)
        assert len(result.trades) == 2
        assert result.average_margin == pytest.approx(15.0)
        assert result.average_risk == pytest.approx(0.6)
        assert result.total_expected_profit == pytest.approx(
            sum(t.expected_profit for t in result.trades)
        )
        assert all(t.strategy is Strategy.PATIENT_OFFER for t in result.trades)


class TestAverages:
    def test_empty(self):
        assert average_risk([]) == 0.0
        assert average_margin([]) == 0.0
