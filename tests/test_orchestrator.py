"""End-to-end tests for AllocationOrchestrator."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from flipalloc.allocation.orchestrator import AllocationOrchestrator, CapitalValidationError
from flipalloc.config import AllocationConfig, ConfigError
from flipalloc.models.opportunity import (
    OpportunityValidationError,
    RiskLevel,
    parse_opportunities,
)
from flipalloc.strategy.classifier import OpportunityClassifier


def _signal(item_id: int, **kwargs) -> dict:
    record = {
        "itemId": item_id,
        "itemName": f"Item {item_id}",
        "buyPrice": 1_000,
        "sellPrice": 1_200,
        "volume": 5_000,
        "volatility": 10,
        "timeToFlip": 30,
        "riskLevel": "MEDIUM",
        "confidence": 0.7,
    }
    record.update(kwargs)
    return record


@pytest.fixture
def orchestrator(clock) -> AllocationOrchestrator:
    return AllocationOrchestrator(clock=clock)


class TestAllocateCapital:
    def test_conservation(self, orchestrator):
        signals = [_signal(i, buyPrice=500 + 37 * i, sellPrice=700 + 37 * i) for i in range(1, 12)]
        plan = orchestrator.allocate_capital(5_000_000, signals)
        assert plan.total_allocated + plan.remaining_capital == pytest.approx(5_000_000)
        assert plan.total_allocated == pytest.approx(
            plan.instant_flips.total_allocated + plan.patient_offers.total_allocated
        )
        assert plan.allocation_percentage == pytest.approx(plan.total_allocated / 5_000_000 * 100)

    def test_budget_respected(self, orchestrator):
        signals = [_signal(i, buyPrice=90_000 + i, sellPrice=120_000) for i in range(1, 30)]
        plan = orchestrator.allocate_capital(1_000_000, signals)
        assert plan.instant_flips.total_allocated <= plan.instant_flips.budget
        assert plan.patient_offers.total_allocated <= plan.patient_offers.budget
        assert plan.total_allocated <= 1_000_000

    def test_weights_sum_to_one(self, orchestrator):
        plan = orchestrator.allocate_capital(
            1_000_000, [_signal(1)],
            {"volatility": 0.4, "liquidity": 0.2, "trend": "bearish"},
        )
        adjusted = plan.adjusted_allocation
        assert adjusted.instant_pct + adjusted.patient_pct == pytest.approx(1.0)
        assert plan.instant_flips.target_allocation == adjusted.instant_pct
        assert plan.patient_offers.target_allocation == adjusted.patient_pct
        assert plan.instant_flips.budget == pytest.approx(1_000_000 * adjusted.instant_pct)

    def test_neutral_split(self, orchestrator):
        plan = orchestrator.allocate_capital(1_000_000, [_signal(1)], {})
        assert plan.adjusted_allocation.instant_pct == pytest.approx(0.6)
        assert plan.instant_flips.budget == pytest.approx(600_000)
        assert plan.patient_offers.budget == pytest.approx(400_000)

    def test_actual_allocation_is_share_of_capital(self, orchestrator):
        plan = orchestrator.allocate_capital(1_000_000, [_signal(1)])
        assert plan.instant_flips.actual_allocation == pytest.approx(
            plan.instant_flips.total_allocated / 1_000_000
        )

    def test_item_may_appear_in_both_strategies(self, orchestrator):
        plan = orchestrator.allocate_capital(1_000_000, [_signal(1)])
        assert [t.item_id for t in plan.instant_flips.trades] == [1]
        assert [t.item_id for t in plan.patient_offers.trades] == [1]

    def test_degenerate_inputs(self, orchestrator):
        plan = orchestrator.allocate_capital(0, [], {})
        assert plan.total_allocated == 0
        assert plan.remaining_capital == 0
        assert plan.allocation_percentage == 0
        assert plan.instant_flips.trades == ()
        assert plan.patient_offers.trades == ()
        assert plan.instant_flips.actual_allocation == 0
        assert [r.type for r in plan.recommendations] == ["capital_utilization"]

    def test_no_opportunities(self, orchestrator):
        plan = orchestrator.allocate_capital(1_000_000, [])
        assert plan.total_allocated == 0
        assert plan.remaining_capital == 1_000_000

    def test_item_larger_than_slice(self, orchestrator):
        whip = _signal(4151, buyPrice=2_400_000, sellPrice=2_500_000, volume=50)
        plan = orchestrator.allocate_capital(1_000_000, [whip])
        assert plan.instant_flips.trades == ()
        assert plan.patient_offers.trades == ()
        assert plan.total_allocated == 0
        assert plan.remaining_capital == 1_000_000

    def test_qualifying_item_larger_than_both_slices(self, orchestrator):
        item = _signal(4151, buyPrice=2_400_000, sellPrice=2_800_000, volume=5_000)
        plan = orchestrator.allocate_capital(1_000_000, [item])
        assert plan.trade_count == 0
        assert plan.remaining_capital == 1_000_000

    def test_patient_offers_ordered_by_margin(self, orchestrator):
        signals = [
            _signal(1, volume=500, timeToFlip=600, marginPercent=8.0),
            _signal(2, volume=500, timeToFlip=600, marginPercent=20.0),
        ]
        plan = orchestrator.allocate_capital(1_000_000, signals)
        assert plan.instant_flips.trades == ()
        assert [t.item_id for t in plan.patient_offers.trades] == [2, 1]
        # 400k × 5% = 20k → 20 units, then 380k × 5% = 19k → 19 units
        assert [t.quantity for t in plan.patient_offers.trades] == [20, 19]

    def test_stricter_margin_never_adds_trades(self, clock):
        signals = [
            _signal(i, sellPrice=1_000 + 25 * i, volume=500 * i) for i in range(1, 15)
        ]
        loose = AllocationOrchestrator(clock=clock).allocate_capital(10_000_000, signals)
        strict = AllocationOrchestrator(
            config=AllocationConfig(instant_flip_min_margin=0.1, patient_offer_min_margin=0.2),
            clock=clock,
        ).allocate_capital(10_000_000, signals)
        loose_ids = {t.item_id for t in loose.instant_flips.trades}
        strict_ids = {t.item_id for t in strict.instant_flips.trades}
        assert strict_ids <= loose_ids
        assert {t.item_id for t in strict.patient_offers.trades} <= {
            t.item_id for t in loose.patient_offers.trades
        }

    def test_invalid_record_rejected_before_state_change(self, orchestrator):
        before = orchestrator.state
        with pytest.raises(OpportunityValidationError) as exc_info:
            orchestrator.allocate_capital(1_000_000, [_signal(1), {"itemId": 2, "buyPrice": 5}])
        assert exc_info.value.index == 1
        assert orchestrator.state is before
        assert orchestrator.get_allocation_history() == []

    @pytest.mark.parametrize("capital", [float("nan"), float("inf"), float("-inf"), "1000000", True, None])
    def test_invalid_capital_rejected_before_state_change(self, orchestrator, capital):
        before = orchestrator.state
        with pytest.raises(CapitalValidationError):
            orchestrator.allocate_capital(capital, [_signal(1)])
        assert orchestrator.state is before
        assert orchestrator.get_allocation_history() == []

    def test_capital_error_is_value_error(self):
        assert issubclass(CapitalValidationError, ValueError)

    def test_negative_capital_is_no_trade(self, orchestrator):
        plan = orchestrator.allocate_capital(-500_000, [_signal(1)])
        assert plan.trade_count == 0
        assert plan.total_allocated == 0

    def test_mixed_pool_filtered_per_strategy(self, orchestrator):
        signals = [
            _signal(1, riskLevel="HIGH"),
            _signal(2, volatility=60),
            _signal(3, timeToFlip=2_000),
            _signal(4, volatility=40, volume=500, timeToFlip=600),
            _signal(5, riskLevel="HIGH", volume=500, timeToFlip=600),
            _signal(6, riskLevel="LOW"),
            _signal(7),
        ]
        plan = orchestrator.allocate_capital(10_000_000, signals, {"volatility": 0.4})
        assert plan.market_analysis.risk_level.value == "high"

        by_id = {o.item_id: o for o in parse_opportunities(signals)}
        classifier = OpportunityClassifier(orchestrator.config)
        instant = plan.instant_flips.trades
        patient = plan.patient_offers.trades

        assert instant and patient
        assert all(t.risk_level is not RiskLevel.HIGH for t in patient)
        assert all(classifier.is_instant_flip(by_id[t.item_id], plan.market_analysis) for t in instant)
        assert all(classifier.is_patient_offer(by_id[t.item_id]) for t in patient)
        assert {t.item_id for t in instant} <= {6, 7}
        assert {t.item_id for t in patient} <= {6, 7}

    def test_timestamps_from_clock(self, orchestrator, fixed_now):
        plan = orchestrator.allocate_capital(1_000_000, [_signal(1)])
        assert plan.timestamp == fixed_now
        assert plan.market_analysis.timestamp == fixed_now
        assert all(t.timestamp == fixed_now for t in plan.instant_flips.trades)

    def test_weekend_recommendation(self, weekend_clock):
        orch = AllocationOrchestrator(clock=weekend_clock)
        plan = orch.allocate_capital(1_000_000, [_signal(1)])
        assert "timing" in [r.type for r in plan.recommendations]
        assert plan.market_analysis.time_of_day.value == "peak"

    def test_plan_to_dict(self, orchestrator):
        d = orchestrator.allocate_capital(1_000_000, [_signal(1)]).to_dict()
        assert d["instant_flips"]["trades"][0]["strategy"] == "instant_flip"
        assert d["adjusted_allocation"]["adjustment_reason"] == ""
        assert d["market_analysis"]["risk_level"] == "low"
        assert d["timestamp"] == "2026-10-14T14:00:00+00:00"


class TestStatus:
    def test_initial_status(self, orchestrator):
        status = orchestrator.get_current_allocation_status()
        assert status["instant_flips"] == []
        assert status["patient_offers"] == []
        assert status["total_capital_used"] == 0
        assert status["utilization_rate"] == 0.0
        assert status["time_since_last_rebalance"] == 0
        assert status["config"]["instant_flip_allocation"] == 0.6

    def test_status_after_allocation(self):
        now = {"ts": datetime(2026, 10, 14, 14, tzinfo=timezone.utc)}
        orch = AllocationOrchestrator(clock=lambda: now["ts"])
        plan = orch.allocate_capital(1_000_000, [_signal(1)])
        now["ts"] += timedelta(minutes=5)

        status = orch.get_current_allocation_status()
        assert status["total_capital_used"] == plan.total_allocated
        assert status["available_capital"] == 1_000_000
        assert status["total_profit"] == pytest.approx(plan.total_expected_profit)
        assert status["last_rebalance"] == plan.timestamp
        assert status["utilization_rate"] == pytest.approx(plan.total_allocated / 1_000_000)
        assert status["time_since_last_rebalance"] == 300
        assert len(status["instant_flips"]) == len(plan.instant_flips.trades)

    def test_portfolio_metrics(self, orchestrator):
        plan = orchestrator.allocate_capital(1_000_000, [_signal(1), _signal(2)])
        metrics = orchestrator.calculate_portfolio_metrics()
        assert metrics.trade_count == plan.trade_count
        assert metrics.total_allocated == pytest.approx(plan.total_allocated)
        assert metrics.diversification == pytest.approx(2 / plan.trade_count)


class TestUpdateConfig:
    def test_partial_update(self, orchestrator):
        new = orchestrator.update_config({"maxRiskPerTrade": 0.1})
        assert new.max_risk_per_trade == 0.1
        assert orchestrator.config.max_risk_per_trade == 0.1
        assert orchestrator.config.instant_flip_allocation == 0.6

    def test_update_affects_next_allocation(self, orchestrator):
        orchestrator.update_config({"instantFlipAllocation": 0.3, "patientOfferAllocation": 0.7})
        plan = orchestrator.allocate_capital(1_000_000, [_signal(1)])
        assert plan.adjusted_allocation.instant_pct == pytest.approx(0.3)

    def test_invalid_value_leaves_config(self, orchestrator):
        before = orchestrator.config
        with pytest.raises(ConfigError):
            orchestrator.update_config({"maxRiskPerTrade": 2.0})
        assert orchestrator.config is before

    def test_unknown_key(self, orchestrator):
        with pytest.raises(ConfigError, match="Unknown"):
            orchestrator.update_config({"maxLeverage": 3})

    def test_history_size_update(self, orchestrator):
        orchestrator.update_config({"historySize": 2})
        for capital in (1e6, 2e6, 3e6):
            orchestrator.allocate_capital(capital, [_signal(1)])
        history = orchestrator.get_allocation_history()
        assert [e.total_capital for e in history] == [2e6, 3e6]


class TestHistory:
    def test_history_and_stats(self, orchestrator):
        for capital in (1e6, 2e6, 3e6):
            orchestrator.allocate_capital(capital, [_signal(1)])
        assert len(orchestrator.get_allocation_history()) == 3
        assert len(orchestrator.get_allocation_history(limit=1)) == 1
        stats = orchestrator.get_history_stats()
        assert stats["total_allocations"] == 3


class TestConcurrency:
    def test_concurrent_allocations_commit_whole_plans(self, orchestrator):
        plans = []
        lock = threading.Lock()

        def run(capital):
            plan = orchestrator.allocate_capital(capital, [_signal(1), _signal(2)])
            with lock:
                plans.append(plan)

        threads = [threading.Thread(target=run, args=(1e6 * (i + 1),)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(plans) == 8
        assert len(orchestrator.get_allocation_history()) == 8
        state = orchestrator.state
        matching = [p for p in plans if p.total_capital == state.available_capital]
        assert len(matching) == 1
        assert state.total_capital_used == matching[0].total_allocated
        assert state.instant_flips == matching[0].instant_flips.trades
