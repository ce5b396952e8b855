"""Allocation orchestrator — capital split between instant flips and patient offers.

Pipeline per call (sequential, pure until the final commit):
    analyze market → adjust weights → classify candidates
    → allocate instant budget → allocate patient budget
    → assemble plan + recommendations → commit state

Degenerate inputs (no capital, no candidates) produce an empty plan rather
than an error.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import threading
from collections.abc import Iterable, Mapping
from typing import Optional

from flipalloc.allocation.recommendations import generate_recommendations
from flipalloc.allocation.state import AllocationStateStore
from flipalloc.allocation.strategy_allocator import StrategyAllocator
from flipalloc.analysis.market_conditions import (
    Clock,
    MarketConditionAnalyzer,
    TimeOfDayPolicy,
    local_now,
)
from flipalloc.config import AllocationConfig
from flipalloc.models.opportunity import Opportunity, parse_opportunities
from flipalloc.models.plan import AllocationPlan, AllocationState
from flipalloc.models.trade import Strategy
from flipalloc.monitoring.metrics import (
    HistoryEntry,
    PortfolioMetrics,
    calculate_portfolio_metrics,
)
from flipalloc.risk.position_sizer import PositionSizer
from flipalloc.strategy.classifier import (
    OpportunityClassifier,
    RankingKey,
    by_margin,
    by_profit_per_hour,
)
from flipalloc.strategy.weights import AllocationWeightAdjuster

logger = logging.getLogger(__name__)


class CapitalValidationError(ValueError):
    """Total capital is not a finite number."""


def _check_capital(total_capital) -> None:
    if isinstance(total_capital, bool) or not isinstance(total_capital, (int, float)):
        raise CapitalValidationError(
            f"capital must be a number, got {type(total_capital).__name__}"
        )
    if not math.isfinite(total_capital):
        raise CapitalValidationError(f"capital must be finite, got {total_capital}")


class AllocationOrchestrator:
    """Façade over the allocation pipeline; owns state and history.

    Args:
        config: Allocation settings (validated on construction).
        clock: Time source for analysis and timestamps.
        time_policy: Session bucket boundaries for time-of-day.
        instant_key: Ranking key for instant-flip candidates.
        patient_key: Ranking key for patient-offer candidates.
    """

    def __init__(
        self,
        config: Optional[AllocationConfig] = None,
        clock: Optional[Clock] = None,
        time_policy: Optional[TimeOfDayPolicy] = None,
        instant_key: RankingKey = by_profit_per_hour,
        patient_key: RankingKey = by_margin,
    ):
        self._config = config or AllocationConfig()
        self.clock = clock or local_now
        self.analyzer = MarketConditionAnalyzer(clock=self.clock, time_policy=time_policy)
        self.instant_key = instant_key
        self.patient_key = patient_key
        self._store = AllocationStateStore(history_size=self._config.history_size)
        self._store.replace(AllocationState(last_rebalance=self.clock()))
        self._config_lock = threading.Lock()

        logger.info(
            "Allocation orchestrator initialized: instant=%.2f patient=%.2f "
            "max_risk_per_trade=%.3f",
            self._config.instant_flip_allocation,
            self._config.patient_offer_allocation,
            self._config.max_risk_per_trade,
        )

    @property
    def config(self) -> AllocationConfig:
        return self._config

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate_capital(
        self,
        total_capital: float,
        opportunities: Iterable[Opportunity | Mapping],
        market_conditions: Optional[Mapping] = None,
    ) -> AllocationPlan:
        """Split ``total_capital`` across both strategies.

        Zero or negative capital yields a plan with no trades.

        Raises:
            CapitalValidationError: ``total_capital`` is a bool, not a number,
                or not finite.
            OpportunityValidationError: a raw opportunity record is malformed.
            Both are raised before any state is touched.
        """
        _check_capital(total_capital)
        pool = parse_opportunities(opportunities)
        config = self._config  # one snapshot per call

        logger.debug(
            "Starting capital allocation: capital=%.0f opportunities=%d",
            total_capital, len(pool),
        )

        analysis = self.analyzer.analyze(market_conditions)

        adjuster = AllocationWeightAdjuster(
            volatility_threshold=config.volatility_threshold,
            liquidity_threshold=config.liquidity_threshold,
        )
        adjusted = adjuster.adjust(
            config.instant_flip_allocation,
            config.patient_offer_allocation,
            analysis,
        )

        classifier = OpportunityClassifier(
            config, instant_key=self.instant_key, patient_key=self.patient_key,
        )
        candidates = classifier.classify(pool, analysis)

        sizer = PositionSizer(max_risk_per_trade=config.max_risk_per_trade)
        instant = StrategyAllocator(Strategy.INSTANT_FLIP, sizer, self.clock).allocate(
            total_capital * adjusted.instant_pct, candidates.instant_candidates,
        )
        patient = StrategyAllocator(Strategy.PATIENT_OFFER, sizer, self.clock).allocate(
            total_capital * adjusted.patient_pct, candidates.patient_candidates,
        )

        total_allocated = instant.total_allocated + patient.total_allocated
        remaining = total_capital - total_allocated

        plan = AllocationPlan(
            total_capital=total_capital,
            total_allocated=total_allocated,
            remaining_capital=remaining,
            allocation_percentage=_share(total_allocated, total_capital) * 100,
            instant_flips=dataclasses.replace(
                instant,
                target_allocation=adjusted.instant_pct,
                actual_allocation=_share(instant.total_allocated, total_capital),
            ),
            patient_offers=dataclasses.replace(
                patient,
                target_allocation=adjusted.patient_pct,
                actual_allocation=_share(patient.total_allocated, total_capital),
            ),
            market_analysis=analysis,
            adjusted_allocation=adjusted,
            recommendations=tuple(
                generate_recommendations(analysis, total_allocated, total_capital)
            ),
            timestamp=self.clock(),
        )

        self._store.commit(plan)

        logger.info(
            "Capital allocation completed: capital=%.0f allocated=%.0f remaining=%.0f "
            "instant=%d patient=%d (%.2f%%)",
            total_capital, total_allocated, remaining,
            len(instant.trades), len(patient.trades), plan.allocation_percentage,
        )
        return plan

    # ------------------------------------------------------------------
    # Status / config
    # ------------------------------------------------------------------

    @property
    def state(self) -> AllocationState:
        return self._store.snapshot()

    def get_current_allocation_status(self) -> dict:
        """Last committed allocation plus live config and utilization."""
        state = self._store.snapshot()
        elapsed = (self.clock() - state.last_rebalance).total_seconds()
        return {
            "instant_flips": list(state.instant_flips),
            "patient_offers": list(state.patient_offers),
            "total_capital_used": state.total_capital_used,
            "available_capital": state.available_capital,
            "total_profit": state.total_profit,
            "last_rebalance": state.last_rebalance,
            "config": self._config.to_dict(),
            "utilization_rate": _share(state.total_capital_used, state.available_capital),
            "time_since_last_rebalance": elapsed,
        }

    def update_config(self, partial: Mapping) -> AllocationConfig:
        """Merge ``partial`` into the live config.

        Raises:
            ConfigError: unknown key or out-of-range value; the live config
                is left unchanged.
        """
        with self._config_lock:
            new_config = self._config.merged(partial)
            if new_config.history_size != self._config.history_size:
                self._store.resize_history(new_config.history_size)
            self._config = new_config

        logger.info(
            "Capital allocation configuration updated: %s", sorted(partial.keys())
        )
        return new_config

    def calculate_portfolio_metrics(self) -> PortfolioMetrics:
        return calculate_portfolio_metrics(self._store.snapshot())

    def get_allocation_history(self, limit: int | None = None) -> list[HistoryEntry]:
        return self._store.history(limit)

    def get_history_stats(self) -> dict:
        return self._store.history_stats()


def _share(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return part / whole
