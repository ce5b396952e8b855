"""Tests for AllocationStateStore."""

from __future__ import annotations

import threading

from flipalloc.allocation.orchestrator import AllocationOrchestrator
from flipalloc.allocation.state import AllocationStateStore
from flipalloc.models.plan import AllocationState


def _plan(clock, capital: float = 1_000_000):
    return AllocationOrchestrator(clock=clock).allocate_capital(
        capital,
        [{"itemId": 1, "buyPrice": 1_000, "sellPrice": 1_200, "volume": 5_000,
          "timeToFlip": 30}],
    )


class TestStateStore:
    def test_initial_state_empty(self):
        state = AllocationStateStore().snapshot()
        assert state == AllocationState()

    def test_replace_returns_previous(self):
        store = AllocationStateStore()
        first = store.snapshot()
        new = AllocationState(total_capital_used=5.0)
        assert store.replace(new) is first
        assert store.snapshot() is new

    def test_compare_and_swap(self):
        store = AllocationStateStore()
        current = store.snapshot()
        winner = AllocationState(total_capital_used=1.0)
        loser = AllocationState(total_capital_used=2.0)
        assert store.compare_and_swap(current, winner) is True
        assert store.compare_and_swap(current, loser) is False
        assert store.snapshot() is winner

    def test_commit_updates_state_and_history(self, clock):
        store = AllocationStateStore()
        plan = _plan(clock)
        state = store.commit(plan)
        assert store.snapshot() is state
        assert state.total_capital_used == plan.total_allocated
        assert state.available_capital == plan.total_capital
        assert state.total_profit == plan.total_expected_profit
        assert state.last_rebalance == plan.timestamp
        assert len(store.history()) == 1

    def test_resize_history_keeps_newest(self, clock):
        store = AllocationStateStore(history_size=5)
        for capital in (1e6, 2e6, 3e6):
            store.commit(_plan(clock, capital))
        store.resize_history(2)
        assert [e.total_capital for e in store.history()] == [2e6, 3e6]
        store.commit(_plan(clock, 4e6))
        assert [e.total_capital for e in store.history()] == [3e6, 4e6]

    def test_concurrent_commits(self, clock):
        store = AllocationStateStore()
        plans = [_plan(clock, 1e6 * (i + 1)) for i in range(8)]
        threads = [threading.Thread(target=store.commit, args=(p,)) for p in plans]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.history()) == 8
        assert store.snapshot().available_capital in {p.total_capital for p in plans}
