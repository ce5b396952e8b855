"""Allocation state store — single-writer swap of the committed state."""

from __future__ import annotations

import logging
import threading

from flipalloc.models.plan import AllocationPlan, AllocationState
from flipalloc.monitoring.metrics import AllocationHistory, HistoryEntry

logger = logging.getLogger(__name__)


class AllocationStateStore:
    """Holds the last committed AllocationState and the allocation history.

    Readers get an immutable snapshot. Writers replace the whole state under
    a lock, so two concurrent commits never interleave.

    Args:
        history_size: Max history entries kept.
    """

    def __init__(self, history_size: int = 100):
        self._lock = threading.Lock()
        self._state = AllocationState()
        self._history = AllocationHistory(max_entries=history_size)

    def snapshot(self) -> AllocationState:
        with self._lock:
            return self._state

    def replace(self, new_state: AllocationState) -> AllocationState:
        """Swap in ``new_state``. Returns the previous state."""
        with self._lock:
            previous = self._state
            self._state = new_state
            return previous

    def compare_and_swap(
        self,
        expected: AllocationState,
        new_state: AllocationState,
    ) -> bool:
        """Swap only if the current state is still ``expected`` (identity)."""
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new_state
            return True

    def commit(self, plan: AllocationPlan) -> AllocationState:
        """Replace the state from ``plan`` and record it in history."""
        new_state = AllocationState.from_plan(plan)
        with self._lock:
            self._state = new_state
            self._history.record(plan)
        return new_state

    def history(self, limit: int | None = None) -> list[HistoryEntry]:
        with self._lock:
            return self._history.entries(limit)

    def history_stats(self) -> dict:
        with self._lock:
            return self._history.get_stats()

    def resize_history(self, history_size: int) -> None:
        """Rebuild the history with a new bound, keeping the newest entries."""
        with self._lock:
            self._history = AllocationHistory(
                max_entries=history_size,
                entries=self._history.entries(history_size),
            )
