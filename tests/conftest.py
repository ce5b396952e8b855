"""Shared test fixtures for flipalloc."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from flipalloc.models.opportunity import Opportunity, RiskLevel

# 2026-10-14 is a Wednesday, 14:00 falls in no session bucket → "normal"
WEDNESDAY_AFTERNOON = datetime(2026, 10, 14, 14, 0, tzinfo=timezone.utc)
SATURDAY_EVENING = datetime(2026, 10, 17, 19, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return WEDNESDAY_AFTERNOON


@pytest.fixture
def clock(fixed_now):
    """Frozen weekday clock."""
    return lambda: fixed_now


@pytest.fixture
def weekend_clock():
    """Frozen Saturday peak-hours clock."""
    return lambda: SATURDAY_EVENING


@pytest.fixture
def sample_opportunity() -> Opportunity:
    """Liquid, fast item that qualifies for both strategies."""
    return Opportunity(
        item_id=11802,
        item_name="Armadyl godsword",
        buy_price=10_000.0,
        sell_price=11_000.0,
        net_profit_gp=780.0,
        margin_percent=7.8,
        volume=5000,
        volatility=10.0,
        time_to_flip=30.0,
        risk_level=RiskLevel.LOW,
        confidence=0.9,
    )


@pytest.fixture
def sample_signal() -> dict:
    """Raw signal-generator record (camelCase)."""
    return {
        "itemId": 4151,
        "itemName": "Abyssal whip",
        "buyPrice": 1_500_000,
        "sellPrice": 1_600_000,
        "netProfitGp": 68_000,
        "marginPercent": 4.53,
        "volume": 12_000,
        "volatility": 12.5,
        "timeToFlip": 45,
        "riskLevel": "LOW",
        "confidence": 0.85,
    }
