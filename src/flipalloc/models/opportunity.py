"""Opportunity and RiskLevel data models."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from flipalloc.strategy.ge_tax import profit_after_tax

DEFAULT_CONFIDENCE = 0.7
DEFAULT_TIME_TO_FLIP_MINUTES = 60.0


class RiskLevel(Enum):
    """Per-item risk tier assigned by the signal generator."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def parse(cls, value: Any) -> RiskLevel:
        if isinstance(value, RiskLevel):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise OpportunityValidationError("riskLevel", f"unknown risk level {value!r}")


class OpportunityValidationError(ValueError):
    """A candidate trade record has a missing or malformed field."""

    def __init__(self, field_name: str, message: str, index: Optional[int] = None):
        self.field = field_name
        self.reason = message
        self.index = index
        prefix = f"opportunity[{index}] " if index is not None else ""
        super().__init__(f"{prefix}{field_name}: {message}")


@dataclass(frozen=True)
class Opportunity:
    """A candidate trade surfaced by the signal generator.

    Prices and profits are in gp per unit. ``margin_percent`` is a
    percentage (5.0 means 5%), ``volatility`` is on a 0-100 scale and
    ``time_to_flip`` is in minutes.
    """

    item_id: int
    item_name: str
    buy_price: float
    sell_price: float
    net_profit_gp: float
    margin_percent: float
    volume: float = 0.0
    volatility: float = 0.0
    time_to_flip: float = DEFAULT_TIME_TO_FLIP_MINUTES
    risk_level: RiskLevel = RiskLevel.MEDIUM
    confidence: float = DEFAULT_CONFIDENCE
    expected_profit_per_hour: Optional[float] = field(default=None, compare=False)

    def __post_init__(self):
        if self.expected_profit_per_hour is None:
            object.__setattr__(
                self,
                "expected_profit_per_hour",
                hourly_profit(self.net_profit_gp, self.time_to_flip),
            )

    @classmethod
    def from_signal(cls, raw: Mapping, index: Optional[int] = None) -> Opportunity:
        """Signal record (camelCase or snake_case keys) → Opportunity.

        Raises:
            OpportunityValidationError: required field missing, a present
                field is not a finite number, or confidence is outside [0, 1].
        """
        if isinstance(raw, Opportunity):
            return raw
        if not isinstance(raw, Mapping):
            raise OpportunityValidationError(
                "record", f"expected a mapping, got {type(raw).__name__}", index
            )

        try:
            item_id_raw = _pick(raw, "itemId", "item_id")
            if item_id_raw is None:
                raise OpportunityValidationError("itemId", "is required")
            item_id = _number(item_id_raw, "itemId")
            if item_id != int(item_id) or item_id <= 0:
                raise OpportunityValidationError("itemId", "must be a positive integer")
            item_id = int(item_id)

            buy_price = _required_price(raw, "buyPrice", "buy_price")
            sell_price = _required_price(raw, "sellPrice", "sell_price")

            net_profit = _optional_number(raw, "netProfitGp", "net_profit_gp")
            if net_profit is None:
                net_profit = profit_after_tax(buy_price, sell_price)

            margin = _optional_number(raw, "marginPercent", "margin_percent")
            if margin is None:
                margin = net_profit / buy_price * 100.0

            volume = _optional_number(raw, "volume")
            volatility = _optional_number(raw, "volatility")
            time_to_flip = _optional_number(raw, "timeToFlip", "time_to_flip")
            confidence = _optional_number(raw, "confidence")
            if confidence is not None and not 0.0 <= confidence <= 1.0:
                raise OpportunityValidationError("confidence", "must be between 0 and 1")
            per_hour = _optional_number(
                raw, "expectedProfitPerHour", "expected_profit_per_hour"
            )

            risk_raw = _pick(raw, "riskLevel", "risk_level")
            risk_level = RiskLevel.MEDIUM if risk_raw is None else RiskLevel.parse(risk_raw)

            name = _pick(raw, "itemName", "item_name")
        except OpportunityValidationError as exc:
            if index is None:
                raise
            raise OpportunityValidationError(exc.field, exc.reason, index) from exc

        return cls(
            item_id=item_id,
            item_name=str(name) if name else f"Item {item_id}",
            buy_price=buy_price,
            sell_price=sell_price,
            net_profit_gp=net_profit,
            margin_percent=margin,
            volume=0.0 if volume is None else volume,
            volatility=0.0 if volatility is None else volatility,
            time_to_flip=DEFAULT_TIME_TO_FLIP_MINUTES if time_to_flip is None else time_to_flip,
            risk_level=risk_level,
            confidence=DEFAULT_CONFIDENCE if confidence is None else confidence,
            expected_profit_per_hour=per_hour,
        )


def hourly_profit(net_profit_gp: float, time_to_flip: float) -> float:
    """Profit per hour of one unit. Flips under a minute count as one minute."""
    minutes = max(time_to_flip, 1.0)
    return net_profit_gp / (minutes / 60.0)


def parse_opportunities(records: Iterable[Mapping | Opportunity]) -> list[Opportunity]:
    """Parse a batch of signal records, failing on the first bad one."""
    return [Opportunity.from_signal(raw, index=i) for i, raw in enumerate(records)]


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _pick(raw: Mapping, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise OpportunityValidationError(name, "must be a number, got bool")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise OpportunityValidationError(name, f"must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise OpportunityValidationError(name, "must be finite")
    return number


def _optional_number(raw: Mapping, *keys: str) -> Optional[float]:
    value = _pick(raw, *keys)
    if value is None:
        return None
    return _number(value, keys[0])


def _required_price(raw: Mapping, *keys: str) -> float:
    value = _pick(raw, *keys)
    if value is None:
        raise OpportunityValidationError(keys[0], "is required")
    price = _number(value, keys[0])
    if price <= 0:
        raise OpportunityValidationError(keys[0], "must be positive")
    return price
