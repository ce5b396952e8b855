"""Allocation engine configuration — dataclass defaults, env and mapping loaders."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass


class ConfigError(ValueError):
    """Raised for unknown configuration keys or out-of-range values."""


# ---------------------------------------------------------------------------
# Wire names used by external callers (camelCase) → field names
# ---------------------------------------------------------------------------

CAMEL_ALIASES: dict[str, str] = {
    "instantFlipAllocation": "instant_flip_allocation",
    "patientOfferAllocation": "patient_offer_allocation",
    "maxRiskPerTrade": "max_risk_per_trade",
    "maxTotalRisk": "max_total_risk",
    "instantFlipMinMargin": "instant_flip_min_margin",
    "patientOfferMinMargin": "patient_offer_min_margin",
    "instantFlipMinVolume": "instant_flip_min_volume",
    "patientOfferMinVolume": "patient_offer_min_volume",
    "instantFlipMaxHours": "instant_flip_max_hours",
    "patientOfferMaxHours": "patient_offer_max_hours",
    "volatilityThreshold": "volatility_threshold",
    "liquidityThreshold": "liquidity_threshold",
    "historySize": "history_size",
}

ENV_PREFIX = "FLIPALLOC_"


@dataclass(frozen=True)
class AllocationConfig:
    """Capital allocation settings. 환경변수 또는 기본값.

    Fractions (allocations, risk limits, margins, thresholds) are 0-1.
    ``max_total_risk`` is advisory: it is validated and reported but no
    allocation step enforces it.
    """

    # Capital split between strategies
    instant_flip_allocation: float = 0.6
    patient_offer_allocation: float = 0.4

    # Risk management
    max_risk_per_trade: float = 0.05
    max_total_risk: float = 0.2

    # Strategy thresholds
    instant_flip_min_margin: float = 0.02
    patient_offer_min_margin: float = 0.05
    instant_flip_min_volume: float = 1000
    patient_offer_min_volume: float = 100
    instant_flip_max_hours: float = 2
    patient_offer_max_hours: float = 24

    # Market condition thresholds
    volatility_threshold: float = 0.15
    liquidity_threshold: float = 0.5

    # Allocation history kept by the orchestrator
    history_size: int = 100

    def __post_init__(self):
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(
                    f"{f.name} must be a number, got {type(value).__name__}"
                )
            if value != value:  # NaN
                raise ConfigError(f"{f.name} must not be NaN")

        for name in ("instant_flip_allocation", "patient_offer_allocation"):
            _check_range(name, getattr(self, name), 0.0, 1.0)
        if self.instant_flip_allocation + self.patient_offer_allocation <= 0:
            raise ConfigError("strategy allocations must not both be zero")

        for name in ("max_risk_per_trade", "max_total_risk"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ConfigError(f"{name} must be in (0, 1], got {value}")

        for name in ("instant_flip_min_margin", "patient_offer_min_margin"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")

        for name in ("instant_flip_min_volume", "patient_offer_min_volume"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")

        for name in ("instant_flip_max_hours", "patient_offer_max_hours"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0")

        if self.volatility_threshold < 0:
            raise ConfigError("volatility_threshold must be >= 0")
        _check_range("liquidity_threshold", self.liquidity_threshold, 0.0, 1.0)

        if not isinstance(self.history_size, int) or self.history_size < 1:
            raise ConfigError("history_size must be a positive integer")

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping) -> AllocationConfig:
        """Build from a mapping with snake_case or camelCase keys."""
        return cls(**_normalize_keys(data))

    @classmethod
    def from_env(cls) -> AllocationConfig:
        """환경변수에서 설정 로드. 없으면 기본값.

        Variables are ``FLIPALLOC_<FIELD_NAME>`` in upper case, e.g.
        ``FLIPALLOC_MAX_RISK_PER_TRADE=0.03``.
        """
        values: dict = {}
        for f in dataclasses.fields(cls):
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                values[f.name] = int(raw) if f.name == "history_size" else float(raw)
            except ValueError as exc:
                raise ConfigError(
                    f"{ENV_PREFIX}{f.name.upper()}={raw!r} is not a number"
                ) from exc
        return cls(**values)

    def merged(self, partial: Mapping) -> AllocationConfig:
        """Return a new validated config with ``partial`` merged on top."""
        return dataclasses.replace(self, **_normalize_keys(partial))

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ConfigError(f"{name} must be in [{low}, {high}], got {value}")


def _normalize_keys(data: Mapping) -> dict:
    known = {f.name for f in dataclasses.fields(AllocationConfig)}
    result: dict = {}
    for key, value in data.items():
        name = CAMEL_ALIASES.get(key, key)
        if name not in known:
            raise ConfigError(f"Unknown configuration option: {key}")
        result[name] = value
    return result
