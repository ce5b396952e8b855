"""Grand Exchange tax calculator.

Implements the GE sale tax used for post-tax flip profit:
- 2% of the sell price, rounded down
- Items sold at or below 1,000 gp are tax-free
- Tax per item is capped at 5,000,000 gp

Used for opportunity profit and margin calculations.
"""

from __future__ import annotations

import math

GE_TAX_RATE = 0.02
GE_TAX_THRESHOLD_GP = 1_000
GE_TAX_CAP_GP = 5_000_000


def calculate_ge_tax(price: float) -> int:
    """Calculate the GE tax charged on selling one item at ``price``.

    Examples:
        >>> calculate_ge_tax(1_000)
        0
        >>> calculate_ge_tax(10_000)
        200
        >>> calculate_ge_tax(2_400_000_000)
        5000000
    """
    if price <= GE_TAX_THRESHOLD_GP:
        return 0
    return min(math.floor(price * GE_TAX_RATE), GE_TAX_CAP_GP)


def net_sell_price(sell_price: float) -> float:
    """Sell price after tax."""
    return sell_price - calculate_ge_tax(sell_price)


def profit_after_tax(buy_price: float, sell_price: float) -> float:
    """Per-unit profit of buying at ``buy_price`` and selling at ``sell_price``."""
    return net_sell_price(sell_price) - buy_price


def margin_percent_after_tax(buy_price: float, sell_price: float) -> float:
    """Post-tax profit as a percentage of the buy price (0 for non-positive buys)."""
    if buy_price <= 0:
        return 0.0
    return profit_after_tax(buy_price, sell_price) / buy_price * 100.0


def is_tax_free(price: float) -> bool:
    return price <= GE_TAX_THRESHOLD_GP
