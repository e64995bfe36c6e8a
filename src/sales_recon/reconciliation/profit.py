"""Per-line profit and margin."""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..utils.numbers import Number, round2
from .models import ResolvedLine


@dataclass(frozen=True)
class Profit:
    profit_per_unit: Number
    profit_total: Number
    margin_percent: float


def compute_profit(sold_price: Number, cost: Number, quantity: Number) -> Profit:
    """
    Derive profit from the sold unit price and unit cost.

    Margin is relative to cost and defined as 0 when cost is 0, whatever
    the sign of the profit.
    """
    per_unit = sold_price - cost
    margin = round2(per_unit / cost * 100) if cost > 0 else 0.0
    return Profit(profit_per_unit=per_unit, profit_total=per_unit * quantity, margin_percent=margin)


def with_profit(line: ResolvedLine) -> ResolvedLine:
    """Return a copy of ``line`` whose profit fields match its sold price."""
    profit = compute_profit(line.sold_price, line.cost, line.quantity)
    return replace(
        line,
        profit_per_unit=profit.profit_per_unit,
        profit_total=profit.profit_total,
        margin_percent=profit.margin_percent,
    )
