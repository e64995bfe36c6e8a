"""Rounding reconciliation of line totals against a transaction target."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from ..utils.numbers import Number, round_half_up
from .models import ResolvedLine
from .profit import with_profit


@dataclass(frozen=True)
class Reconciliation:
    lines: Tuple[ResolvedLine, ...]
    target_rounded: int
    delta: int
    clamped: bool

    @property
    def line_sum(self) -> int:
        return sum(line.line_total for line in self.lines)


def rounded_line_amounts(final_unit_price: Number, quantity: Number) -> Tuple[int, int]:
    """Rounded (sold_price, line_total) for a unit price and quantity."""
    return round_half_up(final_unit_price), round_half_up(final_unit_price * quantity)


def adjust_line(line: ResolvedLine, delta: int) -> Tuple[ResolvedLine, bool]:
    """
    Absorb ``delta`` into a line's total, floored at zero.

    The sold price is re-derived from the new total (quantity 0 counts as
    1) and profit is recomputed from it.

    Returns:
        Tuple of (adjusted line, whether the zero floor clamped the total)
    """
    raw_total = line.line_total + delta
    new_total = max(0, raw_total)
    quantity = line.quantity or 1
    adjusted = replace(
        line,
        line_total=new_total,
        sold_price=round_half_up(new_total / quantity),
    )
    return with_profit(adjusted), raw_total < 0


def reconcile_lines(lines: Sequence[ResolvedLine], target: Optional[Number]) -> Reconciliation:
    """
    Make the rounded line totals of one transaction sum to its rounded target.

    The whole difference goes to the last line. Lines are never modified in
    place: the result holds a new tuple with a new last line when adjusted.

    Args:
        lines: Resolved lines of a single transaction, in insertion order
        target: Unrounded target amount of the transaction

    Returns:
        Reconciliation with the corrected lines, delta and clamp flag
    """
    target_rounded = round_half_up(target or 0)
    delta = target_rounded - sum(line.line_total for line in lines)
    if delta == 0 or not lines:
        return Reconciliation(lines=tuple(lines), target_rounded=target_rounded, delta=delta, clamped=False)

    last, clamped = adjust_line(lines[-1], delta)
    return Reconciliation(
        lines=tuple(lines[:-1]) + (last,),
        target_rounded=target_rounded,
        delta=delta,
        clamped=clamped,
    )
