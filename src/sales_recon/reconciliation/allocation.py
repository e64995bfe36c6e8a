"""Order-level discount detection, target selection and proportional allocation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Tuple

from ..utils.numbers import Number, round2, to_number
from .models import DiscountKind, TransactionKind
from .pricing import LinePricing

TargetPolicy = Callable[[Number, Number, bool, bool], Number]


@dataclass(frozen=True)
class OrderAllocation:
    recorded_total: Number
    individual_sum: Number
    has_order_discount: bool
    order_factor: float
    target: Number


def individual_sum(pricings: Iterable[LinePricing]) -> Number:
    """Sum of individually-discounted line amounts, in line order."""
    total: Number = 0
    for pricing in pricings:
        total += pricing.individual_price * pricing.quantity
    return total


def detect_order_discount(recorded_total: Number, line_sum: Number) -> Tuple[bool, float]:
    """
    Infer an order-level discount from the recorded total.

    A discount exists only when both amounts are positive and the recorded
    total is strictly below the sum of individually-discounted lines. The
    returned factor lies in (0, 1].

    Returns:
        Tuple of (has_order_discount, order_factor)
    """
    has_discount = recorded_total > 0 and line_sum > 0 and recorded_total < line_sum
    factor = recorded_total / line_sum if has_discount else 1.0
    return has_discount, factor


def order_target(
    recorded_total: Number,
    line_sum: Number,
    has_order_discount: bool,
    honor_recorded_surplus: bool = False,
) -> Number:
    """
    Target amount for an order (purchase).

    The recorded total is authoritative when it reveals an order discount.
    With ``honor_recorded_surplus`` any positive recorded total is the
    target, even above the line sum; lines then keep their individual price
    and the surplus lands on the last line during reconciliation.
    """
    if has_order_discount:
        return recorded_total
    if honor_recorded_surplus and recorded_total > 0:
        return recorded_total
    return line_sum


def manual_payment_target(
    recorded_total: Number,
    line_sum: Number,
    has_order_discount: bool,
    honor_recorded_surplus: bool = False,
) -> Number:
    """
    Target amount for a manual (store) payment.

    A recorded total at or above the line sum is discarded in favor of the
    line sum, whatever ``honor_recorded_surplus`` says.
    """
    return recorded_total if has_order_discount else line_sum


TARGET_POLICIES: Dict[TransactionKind, TargetPolicy] = {
    TransactionKind.ORDER: order_target,
    TransactionKind.MANUAL_PAYMENT: manual_payment_target,
}


def allocate(
    kind: TransactionKind,
    recorded_total: Any,
    pricings: Iterable[LinePricing],
    honor_recorded_surplus: bool = False,
) -> OrderAllocation:
    """
    Detect the order-level discount of a transaction and select its target.

    Args:
        kind: Transaction kind, selects the target policy
        recorded_total: Raw recorded total (may be missing or invalid)
        pricings: Resolved pricing of every line of the transaction
        honor_recorded_surplus: Order policy switch, see :func:`order_target`

    Returns:
        OrderAllocation with the factor to apply to every line
    """
    recorded = to_number(recorded_total)
    line_sum = individual_sum(pricings)
    has_discount, factor = detect_order_discount(recorded, line_sum)
    policy = TARGET_POLICIES[kind]
    target = policy(recorded, line_sum, has_discount, honor_recorded_surplus)
    return OrderAllocation(
        recorded_total=recorded,
        individual_sum=line_sum,
        has_order_discount=has_discount,
        order_factor=factor,
        target=target,
    )


def classify_discount(has_individual_discount: bool, has_order_discount: bool) -> DiscountKind:
    if has_order_discount:
        return DiscountKind.BOTH if has_individual_discount else DiscountKind.ORDER
    if has_individual_discount:
        return DiscountKind.INDIVIDUAL
    return DiscountKind.NONE


def discount_percent(final_unit_price: Number, real_price: Number) -> float:
    """Effective discount against the real price, in [0, 100], 2 decimals."""
    if real_price <= 0:
        return 0.0
    percent = round2((1 - final_unit_price / real_price) * 100)
    return min(100.0, max(0.0, percent))
