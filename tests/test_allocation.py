"""Tests for order-level discount detection and target policies."""

import pytest

from sales_recon.reconciliation.allocation import (
    TARGET_POLICIES,
    allocate,
    classify_discount,
    detect_order_discount,
    discount_percent,
    manual_payment_target,
    order_target,
)
from sales_recon.reconciliation.models import DiscountKind, TransactionKind
from sales_recon.reconciliation.pricing import resolve_line_pricing

from conftest import make_line


class TestDetectOrderDiscount:

    def test_discount_when_recorded_below_sum(self):
        has_discount, factor = detect_order_discount(90000, 95000)
        assert has_discount
        assert factor == pytest.approx(90000 / 95000)

    @pytest.mark.parametrize("recorded, line_sum", [
        (0, 100),
        (-5, 100),
        (100, 100),
        (120, 100),
        (50, 0),
    ])
    def test_no_discount(self, recorded, line_sum):
        assert detect_order_discount(recorded, line_sum) == (False, 1.0)


class TestTargetPolicies:

    def test_policies_registered_per_kind(self):
        assert TARGET_POLICIES[TransactionKind.ORDER] is order_target
        assert TARGET_POLICIES[TransactionKind.MANUAL_PAYMENT] is manual_payment_target

    def test_order_uses_recorded_total_when_discounted(self):
        assert order_target(90, 100, True) == 90

    def test_order_uses_line_sum_when_recorded_exceeds(self):
        assert order_target(100, 99, False) == 99

    def test_order_uses_line_sum_without_recorded_total(self):
        assert order_target(0, 99, False) == 99

    def test_order_surplus_honored_when_enabled(self):
        assert order_target(100, 99, False, honor_recorded_surplus=True) == 100
        assert order_target(0, 99, False, honor_recorded_surplus=True) == 99

    def test_manual_payment_discards_recorded_surplus(self):
        assert manual_payment_target(500, 400, False) == 400
        assert manual_payment_target(500, 400, False, honor_recorded_surplus=True) == 400
        assert manual_payment_target(300, 400, True) == 300


class TestAllocate:

    def test_scenario_order_discount(self):
        pricings = [
            resolve_line_pricing(make_line(50000)),
            resolve_line_pricing(make_line(50000, discount=10)),
        ]
        allocation = allocate(TransactionKind.ORDER, 90000, pricings)
        assert allocation.individual_sum == 95000
        assert allocation.has_order_discount
        assert allocation.order_factor == pytest.approx(0.947368, abs=1e-6)
        assert allocation.target == 90000

    def test_invalid_recorded_total_is_zero(self):
        pricings = [resolve_line_pricing(make_line(100, quantity=2))]
        allocation = allocate(TransactionKind.ORDER, "n/a", pricings)
        assert allocation.recorded_total == 0
        assert allocation.target == 200
        assert allocation.order_factor == 1.0

    def test_factor_within_unit_interval(self):
        pricings = [resolve_line_pricing(make_line(100))]
        allocation = allocate(TransactionKind.MANUAL_PAYMENT, 1, pricings)
        assert 0 < allocation.order_factor <= 1


class TestClassification:

    @pytest.mark.parametrize("individual, order, expected", [
        (False, False, DiscountKind.NONE),
        (True, False, DiscountKind.INDIVIDUAL),
        (False, True, DiscountKind.ORDER),
        (True, True, DiscountKind.BOTH),
    ])
    def test_classify_discount(self, individual, order, expected):
        assert classify_discount(individual, order) is expected

    def test_discount_percent(self):
        assert discount_percent(45000, 50000) == 10.0
        assert discount_percent(47368.42105, 50000) == 5.26

    def test_discount_percent_zero_real_price(self):
        assert discount_percent(10, 0) == 0.0

    def test_discount_percent_clamped(self):
        assert discount_percent(120, 100) == 0.0
        assert discount_percent(-10, 100) == 100.0
