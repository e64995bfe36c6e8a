"""Tests for line pricing resolution."""

import pytest

from sales_recon.reconciliation.models import LineItem
from sales_recon.reconciliation.pricing import (
    DEFAULT_BRAND,
    DEFAULT_CATEGORY,
    DEFAULT_PRODUCT_NAME,
    DEFAULT_TONE,
    SOURCE_LINE,
    SOURCE_PRODUCT,
    normalize_discount_factor,
    resolve_line_pricing,
    resolve_product_fields,
)

from conftest import make_line, make_product


class TestNormalizeDiscountFactor:
    """Stored discount values map onto a fraction in [0, 1]."""

    @pytest.mark.parametrize("value, expected", [
        (None, 0.0),
        (-5, 0.0),
        (0, 0.0),
        (0.25, 0.25),
        (1, 1.0),
        (10, 0.10),
        (100, 1.0),
        (150, 1.0),
        ("abc", 0.0),
    ])
    def test_normalization(self, value, expected):
        assert normalize_discount_factor(value) == pytest.approx(expected)


class TestResolveProductFields:
    """Master/instance field precedence."""

    def test_fields_come_from_instance_without_master(self):
        fields = resolve_product_fields(make_product(100, discount=5, cost=40, tone="Nude"))
        assert fields.real_price == 100
        assert fields.discount_value == 5
        assert fields.cost == 40
        assert fields.tone == "Nude"
        assert fields.brand == "Marca"

    def test_master_overrides_pricing_but_not_tone(self):
        master = make_product(80, discount=20, name="Maestro", brand="Glow", category="Ojos",
                              tone="Negro", product_id="m")
        instance = make_product(10, discount=0, name="Instancia", brand="Otra", category="Otra",
                                color="Azul", ref=master)
        fields = resolve_product_fields(instance)
        assert fields.real_price == 80
        assert fields.discount_value == 20
        assert fields.name == "Maestro"
        assert fields.brand == "Glow"
        assert fields.category == "Ojos"
        assert fields.tone == "Azul"

    def test_missing_master_discount_falls_back_to_instance(self):
        master = make_product(80, discount=None, product_id="m")
        instance = make_product(10, discount=15, ref=master)
        assert resolve_product_fields(instance).discount_value == 15

    def test_color_wins_over_tone(self):
        fields = resolve_product_fields(make_product(10, tone="Beige", color="Rojo"))
        assert fields.tone == "Rojo"

    def test_display_fallbacks(self):
        fields = resolve_product_fields(make_product(10, name="  ", brand=None, category=None))
        assert fields.name == DEFAULT_PRODUCT_NAME
        assert fields.brand == DEFAULT_BRAND
        assert fields.category == DEFAULT_CATEGORY
        assert fields.tone == DEFAULT_TONE

    def test_missing_cost_is_zero(self):
        assert resolve_product_fields(make_product(10)).cost == 0


class TestResolveLinePricing:
    """Individual price selection."""

    def test_no_discount_no_override_uses_real_price(self):
        pricing = resolve_line_pricing(make_line(50000))
        assert pricing.individual_price == 50000
        assert not pricing.has_individual_discount
        assert pricing.discount_source is None

    def test_product_discount_derives_price(self):
        pricing = resolve_line_pricing(make_line(50000, discount=10))
        assert pricing.derived_price == 45000
        assert pricing.individual_price == 45000
        assert pricing.has_individual_discount
        assert pricing.discount_source == SOURCE_PRODUCT

    def test_lower_override_wins_over_derived_price(self):
        pricing = resolve_line_pricing(make_line(50000, discount=10, line_price=40000))
        assert pricing.individual_price == 40000
        assert pricing.discount_source == SOURCE_LINE

    def test_higher_override_loses_to_derived_price(self):
        pricing = resolve_line_pricing(make_line(50000, discount=10, line_price=48000))
        assert pricing.individual_price == 45000

    def test_override_without_discount_is_taken_literally(self):
        pricing = resolve_line_pricing(make_line(50000, line_price=52000))
        assert pricing.individual_price == 52000
        assert not pricing.has_individual_discount

    def test_zero_override_is_absent(self):
        pricing = resolve_line_pricing(make_line(50000, line_price=0))
        assert pricing.line_override is None
        assert pricing.individual_price == 50000

    def test_derived_price_rounds_half_up(self):
        pricing = resolve_line_pricing(make_line(25, discount=50))
        assert pricing.derived_price == 13

    def test_negative_quantity_clamps_to_zero(self):
        assert resolve_line_pricing(make_line(100, quantity=-2)).quantity == 0

    def test_line_without_product_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_line_pricing(LineItem(product=None, quantity=1))
