"""Line pricing resolution: real price, stored discount and individual price."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..utils.numbers import Number, non_negative, round_half_up, to_number
from .models import LineItem, Product

DEFAULT_PRODUCT_NAME = "Producto sin nombre"
DEFAULT_BRAND = "Sin marca"
DEFAULT_CATEGORY = "Sin categoría"
DEFAULT_TONE = "Sin tono"

SOURCE_PRODUCT = "producto"
SOURCE_LINE = "linea"


@dataclass(frozen=True)
class ProductFields:
    name: str
    brand: str
    category: str
    tone: str
    real_price: Number
    discount_value: Number
    cost: Number


@dataclass(frozen=True)
class LinePricing:
    fields: ProductFields
    quantity: Number
    line_override: Optional[Number]
    discount_factor: float
    derived_price: Number
    individual_price: Number

    @property
    def has_individual_discount(self) -> bool:
        return self.individual_price < self.fields.real_price

    @property
    def discount_source(self) -> Optional[str]:
        """Which input produced the individual discount, if any."""
        if self.discount_factor > 0 and (
            self.line_override is None or self.derived_price < self.line_override
        ):
            return SOURCE_PRODUCT
        if self.line_override is not None and self.line_override < self.fields.real_price:
            return SOURCE_LINE
        return None


def _master_first(product: Product, attr: str) -> Any:
    """
    Resolve a field with master-first precedence.

    Precedence: the referenced master product's value, then the instance's
    own value. ``None`` means neither carries the field.
    """
    master = product.ref
    if master is not None:
        value = getattr(master, attr)
        if value is not None:
            return value
    return getattr(product, attr)


def _display(value: Optional[str], fallback: str) -> str:
    text = (value or "").strip()
    return text or fallback


def resolve_product_fields(product: Product) -> ProductFields:
    """
    Resolve the pricing and display fields of a line's product.

    Price, stored discount, name, brand, category and cost follow the
    master product when the instance redirects through ``ref`` (falling
    back to the instance where the master lacks the field). Tone always
    comes from the instance itself: its color name first, then its tone.
    """
    tone = product.color or product.tone
    return ProductFields(
        name=_display(_master_first(product, "name"), DEFAULT_PRODUCT_NAME),
        brand=_display(_master_first(product, "brand"), DEFAULT_BRAND),
        category=_display(_master_first(product, "category"), DEFAULT_CATEGORY),
        tone=_display(tone, DEFAULT_TONE),
        real_price=non_negative(_master_first(product, "price")),
        discount_value=to_number(_master_first(product, "discount")),
        cost=non_negative(_master_first(product, "cost")),
    )


def normalize_discount_factor(value: Any) -> float:
    """
    Convert a stored discount value into a fraction in [0, 1].

    Values up to 1 are already fractions, values up to 100 are percentages
    and anything larger saturates at a full discount.
    """
    value = to_number(value)
    if value <= 0:
        return 0.0
    if value <= 1:
        return float(value)
    if value <= 100:
        return value / 100.0
    return 1.0


def line_override_price(item: LineItem) -> Optional[Number]:
    """The literal price recorded on the line, when it is positive."""
    price = to_number(item.price)
    return price if price > 0 else None


def resolve_line_pricing(item: LineItem) -> LinePricing:
    """
    Resolve the individually-discounted price of a line item.

    With a stored product discount, the individual price is the derived
    discounted price, or the line's literal price when that is lower.
    Without one, the literal line price wins over the catalog price.

    Args:
        item: Line item whose product has already been resolved

    Returns:
        LinePricing with real, derived and individual prices

    Raises:
        ValueError: If the line carries no product
    """
    if item.product is None:
        raise ValueError("Line item has no resolvable product")

    fields = resolve_product_fields(item.product)
    factor = normalize_discount_factor(fields.discount_value)
    derived_price = round_half_up(fields.real_price * (1 - factor))
    override = line_override_price(item)

    if factor > 0:
        individual_price = derived_price if override is None else min(override, derived_price)
    else:
        individual_price = fields.real_price if override is None else override

    return LinePricing(
        fields=fields,
        quantity=non_negative(item.quantity),
        line_override=override,
        discount_factor=factor,
        derived_price=derived_price,
        individual_price=individual_price,
    )
