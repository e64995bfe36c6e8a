"""Immutable records flowing through the sales reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

Number = Union[int, float]


class TransactionKind(str, Enum):
    ORDER = "Compra"
    MANUAL_PAYMENT = "Pago Manual"


class DiscountKind(str, Enum):
    NONE = "Sin descuento"
    INDIVIDUAL = "Descuento individual"
    ORDER = "Descuento en compra"
    BOTH = "Ambos"


class FindingKind(str, Enum):
    RECONCILIATION_MISMATCH = "reconciliation_mismatch"
    FLOOR_CLAMP = "floor_clamp"
    DATA_INTEGRITY = "data_integrity"
    DISCARDED_RECORDED_TOTAL = "discarded_recorded_total"


@dataclass(frozen=True)
class Product:
    """Catalog product snapshot, optionally redirecting to a master via ``ref``."""

    id: Optional[str]
    name: Optional[str] = None
    price: Number = 0
    discount: Optional[Number] = None
    cost: Optional[Number] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    tone: Optional[str] = None
    color: Optional[str] = None
    ref: Optional["Product"] = None


@dataclass(frozen=True)
class LineItem:
    product: Optional[Product]
    quantity: Number = 0
    price: Optional[Number] = None


@dataclass(frozen=True)
class Transaction:
    kind: TransactionKind
    id: str
    timestamp: Optional[datetime]
    recorded_total: Optional[Number]
    user_name: str = ""
    items: Tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class CanonicalLine:
    """One line item tagged with its owning transaction."""

    transaction_kind: TransactionKind
    transaction_id: str
    timestamp: Optional[datetime]
    user_name: str
    position: int
    item: LineItem


@dataclass(frozen=True)
class PricingTrace:
    line_price: Optional[Number]
    stored_discount: Number
    derived_price: Number
    base_price: Number
    discount_source: Optional[str]
    applied_factor: float


@dataclass(frozen=True)
class ResolvedLine:
    product_name: str
    brand: str
    category: str
    tone: str
    quantity: Number
    real_price: Number
    individual_price: Number
    sold_price: int
    line_total: int
    discount_kind: DiscountKind
    discount_percent: float
    has_order_discount: bool
    order_factor: float
    cost: Number
    profit_per_unit: Number
    profit_total: Number
    margin_percent: float
    transaction_id: str
    transaction_kind: TransactionKind
    timestamp: Optional[datetime]
    user_name: str
    trace: Optional[PricingTrace] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "brand": self.brand,
            "category": self.category,
            "tone": self.tone,
            "quantity": self.quantity,
            "real_price": self.real_price,
            "individual_price": self.individual_price,
            "sold_price": self.sold_price,
            "line_total": self.line_total,
            "discount_kind": self.discount_kind.value,
            "discount_percent": self.discount_percent,
            "has_order_discount": self.has_order_discount,
            "order_factor": self.order_factor,
            "cost": self.cost,
            "profit_per_unit": self.profit_per_unit,
            "profit_total": self.profit_total,
            "margin_percent": self.margin_percent,
            "transaction_id": self.transaction_id,
            "transaction_kind": self.transaction_kind.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "user_name": self.user_name,
        }


@dataclass(frozen=True)
class AuditFinding:
    kind: FindingKind
    transaction_id: str
    transaction_kind: TransactionKind
    message: str
    line_sum: Optional[Number] = None
    target: Optional[Number] = None
    delta: Optional[Number] = None


@dataclass(frozen=True)
class ReportTotals:
    grand_total: Number
    grand_total_rounded: int
    lines_total: int
    total_cost: Number
    total_profit: Number
    global_margin: float
    transaction_count: int
    line_count: int
    audit: Tuple[AuditFinding, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SalesReport:
    lines: Tuple[ResolvedLine, ...]
    totals: ReportTotals
    date_init: Optional[str] = None
    date_end: Optional[str] = None
