"""Normalization of raw order and manual-payment documents.

Orders (purchases) and manual store payments carry structurally identical
item entries (``{id, quantity, price}``) under different collection fields
and credit different users. Both are mapped onto :class:`Transaction` and
then flattened into a single canonical line stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..utils.logging import get_logger
from ..utils.numbers import to_number
from .models import CanonicalLine, LineItem, Product, Transaction, TransactionKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class DocumentShape:
    kind: TransactionKind
    items_field: str
    user_field: str


ORDER_SHAPE = DocumentShape(TransactionKind.ORDER, items_field="products", user_field="user")
MANUAL_PAYMENT_SHAPE = DocumentShape(
    TransactionKind.MANUAL_PAYMENT, items_field="store", user_field="lastAdminEdit"
)

SHAPES: Dict[TransactionKind, DocumentShape] = {
    ORDER_SHAPE.kind: ORDER_SHAPE,
    MANUAL_PAYMENT_SHAPE.kind: MANUAL_PAYMENT_SHAPE,
}


def normalize_id(obj_id: Any) -> str:
    """Normalize an ObjectId, extended-JSON ``{"$oid": ...}`` or plain ID to a string."""
    if obj_id is None:
        return ""
    if isinstance(obj_id, dict) and "$oid" in obj_id:
        return str(obj_id["$oid"])
    return str(obj_id)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a document timestamp into an aware UTC-based datetime.

    Naive datetimes (pymongo's default) are UTC. ISO strings and
    extended-JSON ``{"$date": ...}`` wrappers are accepted too.
    """
    if isinstance(value, dict) and "$date" in value:
        value = value["$date"]
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _name_of(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name")
    if isinstance(value, str):
        return value
    return None


def product_from_document(doc: Any) -> Optional[Product]:
    """
    Build a Product from a populated product document.

    Anything other than a mapping (a missing reference or an unpopulated
    ObjectId) cannot be resolved and yields ``None``.
    """
    if not isinstance(doc, dict):
        return None
    raw_discount = doc.get("discount")
    raw_cost = doc.get("costProduct", doc.get("cost"))
    return Product(
        id=normalize_id(doc.get("_id")) or None,
        name=doc.get("name"),
        price=to_number(doc.get("price")),
        discount=None if raw_discount is None else to_number(raw_discount),
        cost=None if raw_cost is None else to_number(raw_cost),
        brand=_name_of(doc.get("brand")),
        category=_name_of(doc.get("category")),
        tone=_name_of(doc.get("tone")),
        color=_name_of(doc.get("color")),
        ref=product_from_document(doc.get("ref")),
    )


def line_item_from_document(doc: Dict[str, Any]) -> LineItem:
    raw_price = doc.get("price")
    return LineItem(
        product=product_from_document(doc.get("id")),
        quantity=to_number(doc.get("quantity")),
        price=None if raw_price is None else to_number(raw_price),
    )


def normalize_transaction(doc: Dict[str, Any], kind: TransactionKind) -> Transaction:
    """
    Map a raw purchase or payment document onto a Transaction.

    Args:
        doc: Raw document with its products and user already populated
        kind: Which document shape ``doc`` follows

    Returns:
        Transaction with items in their original order
    """
    shape = SHAPES[kind]
    user = doc.get(shape.user_field)
    user_name = (user.get("fullName") or "") if isinstance(user, dict) else ""
    raw_total = doc.get("total")
    items = tuple(
        line_item_from_document(entry)
        for entry in doc.get(shape.items_field) or []
        if isinstance(entry, dict)
    )
    return Transaction(
        kind=kind,
        id=normalize_id(doc.get("_id")),
        timestamp=parse_timestamp(doc.get("createdAt")),
        recorded_total=None if raw_total is None else to_number(raw_total),
        user_name=user_name,
        items=items,
    )


def normalize_documents(
    orders: Iterable[Dict[str, Any]] = (),
    manual_payments: Iterable[Dict[str, Any]] = (),
) -> List[Transaction]:
    """Normalize orders first, then manual payments, each in input order."""
    transactions = [normalize_transaction(doc, TransactionKind.ORDER) for doc in orders]
    transactions.extend(
        normalize_transaction(doc, TransactionKind.MANUAL_PAYMENT) for doc in manual_payments
    )
    return transactions


def canonical_lines(transactions: Iterable[Transaction]) -> Iterator[CanonicalLine]:
    """Flatten transactions into one line stream tagged with their owner."""
    for transaction in transactions:
        for position, item in enumerate(transaction.items):
            yield CanonicalLine(
                transaction_kind=transaction.kind,
                transaction_id=transaction.id,
                timestamp=transaction.timestamp,
                user_name=transaction.user_name,
                position=position,
                item=item,
            )
