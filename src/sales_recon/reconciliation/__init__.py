"""Sales reconciliation module entry point."""

from .engine import SalesReconciliationEngine
from .exceptions import InvalidRangeError, SalesReconError
from .models import (
    AuditFinding,
    DiscountKind,
    FindingKind,
    LineItem,
    Product,
    ReportTotals,
    ResolvedLine,
    SalesReport,
    Transaction,
    TransactionKind,
)
from .service import SalesReportService

__all__ = [
    "SalesReconciliationEngine",
    "SalesReportService",
    "InvalidRangeError",
    "SalesReconError",
    "AuditFinding",
    "DiscountKind",
    "FindingKind",
    "LineItem",
    "Product",
    "ReportTotals",
    "ResolvedLine",
    "SalesReport",
    "Transaction",
    "TransactionKind",
]
