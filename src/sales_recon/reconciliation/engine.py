"""Sales reconciliation engine.

Reconstructs the line-level breakdown of revenue, discounts and profit of
orders and manual payments so that every transaction's rounded line totals
add up to its authoritative target amount.

The engine is a pure function of its input: it performs no I/O, keeps no
state between calls and returns freshly built records on every run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.logging import get_logger
from ..utils.numbers import round_half_up
from .allocation import OrderAllocation, allocate, classify_discount, discount_percent
from .audit import AuditCollector, ReportAuditor, sort_lines
from .models import (
    CanonicalLine,
    FindingKind,
    PricingTrace,
    ResolvedLine,
    SalesReport,
    Transaction,
    TransactionKind,
)
from .normalizer import canonical_lines, normalize_documents
from .pricing import LinePricing, resolve_line_pricing
from .profit import with_profit
from .rounding import reconcile_lines, rounded_line_amounts

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionResult:
    transaction: Transaction
    allocation: OrderAllocation
    lines: Tuple[ResolvedLine, ...]
    delta: int
    clamped: bool


class SalesReconciliationEngine:
    """
    Resolve, allocate, reconcile and audit the lines of a set of transactions.

    Args:
        honor_recorded_surplus: Use an order's positive recorded total as its
            target even when it exceeds the individually-discounted line sum
        flag_discarded_totals: Record a finding when a manual payment's
            recorded total is discarded for exceeding its line sum
        debug: Attach a pricing trace to every resolved line
    """

    def __init__(
        self,
        honor_recorded_surplus: bool = False,
        flag_discarded_totals: bool = False,
        debug: bool = False,
    ) -> None:
        self.honor_recorded_surplus = honor_recorded_surplus
        self.flag_discarded_totals = flag_discarded_totals
        self.debug = debug

    def run(
        self,
        transactions: Sequence[Transaction],
        date_init: Optional[str] = None,
        date_end: Optional[str] = None,
    ) -> SalesReport:
        """
        Build the detailed sales report of ``transactions``.

        Args:
            transactions: Transactions already filtered to the report range
            date_init: Start of the range, carried into the report
            date_end: End of the range, carried into the report

        Returns:
            SalesReport with lines sorted newest first and audited totals
        """
        transactions = list(transactions)
        collector = AuditCollector()
        emitted: List[ResolvedLine] = []

        for transaction in transactions:
            result = self.reconcile_transaction(transaction, collector)
            emitted.extend(result.lines)

        auditor = ReportAuditor(honor_recorded_surplus=self.honor_recorded_surplus)
        totals = auditor.totals(transactions, emitted, collector)

        logger.info(
            f"Reconciled {totals.transaction_count} transactions into {totals.line_count} lines: "
            f"grand total {totals.grand_total_rounded}, line total {totals.lines_total}, "
            f"{len(totals.audit)} audit findings"
        )
        return SalesReport(
            lines=sort_lines(emitted),
            totals=totals,
            date_init=date_init,
            date_end=date_end,
        )

    def run_documents(
        self,
        orders: Iterable[Dict[str, Any]] = (),
        manual_payments: Iterable[Dict[str, Any]] = (),
        date_init: Optional[str] = None,
        date_end: Optional[str] = None,
    ) -> SalesReport:
        """Normalize raw purchase and payment documents, then :meth:`run` them."""
        transactions = normalize_documents(orders, manual_payments)
        return self.run(transactions, date_init=date_init, date_end=date_end)

    def reconcile_transaction(
        self,
        transaction: Transaction,
        collector: Optional[AuditCollector] = None,
    ) -> TransactionResult:
        """
        Resolve and reconcile the lines of one transaction.

        Lines whose product cannot be resolved are skipped and reported.
        """
        collector = collector if collector is not None else AuditCollector()
        priced: List[Tuple[CanonicalLine, LinePricing]] = []
        for line in canonical_lines((transaction,)):
            if line.item.product is None:
                collector.record(
                    FindingKind.DATA_INTEGRITY,
                    transaction.id,
                    transaction.kind,
                    f"line {line.position} references a product that cannot be resolved; skipped",
                )
                continue
            priced.append((line, resolve_line_pricing(line.item)))

        allocation = allocate(
            transaction.kind,
            transaction.recorded_total,
            [pricing for _, pricing in priced],
            honor_recorded_surplus=self.honor_recorded_surplus,
        )
        self._flag_discarded_total(transaction, allocation, collector)

        resolved = [self._resolve_line(line, pricing, allocation) for line, pricing in priced]
        reconciliation = reconcile_lines(resolved, allocation.target)

        if reconciliation.clamped:
            collector.record(
                FindingKind.FLOOR_CLAMP,
                transaction.id,
                transaction.kind,
                f"adjustment of {reconciliation.delta} clamped the last line at zero",
                line_sum=reconciliation.line_sum,
                target=reconciliation.target_rounded,
                delta=reconciliation.line_sum - reconciliation.target_rounded,
            )

        logger.debug(
            f"{transaction.kind.value} {transaction.id}: individual sum {allocation.individual_sum}, "
            f"recorded {allocation.recorded_total}, factor {allocation.order_factor:.6f}, "
            f"target {reconciliation.target_rounded}, delta {reconciliation.delta}"
        )
        return TransactionResult(
            transaction=transaction,
            allocation=allocation,
            lines=reconciliation.lines,
            delta=reconciliation.delta,
            clamped=reconciliation.clamped,
        )

    def _flag_discarded_total(
        self,
        transaction: Transaction,
        allocation: OrderAllocation,
        collector: AuditCollector,
    ) -> None:
        if not self.flag_discarded_totals or transaction.kind is not TransactionKind.MANUAL_PAYMENT:
            return
        if allocation.recorded_total > allocation.individual_sum > 0:
            collector.record(
                FindingKind.DISCARDED_RECORDED_TOTAL,
                transaction.id,
                transaction.kind,
                f"recorded total {allocation.recorded_total} exceeds line sum "
                f"{allocation.individual_sum} and was discarded",
                line_sum=allocation.individual_sum,
                target=allocation.recorded_total,
                delta=allocation.recorded_total - allocation.individual_sum,
            )

    def _resolve_line(
        self,
        line: CanonicalLine,
        pricing: LinePricing,
        allocation: OrderAllocation,
    ) -> ResolvedLine:
        fields = pricing.fields
        final_unit_price = pricing.individual_price * allocation.order_factor
        sold_price, line_total = rounded_line_amounts(final_unit_price, pricing.quantity)

        trace = None
        if self.debug:
            trace = PricingTrace(
                line_price=pricing.line_override,
                stored_discount=fields.discount_value,
                derived_price=pricing.derived_price,
                base_price=pricing.individual_price,
                discount_source=pricing.discount_source,
                applied_factor=allocation.order_factor,
            )

        resolved = ResolvedLine(
            product_name=fields.name,
            brand=fields.brand,
            category=fields.category,
            tone=fields.tone,
            quantity=pricing.quantity,
            real_price=fields.real_price,
            individual_price=pricing.individual_price,
            sold_price=sold_price,
            line_total=line_total,
            discount_kind=classify_discount(
                pricing.has_individual_discount, allocation.has_order_discount
            ),
            discount_percent=discount_percent(final_unit_price, fields.real_price),
            has_order_discount=allocation.has_order_discount,
            order_factor=round_half_up(allocation.order_factor, 4),
            cost=fields.cost,
            profit_per_unit=0,
            profit_total=0,
            margin_percent=0.0,
            transaction_id=line.transaction_id,
            transaction_kind=line.transaction_kind,
            timestamp=line.timestamp,
            user_name=line.user_name,
            trace=trace,
        )
        return with_profit(resolved)
