"""Aggregation and independent auditing of reconciled sales lines."""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.logging import get_logger
from ..utils.numbers import Number, round2, round_half_up
from .allocation import allocate
from .models import (
    AuditFinding,
    FindingKind,
    ReportTotals,
    ResolvedLine,
    Transaction,
    TransactionKind,
)
from .pricing import resolve_line_pricing

logger = get_logger(__name__)

TransactionKey = Tuple[TransactionKind, str]


class AuditCollector:
    """Collects non-fatal findings and logs each one as it is recorded."""

    def __init__(self) -> None:
        self._findings: List[AuditFinding] = []

    def record(
        self,
        kind: FindingKind,
        transaction_id: str,
        transaction_kind: TransactionKind,
        message: str,
        line_sum: Optional[Number] = None,
        target: Optional[Number] = None,
        delta: Optional[Number] = None,
    ) -> AuditFinding:
        finding = AuditFinding(
            kind=kind,
            transaction_id=transaction_id,
            transaction_kind=transaction_kind,
            message=message,
            line_sum=line_sum,
            target=target,
            delta=delta,
        )
        logger.warning(f"[AUDIT] {transaction_kind.value} {transaction_id}: {message}")
        self._findings.append(finding)
        return finding

    def extend(self, findings: Iterable[AuditFinding]) -> None:
        self._findings.extend(findings)

    @property
    def findings(self) -> Tuple[AuditFinding, ...]:
        return tuple(self._findings)

    def __len__(self) -> int:
        return len(self._findings)


def transaction_key(transaction_kind: TransactionKind, transaction_id: str) -> TransactionKey:
    return transaction_kind, transaction_id


def transaction_target(transaction: Transaction, honor_recorded_surplus: bool = False) -> Number:
    """
    Recompute a transaction's target straight from its items.

    Uses the same pricing and target policies as the engine, without
    depending on any line the engine produced.
    """
    pricings = [resolve_line_pricing(item) for item in transaction.items if item.product is not None]
    return allocate(
        transaction.kind,
        transaction.recorded_total,
        pricings,
        honor_recorded_surplus=honor_recorded_surplus,
    ).target


class ReportAuditor:
    """
    Aggregates totals and re-verifies every transaction's line sum.

    Mismatches between a transaction's resolved lines and its rounded
    target are recorded as findings; they never raise and never prevent a
    report from being produced.
    """

    def __init__(self, honor_recorded_surplus: bool = False) -> None:
        self.honor_recorded_surplus = honor_recorded_surplus

    def targets(self, transactions: Sequence[Transaction]) -> "OrderedDict[TransactionKey, Number]":
        targets: "OrderedDict[TransactionKey, Number]" = OrderedDict()
        for transaction in transactions:
            key = transaction_key(transaction.kind, transaction.id)
            target = transaction_target(transaction, self.honor_recorded_surplus)
            targets[key] = targets.get(key, 0) + target
        return targets

    def verify(
        self,
        targets: Dict[TransactionKey, Number],
        lines: Iterable[ResolvedLine],
        collector: AuditCollector,
    ) -> None:
        sums: Dict[TransactionKey, int] = {}
        for line in lines:
            key = transaction_key(line.transaction_kind, line.transaction_id)
            sums[key] = sums.get(key, 0) + line.line_total

        mismatches = 0
        for (kind, transaction_id), target in targets.items():
            line_sum = sums.get((kind, transaction_id), 0)
            target_rounded = round_half_up(target)
            delta = line_sum - target_rounded
            if delta != 0:
                mismatches += 1
                collector.record(
                    FindingKind.RECONCILIATION_MISMATCH,
                    transaction_id,
                    kind,
                    f"line sum {line_sum} differs from target {target_rounded} by {delta}",
                    line_sum=line_sum,
                    target=target_rounded,
                    delta=delta,
                )
        if mismatches == 0:
            logger.debug("[AUDIT] All transactions match their target")

    def totals(
        self,
        transactions: Sequence[Transaction],
        lines: Sequence[ResolvedLine],
        collector: Optional[AuditCollector] = None,
    ) -> ReportTotals:
        """
        Build report totals and run the per-transaction verification.

        Args:
            transactions: Every transaction of the report, in input order
            lines: Every resolved line, in emission order
            collector: Findings already recorded upstream, extended here

        Returns:
            ReportTotals carrying the complete findings list
        """
        collector = collector or AuditCollector()
        targets = self.targets(transactions)
        self.verify(targets, lines, collector)

        grand_total: Number = 0
        for target in targets.values():
            grand_total += target

        total_cost: Number = 0
        total_profit: Number = 0
        lines_total = 0
        for line in lines:
            total_cost += line.cost * line.quantity
            total_profit += line.profit_total
            lines_total += line.line_total

        global_margin = round2(total_profit / total_cost * 100) if total_cost > 0 else 0.0

        return ReportTotals(
            grand_total=grand_total,
            grand_total_rounded=round_half_up(grand_total),
            lines_total=lines_total,
            total_cost=total_cost,
            total_profit=total_profit,
            global_margin=global_margin,
            transaction_count=len(transactions),
            line_count=len(lines),
            audit=collector.findings,
        )


def sort_lines(lines: Iterable[ResolvedLine]) -> Tuple[ResolvedLine, ...]:
    """Newest first; equal timestamps keep emission order, undated lines go last."""

    def _key(line: ResolvedLine) -> float:
        return line.timestamp.timestamp() if line.timestamp is not None else float("-inf")

    return tuple(sorted(lines, key=_key, reverse=True))
