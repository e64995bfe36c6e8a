"""Tests for report auditing and aggregation."""

from dataclasses import replace
from datetime import datetime, timezone

from sales_recon.reconciliation.audit import (
    AuditCollector,
    ReportAuditor,
    sort_lines,
    transaction_target,
)
from sales_recon.reconciliation.engine import SalesReconciliationEngine
from sales_recon.reconciliation.models import FindingKind, LineItem, TransactionKind

from conftest import make_line, make_order, make_payment


class TestAuditCollector:

    def test_record_logs_and_collects(self, caplog):
        collector = AuditCollector()
        with caplog.at_level("WARNING", logger="sales_recon"):
            finding = collector.record(
                FindingKind.DATA_INTEGRITY, "o1", TransactionKind.ORDER, "broken line"
            )
        assert len(collector) == 1
        assert collector.findings == (finding,)
        assert "[AUDIT] Compra o1: broken line" in caplog.text


class TestTransactionTarget:

    def test_skips_unresolvable_items(self):
        order = make_order([make_line(100), LineItem(product=None, quantity=1, price=500)])
        assert transaction_target(order) == 100

    def test_order_and_payment_policies(self):
        items = [make_line(200, quantity=2)]
        assert transaction_target(make_order(items, recorded_total=500)) == 400
        assert transaction_target(make_order(items, recorded_total=500), True) == 500
        assert transaction_target(make_payment(items, recorded_total=500), True) == 400


class TestReportAuditor:

    def test_same_id_different_kind_is_distinct(self):
        order = make_order([make_line(100)], transaction_id="x")
        payment = make_payment([make_line(50)], transaction_id="x")
        targets = ReportAuditor().targets([order, payment])
        assert targets == {
            (TransactionKind.ORDER, "x"): 100,
            (TransactionKind.MANUAL_PAYMENT, "x"): 50,
        }

    def test_verify_reports_tampered_lines(self):
        order = make_order([make_line(100), make_line(50)])
        engine = SalesReconciliationEngine()
        lines = list(engine.reconcile_transaction(order).lines)
        lines = lines[:1]

        collector = AuditCollector()
        auditor = ReportAuditor()
        auditor.verify(auditor.targets([order]), lines, collector)

        finding = collector.findings[0]
        assert finding.kind is FindingKind.RECONCILIATION_MISMATCH
        assert finding.line_sum == 100
        assert finding.target == 150
        assert finding.delta == -50

    def test_totals_without_lines(self):
        order = make_order([make_line(100)])
        totals = ReportAuditor().totals([order], [])
        assert totals.grand_total == 100
        assert totals.lines_total == 0
        assert [finding.kind for finding in totals.audit] == [FindingKind.RECONCILIATION_MISMATCH]

    def test_grand_total_keeps_fractions(self):
        order = make_order([make_line(10.25), make_line(10.25)])
        totals = ReportAuditor().totals([order], SalesReconciliationEngine().reconcile_transaction(order).lines)
        assert totals.grand_total == 20.5
        assert totals.grand_total_rounded == 21
        assert totals.lines_total == 21


class TestSortLines:

    def test_undated_lines_go_last(self):
        engine = SalesReconciliationEngine()
        dated = make_order([make_line(10, name="dated")], transaction_id="a",
                           timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))
        undated = engine.reconcile_transaction(
            make_order([make_line(10, name="undated")], transaction_id="b")
        ).lines[0]
        undated = replace(undated, timestamp=None)
        lines = [undated] + list(engine.reconcile_transaction(dated).lines)
        assert [line.product_name for line in sort_lines(lines)] == ["dated", "undated"]
