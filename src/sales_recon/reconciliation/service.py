"""Detailed sales report service."""

from __future__ import annotations

from typing import Optional

from ..utils.config import Config
from ..utils.logging import get_logger
from .date_range import parse_date_range
from .engine import SalesReconciliationEngine
from .models import SalesReport
from .repository import SalesRepository

logger = get_logger(__name__)


class SalesReportService:
    """High-level service tying the repository to the reconciliation engine."""

    def __init__(
        self,
        db_name: Optional[str] = None,
        connection_url_env_key: Optional[str] = None,
        config: Optional[Config] = None,
        debug: bool = False,
    ) -> None:
        self.config = config or Config(".env")
        self.db_name = db_name
        self.connection_url_env_key = connection_url_env_key
        self.engine = SalesReconciliationEngine(
            honor_recorded_surplus=self.config.get("honor_recorded_surplus", False),
            flag_discarded_totals=self.config.get("flag_discarded_totals", False),
            debug=debug,
        )

    def _repository(self) -> SalesRepository:
        return SalesRepository(
            db_name=self.db_name,
            connection_url_env_key=self.connection_url_env_key,
            config=self.config,
        )

    def build_report(self, date_init: Optional[str], date_end: Optional[str]) -> SalesReport:
        """
        Build the detailed sales report for a closed range of days.

        The range is validated before any database access.

        Raises:
            InvalidRangeError: If either bound is missing or malformed
        """
        date_range = parse_date_range(
            date_init, date_end, self.config.get("report_timezone", "America/Bogota")
        )
        logger.info(f"Building sales report from {date_range.date_init} to {date_range.date_end}")
        with self._repository() as repo:
            purchases = repo.find_purchases(date_range)
            payments = repo.find_manual_payments(date_range)

        return self.engine.run_documents(
            purchases,
            payments,
            date_init=date_range.date_init,
            date_end=date_range.date_end,
        )
