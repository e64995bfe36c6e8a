"""Caller-visible errors raised by the sales reconciliation package.

Only an invalid date range aborts a report. Every other anomaly (unresolvable
products, reconciliation mismatches, zero denominators) degrades to a
documented fallback and is surfaced through ``ReportTotals.audit``.
"""


class SalesReconError(Exception):
    """Base class for sales reconciliation errors."""


class InvalidRangeError(SalesReconError, ValueError):
    """Raised when report date bounds are missing or malformed."""

    def __init__(self, message: str, date_init=None, date_end=None) -> None:
        super().__init__(message)
        self.date_init = date_init
        self.date_end = date_end
