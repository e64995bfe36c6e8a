"""
Sales Recon - Detailed Sales Reconciliation Tool

Rebuilds the line-level breakdown of revenue, discounts and profit of
orders and manual store payments so that every transaction's lines add up
exactly to its recorded total.
"""

__version__ = "0.1.0"

from . import reconciliation
from . import utils

__all__ = ["reconciliation", "utils"]
