"""
Utilities Module

This module contains shared utilities and helper functions.
"""

from .config import Config
from .logging import get_logger, setup_logging
from .numbers import round2, round_half_up, to_number

__all__ = ["Config", "get_logger", "setup_logging", "round2", "round_half_up", "to_number"]
