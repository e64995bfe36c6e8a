"""
Configuration utilities for the Sales Recon CLI tool.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


class Config:
    """Configuration manager for the Sales Recon project."""

    def __init__(self, env_file: Optional[str] = None) -> None:
        """Initialize configuration.

        If an env_file path is provided, load environment variables from it.
        Otherwise, do not auto-load a .env file to keep defaults predictable.
        """
        self.env_file = env_file
        self._load_environment()
        self._config = self._load_config()

    def _load_environment(self) -> None:
        """Load environment variables from explicit .env file if provided."""
        if not self.env_file:
            return
        env_path = Path(self.env_file)
        if env_path.exists():
            load_dotenv(env_path)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        return {
            # Core settings
            "log_level": self._get_str("LOG_LEVEL", default="INFO"),
            # MongoDB settings
            "mongo_url": self._get_str("DB_CONNECTION_URL", default=""),
            "mongo_db": self._get_str("DB_NAME", default="production"),
            "purchases_collection": self._get_str("PURCHASES_COLLECTION", default="purchases"),
            "payments_collection": self._get_str("PAYMENTS_COLLECTION", default="payments"),
            "products_collection": self._get_str("PRODUCTS_COLLECTION", default="products"),
            "brands_collection": self._get_str("BRANDS_COLLECTION", default="brands"),
            "categories_collection": self._get_str("CATEGORIES_COLLECTION", default="categories"),
            "users_collection": self._get_str("USERS_COLLECTION", default="users"),
            # Report settings
            "report_timezone": self._get_str("REPORT_TIMEZONE", default="America/Bogota"),
            "honor_recorded_surplus": self._get_bool("HONOR_RECORDED_SURPLUS", default=False),
            "flag_discarded_totals": self._get_bool("FLAG_DISCARDED_TOTALS", default=False),
        }

    def _get_str(self, key: str, default: str = "") -> str:
        """Get string configuration value."""
        if self.env_file is None:
            return default
        return os.getenv(key, default)

    def _get_bool(self, key: str, default: bool = False) -> bool:
        """Get boolean configuration value."""
        if self.env_file is None:
            return default
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config
