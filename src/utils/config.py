# ========================
# src/utils/config.py
# ========================

"""
Configuration Management

Centralized configuration for the ETL pipeline with environment support.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, List, Optional

from sqlalchemy.engine import URL


MERGE_SCOPES = ('run', 'directory')


class Config:
    """
    Configuration class for the ETL pipeline.
    Supports environment variables and default values.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_dict (dict): Optional configuration overrides
        """
        # Numeric settings whose environment value could not be parsed
        self._invalid_env: List[str] = []

        # File Paths (relative paths resolve against BASE_DIR)
        self.BASE_DIR = os.getenv('ETL_BASE_DIR', '.')
        self.ONLINE_ORDERS_FILE = os.getenv('ETL_ONLINE_ORDERS_FILE', 'data/online_orders.json')
        self.INSTORE_SALES_FILE = os.getenv('ETL_INSTORE_SALES_FILE', 'data/instore_sales.csv')
        self.RAW_DIR = os.getenv('ETL_RAW_DIR', 'data/raw')
        self.PROCESSED_DIR = os.getenv('ETL_PROCESSED_DIR', 'processed')
        self.LOG_DIR = os.getenv('ETL_LOG_DIR', 'logs')
        self.REPORT_DIR = os.getenv('ETL_REPORT_DIR', 'reports')

        # Database Settings
        self.DATABASE_URL = os.getenv('DATABASE_URL', '')
        self.DB_DRIVER = os.getenv('DB_DRIVER', 'mysql+pymysql')
        self.DB_HOST = os.getenv('DB_HOST', 'localhost')
        self.DB_PORT = self._env_number('DB_PORT', '3306', int)
        self.DB_USER = os.getenv('DB_USER', 'etl_us')
        self.DB_PASSWORD = os.getenv('DB_PASSWORD', '')
        self.DB_NAME = os.getenv('DB_NAME', 'coffeeshop')
        self.INVENTORY_TABLE = os.getenv('INVENTORY_TABLE', 'store_inventory')

        # Alerting
        self.ALERT_EMAIL = os.getenv('ALERT_EMAIL', '')
        self.ALERT_SENDER = os.getenv('ALERT_SENDER', 'etl@localhost')
        self.SMTP_HOST = os.getenv('SMTP_HOST', '')
        self.SMTP_PORT = self._env_number('SMTP_PORT', '25', int)
        self.SMTP_TIMEOUT = self._env_number('SMTP_TIMEOUT', '30', float)

        # Business Logic Thresholds
        self.TOP_PRODUCTS_LIMIT = self._env_number('TOP_PRODUCTS_LIMIT', '10', int)
        self.LOW_STOCK_THRESHOLD = self._env_number('LOW_STOCK_THRESHOLD', '5', int)

        # Run Behaviour
        self.MERGE_SCOPE = os.getenv('MERGE_SCOPE', 'run')
        self.KEEP_RAW_ARTIFACTS = os.getenv('KEEP_RAW_ARTIFACTS', 'false').lower() == 'true'
        self.KEEP_LOG_DAYS = self._env_number('KEEP_LOG_DAYS', '7', int)
        self.MIN_FREE_DISK_MB = self._env_number('MIN_FREE_DISK_MB', '100', int)

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

        # API Settings
        self.API_PORT = self._env_number('API_PORT', '8000', int)
        self.JOB_METADATA_FILE = os.getenv('JOB_METADATA_FILE', 'data/job_metadata.json')

        # Override with provided config
        if config_dict:
            self._update_from_dict(config_dict)

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for key, value in config_dict.items():
            if hasattr(self, key.upper()):
                setattr(self, key.upper(), value)
                if key.upper() in self._invalid_env:
                    self._invalid_env.remove(key.upper())

    def _env_number(self, name: str, default: str, cast):
        """
        Read a numeric environment variable.

        An unparseable value falls back to the default and is reported by
        validate_config, so the run fails in preflight with the error logged.
        """
        raw = os.getenv(name, default)
        try:
            return cast(raw)
        except ValueError:
            self._invalid_env.append(name)
            return cast(default)

    def get_database_url(self):
        """
        Build the SQLAlchemy URL for the inventory database.

        DATABASE_URL wins when set; otherwise the URL is assembled from the
        individual DB_* settings.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return URL.create(
            self.DB_DRIVER,
            username=self.DB_USER or None,
            password=self.DB_PASSWORD or None,
            host=self.DB_HOST or None,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    def alerts_enabled(self) -> bool:
        """Email alerts need both an SMTP host and a recipient."""
        return bool(self.SMTP_HOST and self.ALERT_EMAIL)

    def validate_config(self) -> Dict[str, bool]:
        """
        Validate configuration values.

        Returns:
            dict: Validation results for each setting
        """
        validations = {}

        validations['top_products_limit'] = self.TOP_PRODUCTS_LIMIT > 0
        validations['low_stock_threshold'] = self.LOW_STOCK_THRESHOLD > 0
        validations['keep_log_days'] = self.KEEP_LOG_DAYS >= 0
        validations['merge_scope'] = self.MERGE_SCOPE in MERGE_SCOPES
        validations['inventory_table'] = self.INVENTORY_TABLE.isidentifier()
        validations['smtp_port'] = 0 < self.SMTP_PORT <= 65535
        validations['api_port'] = 1000 <= self.API_PORT <= 65535

        # Validate log level
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        validations['log_level'] = self.LOG_LEVEL.upper() in valid_log_levels

        for name in self._invalid_env:
            validations[name.lower()] = False

        return validations

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if not attr.startswith('_') and not callable(getattr(self, attr))
        }

    def save_to_file(self, file_path: str) -> None:
        """Save configuration to JSON file. The database password is never written."""
        data = self.to_dict()
        data.pop('DB_PASSWORD', None)
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2, default=str)

    @classmethod
    def load_from_file(cls, file_path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(file_path, 'r') as f:
            config_dict = json.load(f)
        return cls(config_dict)

    def __str__(self) -> str:
        """String representation of configuration."""
        lines = ["Configuration Settings:"]
        config_dict = self.to_dict()
        for key, value in sorted(config_dict.items()):
            if key == 'DB_PASSWORD':
                value = '***'
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)
