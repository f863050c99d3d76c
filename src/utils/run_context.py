# ========================
# src/utils/run_context.py
# ========================

"""
Run Context

Everything one pipeline run needs to know about where it reads and writes,
resolved once and handed to every component.
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from .config import Config

ONLINE_ORDERS_NAME = "online_orders"
INSTORE_SALES_NAME = "instore_sales"
STORE_INVENTORY_NAME = "store_inventory"
MERGED_OUTPUT_NAME = "final_output.csv"


@dataclass
class RunContext:
    """
    Paths, run date and configuration for a single run.

    Two contexts with different base directories never share a file, so
    several pipelines can run in one process (tests do this).
    """

    config: Config
    run_date: date
    base_dir: Path
    online_orders_source: Path
    instore_sales_source: Path
    raw_dir: Path
    processed_dir: Path
    log_dir: Path
    report_dir: Path
    database_url: object = field(repr=False, default=None)

    @classmethod
    def from_config(cls, config: Config, run_date: Optional[date] = None) -> 'RunContext':
        """Resolve every configured path against BASE_DIR."""
        base_dir = Path(config.BASE_DIR).resolve()

        def resolve(value: str) -> Path:
            path = Path(value)
            return path if path.is_absolute() else base_dir / path

        return cls(
            config=config,
            run_date=run_date or date.today(),
            base_dir=base_dir,
            online_orders_source=resolve(config.ONLINE_ORDERS_FILE),
            instore_sales_source=resolve(config.INSTORE_SALES_FILE),
            raw_dir=resolve(config.RAW_DIR),
            processed_dir=resolve(config.PROCESSED_DIR),
            log_dir=resolve(config.LOG_DIR),
            report_dir=resolve(config.REPORT_DIR),
            database_url=config.get_database_url(),
        )

    @property
    def date_stamp(self) -> str:
        return self.run_date.isoformat()

    # Raw staging artifacts
    @property
    def raw_online_orders(self) -> Path:
        return self.raw_dir / f"{ONLINE_ORDERS_NAME}.json"

    @property
    def raw_instore_sales(self) -> Path:
        return self.raw_dir / f"{INSTORE_SALES_NAME}.csv"

    @property
    def raw_store_inventory(self) -> Path:
        # Tab-delimited despite the extension, as the database client exports it
        return self.raw_dir / f"{STORE_INVENTORY_NAME}.csv"

    # Normalized artifacts
    @property
    def normalized_online_orders(self) -> Path:
        return self.processed_dir / f"{ONLINE_ORDERS_NAME}.csv"

    @property
    def normalized_instore_sales(self) -> Path:
        return self.processed_dir / f"{INSTORE_SALES_NAME}.csv"

    @property
    def normalized_store_inventory(self) -> Path:
        return self.processed_dir / f"{STORE_INVENTORY_NAME}_clean.csv"

    @property
    def merged_output(self) -> Path:
        return self.processed_dir / MERGED_OUTPUT_NAME

    @property
    def report_file(self) -> Path:
        return self.report_dir / f"report_{self.date_stamp}.txt"

    @property
    def log_file(self) -> Path:
        return self.log_dir / f"etl_{self.date_stamp}.log"

    @property
    def error_log_file(self) -> Path:
        return self.log_dir / f"error_{self.date_stamp}.log"

    def ensure_directories(self) -> None:
        """Create staging, output and log directories if they don't exist."""
        for path in (self.raw_dir, self.processed_dir, self.log_dir, self.report_dir):
            path.mkdir(parents=True, exist_ok=True)
