# ========================
# src/etl/extraction.py
# ========================

"""
Data Extraction Module

Source adapters that stage raw artifacts: two file-copy adapters (JSON and
CSV feeds) and a query-dump adapter for the inventory database table.
Each adapter writes exactly one file and shares no state with the others.
"""

import csv
import logging
import shutil
from pathlib import Path
from typing import List

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from ..utils.exceptions import ExtractionError
from ..utils.run_context import RunContext

logger = logging.getLogger(__name__)

NULL_MARKER = "NULL"


class FileCopyExtractor:
    """
    Copies a source file into the raw staging area unchanged.
    """

    def __init__(self, source_name: str, source_path: Path, target_path: Path):
        """
        Initialize the file copy adapter.

        Args:
            source_name (str): Name used in logs and errors
            source_path (Path): File to copy
            target_path (Path): Staging location
        """
        self.source_name = source_name
        self.source_path = Path(source_path)
        self.target_path = Path(target_path)

    def extract(self) -> Path:
        """
        Copy the source file into staging.

        Returns:
            Path: The staged raw artifact

        Raises:
            ExtractionError: If the source is missing or cannot be copied
        """
        logger.info(f"Extracting {self.source_name} from {self.source_path}...")
        if not self.source_path.is_file():
            raise ExtractionError(self.source_name,
                                  f"Failed to copy {self.source_path.name}: file not found")
        try:
            self.target_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.source_path, self.target_path)
        except OSError as e:
            raise ExtractionError(self.source_name,
                                  f"Failed to copy {self.source_path.name}", e) from e

        logger.info(f"{self.source_name} copied to {self.target_path}")
        return self.target_path


class QueryDumpExtractor:
    """
    Dumps a whole database table to a tab-delimited staging file,
    header row first.
    """

    def __init__(self, source_name: str, database_url, table: str, target_path: Path):
        """
        Initialize the query dump adapter.

        Args:
            source_name (str): Name used in logs and errors
            database_url: SQLAlchemy URL (string or URL object)
            table (str): Table to dump with SELECT *
            target_path (Path): Staging location
        """
        self.source_name = source_name
        self.database_url = database_url
        self.table = table
        self.target_path = Path(target_path)

    @property
    def query(self) -> str:
        return f"SELECT * FROM {self.table}"

    def extract(self) -> Path:
        """
        Run the query and write its entire result set.

        Returns:
            Path: The staged raw artifact

        Raises:
            ExtractionError: On any connection, authentication or query failure
        """
        logger.info(f"Extracting {self.table} from database...")
        self.target_path.parent.mkdir(parents=True, exist_ok=True)
        partial_path = self.target_path.with_name(self.target_path.name + ".part")

        engine = None
        try:
            engine = create_engine(self.database_url)
            with engine.connect() as connection:
                result = connection.execute(text(self.query))
                row_count = self._write_result(result, partial_path)
            partial_path.replace(self.target_path)
        except (SQLAlchemyError, OSError) as e:
            partial_path.unlink(missing_ok=True)
            raise ExtractionError(self.source_name, "DB extraction failed", e) from e
        finally:
            if engine is not None:
                engine.dispose()

        logger.info(f"DB extraction complete: {self.target_path} ({row_count} rows)")
        return self.target_path

    @staticmethod
    def _write_result(result, path: Path) -> int:
        row_count = 0
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f, delimiter='\t', lineterminator='\n')
            writer.writerow(list(result.keys()))
            for row in result:
                writer.writerow([NULL_MARKER if value is None else value for value in row])
                row_count += 1
        return row_count


def build_extractors(context: RunContext) -> List:
    """
    Build the three source adapters for a run.

    Args:
        context (RunContext): The current run

    Returns:
        list: Adapters in online, instore, inventory order
    """
    return [
        FileCopyExtractor("online_orders", context.online_orders_source,
                          context.raw_online_orders),
        FileCopyExtractor("instore_sales", context.instore_sales_source,
                          context.raw_instore_sales),
        QueryDumpExtractor("store_inventory", context.database_url,
                           context.config.INVENTORY_TABLE, context.raw_store_inventory),
    ]
