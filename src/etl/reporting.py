# ========================
# src/etl/reporting.py
# ========================

"""
Summary Reporting Module

Aggregates the merged dataset into the daily summary report: revenue by
category, top products and low inventory.
"""

import csv
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .normalization import SourceKind
from ..utils.exceptions import ReportError

logger = logging.getLogger(__name__)


@dataclass
class SummaryReport:
    """The three aggregations, each in its output order."""
    revenue_by_category: List[Tuple[str, Decimal]] = field(default_factory=list)
    top_products: List[Tuple[str, Decimal]] = field(default_factory=list)
    low_inventory: List[Tuple[str, int]] = field(default_factory=list)
    records_read: int = 0


class ReportGenerator:
    """
    Builds and writes the daily summary report from the merged dataset.
    """

    def __init__(self, top_products_limit: int = 10, low_stock_threshold: int = 5):
        """
        Initialize the report generator.

        Args:
            top_products_limit (int): Number of products in the top products list
            low_stock_threshold (int): Inventory rows below this quantity are listed
        """
        self.top_products_limit = top_products_limit
        self.low_stock_threshold = low_stock_threshold

    def build_report(self, merged_path: Path) -> SummaryReport:
        """
        Compute all aggregations in one pass over the merged dataset.

        Ties in the top products list keep first-seen order.

        Args:
            merged_path (Path): The merged dataset

        Returns:
            SummaryReport: The aggregations

        Raises:
            ReportError: If the dataset is missing or unreadable
        """
        merged_path = Path(merged_path)
        if not merged_path.is_file():
            raise ReportError(f"Merged dataset not found: {merged_path}")

        category_revenue: Dict[str, Decimal] = defaultdict(Decimal)
        product_revenue: Dict[str, Decimal] = defaultdict(Decimal)
        low_inventory = []
        records_read = 0

        try:
            with open(merged_path, 'r', newline='', encoding='utf-8') as f:
                for record in csv.DictReader(f):
                    total_sales = Decimal(record['total_sales'])
                    category_revenue[record['category']] += total_sales
                    product_revenue[record['product']] += total_sales

                    if record['source'] == SourceKind.INVENTORY.value:
                        quantity = int(record['quantity'])
                        if quantity < self.low_stock_threshold:
                            low_inventory.append((record['product'], quantity))
                    records_read += 1
        except (OSError, csv.Error, KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise ReportError(f"Merged dataset unreadable: {merged_path.name}",
                              {'path': str(merged_path), 'row': records_read + 1}, e) from e

        # sorted() is stable: equal totals stay in first-seen order
        top_products = sorted(product_revenue.items(), key=lambda item: item[1],
                              reverse=True)[:self.top_products_limit]

        return SummaryReport(
            revenue_by_category=list(category_revenue.items()),
            top_products=top_products,
            low_inventory=low_inventory,
            records_read=records_read,
        )

    def write_report(self, report: SummaryReport, report_path: Path,
                     generated_at: Optional[datetime] = None) -> Path:
        """
        Write the report as plain text, sections in fixed order.

        Args:
            report (SummaryReport): Aggregations to write
            report_path (Path): Destination file
            generated_at (datetime): Banner timestamp (default: now)

        Returns:
            Path: The report file
        """
        generated_at = generated_at or datetime.now()
        report_path = Path(report_path)
        report_path.parent.mkdir(parents=True, exist_ok=True)

        lines = [f"---- ETL Summary {generated_at:%Y-%m-%d %H:%M:%S} ----", ""]
        lines.append("Revenue by category:")
        lines.extend(f"{category} {total}" for category, total in report.revenue_by_category)
        lines.append("")
        lines.append(f"Top {self.top_products_limit} products:")
        lines.extend(f"{product} {total}" for product, total in report.top_products)
        lines.append("")
        lines.append(f"Low inventory (quantity < {self.low_stock_threshold}):")
        lines.extend(f"{product} {quantity}" for product, quantity in report.low_inventory)

        try:
            report_path.write_text("\n".join(lines) + "\n", encoding='utf-8')
        except OSError as e:
            raise ReportError(f"Failed to write report {report_path.name}", {}, e) from e

        logger.info(f"Report created: {report_path}")
        return report_path

    def generate(self, merged_path: Path, report_path: Path) -> SummaryReport:
        """Build the report and write it."""
        logger.info("Generating summary report...")
        report = self.build_report(merged_path)
        self.write_report(report, report_path)
        return report
