# ========================
# src/utils/data_generator.py
# ========================

"""
Sample Data Generation

Writes realistic sample sources for local runs and tests: the online orders
JSON feed, the in-store sales CSV and the store_inventory table, each with a
controlled share of invalid rows.
"""

import csv
import json
import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Column, Integer, MetaData, Numeric, String, Table, create_engine

logger = logging.getLogger(__name__)

SOURCE_FIELDS = ['id', 'product', 'category', 'price', 'quantity']


class SampleDataGenerator:
    """
    Generates the three pipeline sources with error injection.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize data generator.

        Args:
            seed (int): Random seed for reproducible data generation
        """
        self.random = random.Random(seed)
        self._initialize_data_patterns()
        logger.info(f"SampleDataGenerator initialized with seed: {seed}")

    def _initialize_data_patterns(self) -> None:
        """Initialize the product catalog."""
        self.products = [
            {"name": "Latte", "category": "Drinks", "base_price": 4.50},
            {"name": "Espresso", "category": "Drinks", "base_price": 3.00},
            {"name": "Cappuccino", "category": "Drinks", "base_price": 4.25},
            {"name": "Cold Brew", "category": "Drinks", "base_price": 4.75},
            {"name": "Croissant", "category": "Bakery", "base_price": 3.25},
            {"name": "Blueberry Muffin", "category": "Bakery", "base_price": 2.95},
            {"name": "Coffee Beans 1kg", "category": "Retail", "base_price": 24.00},
            {"name": "Cup", "category": "Supplies", "base_price": 0.35},
            {"name": "Milk", "category": "Supplies", "base_price": 1.20},
            {"name": "Sugar", "category": "Supplies", "base_price": 0.90},
        ]

        # Each error type breaks exactly one rule of the validity predicate
        self.error_types = ['zero_price', 'negative_quantity', 'non_numeric_price',
                            'missing_quantity']

    def _generate_record(self, record_id: int, max_quantity: int = 12) -> Dict[str, Any]:
        product = self.random.choice(self.products)
        price = round(product["base_price"] * self.random.uniform(0.9, 1.1), 2)
        return {
            'id': record_id,
            'product': product["name"],
            'category': product["category"],
            'price': price,
            'quantity': self.random.randint(1, max_quantity),
        }

    def _inject_error(self, record: Dict[str, Any], stats: Dict[str, Any]) -> Dict[str, Any]:
        error_type = self.random.choice(self.error_types)
        if error_type == 'zero_price':
            record['price'] = 0
        elif error_type == 'negative_quantity':
            record['quantity'] = -record['quantity']
        elif error_type == 'non_numeric_price':
            record['price'] = "N/A"
        else:
            record['quantity'] = None

        stats['records_with_errors'] += 1
        stats['error_types'][error_type] = stats['error_types'].get(error_type, 0) + 1
        return record

    def _generate_records(self, num_rows: int, error_rate: float,
                          max_quantity: int = 12) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        stats = {
            'total_rows': num_rows,
            'error_rate': error_rate,
            'records_with_errors': 0,
            'error_types': {}
        }
        records = []
        for record_id in range(1, num_rows + 1):
            record = self._generate_record(record_id, max_quantity)
            if self.random.random() < error_rate:
                record = self._inject_error(record, stats)
            records.append(record)
        return records, stats

    def generate_online_orders(self, file_path: str, num_rows: int,
                               error_rate: float = 0.15) -> Dict[str, Any]:
        """
        Write the online orders feed as a JSON array of objects.

        Args:
            file_path (str): Output JSON file path
            num_rows (int): Number of orders to generate
            error_rate (float): Fraction of orders with an invalid value

        Returns:
            dict: Generation statistics
        """
        records, stats = self._generate_records(num_rows, error_rate)
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2)

        logger.info(f"Generated {num_rows} online orders in {file_path}")
        return stats

    def generate_instore_sales(self, file_path: str, num_rows: int,
                               error_rate: float = 0.15) -> Dict[str, Any]:
        """
        Write the in-store sales feed as a comma-delimited file with header.

        Args:
            file_path (str): Output CSV file path
            num_rows (int): Number of sales to generate
            error_rate (float): Fraction of sales with an invalid value

        Returns:
            dict: Generation statistics
        """
        records, stats = self._generate_records(num_rows, error_rate)
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=SOURCE_FIELDS, lineterminator='\n')
            writer.writeheader()
            writer.writerows(records)

        logger.info(f"Generated {num_rows} in-store sales in {file_path}")
        return stats

    def seed_inventory_table(self, database_url, table_name: str = "store_inventory",
                             num_rows: int = 20, error_rate: float = 0.1) -> Dict[str, Any]:
        """
        Create (or replace) the inventory table and fill it with sample stock.

        Quantities are kept low so that some rows show up as low inventory.
        Non-numeric prices cannot be stored in a numeric column, so those
        errors become NULL prices.

        Args:
            database_url: SQLAlchemy URL of the inventory database
            table_name (str): Table to create
            num_rows (int): Number of rows to insert
            error_rate (float): Fraction of rows with an invalid value

        Returns:
            dict: Generation statistics
        """
        records, stats = self._generate_records(num_rows, error_rate, max_quantity=15)
        for record in records:
            if not isinstance(record['price'], (int, float)):
                record['price'] = None

        metadata = MetaData()
        table = Table(
            table_name, metadata,
            Column('id', Integer, primary_key=True),
            Column('product', String(100)),
            Column('category', String(50)),
            Column('price', Numeric(10, 2)),
            Column('quantity', Integer),
        )

        engine = create_engine(database_url)
        try:
            metadata.drop_all(engine, tables=[table])
            metadata.create_all(engine, tables=[table])
            with engine.begin() as connection:
                connection.execute(table.insert(), records)
        finally:
            engine.dispose()

        logger.info(f"Seeded {num_rows} rows into {table_name}")
        return stats
