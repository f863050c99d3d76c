# ========================
# tests/test_extraction.py
# ========================

import unittest
import sys
import os
import tempfile
from pathlib import Path

from sqlalchemy import create_engine, text

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.etl.extraction import FileCopyExtractor, QueryDumpExtractor, build_extractors
from src.utils.config import Config
from src.utils.exceptions import ExtractionError
from src.utils.run_context import RunContext


class TestFileCopyExtractor(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_copies_source_unchanged(self):
        source = self.tmp / "data" / "instore_sales.csv"
        source.parent.mkdir()
        source.write_text("id,product,category,price,quantity\n1,Latte,Drinks,4.5,1\n")
        target = self.tmp / "raw" / "instore_sales.csv"

        result = FileCopyExtractor("instore_sales", source, target).extract()

        self.assertEqual(result, target)
        self.assertEqual(target.read_bytes(), source.read_bytes())

    def test_missing_source_raises_extraction_error(self):
        extractor = FileCopyExtractor("online_orders", self.tmp / "missing.json",
                                      self.tmp / "raw" / "online_orders.json")

        with self.assertRaises(ExtractionError) as cm:
            extractor.extract()

        self.assertEqual(cm.exception.source_name, "online_orders")
        self.assertIn("missing.json", str(cm.exception))
        self.assertFalse((self.tmp / "raw" / "online_orders.json").exists())


class TestQueryDumpExtractor(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.temp_dir.name)
        self.database_url = f"sqlite:///{self.tmp / 'inventory.db'}"

        engine = create_engine(self.database_url)
        with engine.begin() as connection:
            connection.execute(text(
                "CREATE TABLE store_inventory "
                "(id INTEGER, product TEXT, category TEXT, price NUMERIC, quantity INTEGER)"
            ))
            connection.execute(text(
                "INSERT INTO store_inventory VALUES "
                "(1, 'Milk', 'Supplies', 1.2, 3), "
                "(2, 'Sugar', 'Supplies', NULL, 10)"
            ))
        engine.dispose()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_dumps_table_tab_delimited_with_header(self):
        target = self.tmp / "raw" / "store_inventory.csv"
        extractor = QueryDumpExtractor("store_inventory", self.database_url,
                                       "store_inventory", target)

        extractor.extract()

        lines = target.read_text().splitlines()
        self.assertEqual(lines[0], "id\tproduct\tcategory\tprice\tquantity")
        self.assertEqual(len(lines), 3)
        self.assertEqual(lines[1].split("\t")[:2], ["1", "Milk"])
        self.assertEqual(lines[2].split("\t")[3], "NULL")
        self.assertFalse(target.with_name(target.name + ".part").exists())

    def test_query_selects_whole_table(self):
        extractor = QueryDumpExtractor("store_inventory", self.database_url,
                                       "store_inventory", self.tmp / "out.csv")
        self.assertEqual(extractor.query, "SELECT * FROM store_inventory")

    def test_missing_table_raises_and_leaves_no_file(self):
        target = self.tmp / "raw" / "store_inventory.csv"
        extractor = QueryDumpExtractor("store_inventory", self.database_url,
                                       "no_such_table", target)

        with self.assertRaises(ExtractionError) as cm:
            extractor.extract()

        self.assertEqual(cm.exception.source_name, "store_inventory")
        self.assertIn("DB extraction failed", str(cm.exception))
        self.assertFalse(target.exists())
        self.assertFalse(target.with_name(target.name + ".part").exists())


class TestBuildExtractors(unittest.TestCase):

    def test_adapters_in_source_order(self):
        with tempfile.TemporaryDirectory() as tmp:
            config = Config({'BASE_DIR': tmp, 'DATABASE_URL': 'sqlite://'})
            context = RunContext.from_config(config)

            extractors = build_extractors(context)

        self.assertEqual([e.source_name for e in extractors],
                         ["online_orders", "instore_sales", "store_inventory"])
        self.assertEqual(extractors[0].target_path, context.raw_online_orders)
        self.assertEqual(extractors[2].table, "store_inventory")


if __name__ == '__main__':
    unittest.main()
