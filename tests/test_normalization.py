# ========================
# tests/test_normalization.py
# ========================

import unittest
import sys
import os
import csv
import json
import tempfile
from decimal import Decimal
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.etl.normalization import (
    NORMALIZED_HEADER,
    Normalizer,
    SourceKind,
    parse_decimal,
    parse_quantity,
)
from src.utils.exceptions import TransformError, TransformWarning


def read_rows(path):
    with open(path, newline='', encoding='utf-8') as f:
        return list(csv.reader(f))


class TestNormalizer(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def write(self, name, content):
        path = self.tmp / name
        path.write_text(content, encoding='utf-8')
        return path

    def test_online_orders_keep_only_valid_rows(self):
        """
        A zero-price row is dropped; the valid row gets its total and source tag.
        """
        raw = self.write("online_orders.json", json.dumps([
            {"id": 1, "product": "Latte", "category": "Drinks", "price": 4, "quantity": 2},
            {"id": 2, "product": "Cup", "category": "Supplies", "price": 0, "quantity": 5},
        ]))
        output = self.tmp / "online_orders.csv"

        stats = Normalizer(SourceKind.ONLINE).normalize(raw, output)

        rows = read_rows(output)
        self.assertEqual(rows[0], NORMALIZED_HEADER)
        self.assertEqual(len(rows), 2)
        record = dict(zip(rows[0], rows[1]))
        self.assertEqual(record['product'], 'Latte')
        self.assertEqual(record['source'], 'online')
        self.assertEqual(Decimal(record['total_sales']), Decimal('8'))
        self.assertEqual(stats['records_processed'], 2)
        self.assertEqual(stats['records_written'], 1)
        self.assertEqual(stats['records_dropped'], 1)

    def test_decimal_prices_are_exact(self):
        raw = self.write("online_orders.json", json.dumps([
            {"id": 1, "product": "Milk", "category": "Supplies", "price": 0.1, "quantity": 3},
        ]))
        output = self.tmp / "online_orders.csv"

        Normalizer(SourceKind.ONLINE).normalize(raw, output)

        record = dict(zip(*read_rows(output)))
        self.assertEqual(Decimal(record['total_sales']), Decimal('0.3'))

    def test_online_rows_with_missing_or_bad_values_are_dropped(self):
        raw = self.write("online_orders.json", json.dumps([
            {"id": 1, "product": "Latte", "category": "Drinks", "price": "N/A", "quantity": 1},
            {"id": 2, "product": "Mocha", "category": "Drinks", "price": 4.5, "quantity": None},
            {"id": 3, "product": "Scone", "category": "Bakery", "price": 2.5},
            {"id": 4, "product": "Tea", "category": "Drinks", "price": 2, "quantity": 2.5},
            "not an object",
            {"id": 5, "product": "Espresso", "category": "Drinks", "price": "3.00", "quantity": "2"},
        ]))
        output = self.tmp / "online_orders.csv"

        normalizer = Normalizer(SourceKind.ONLINE)
        stats = normalizer.normalize(raw, output)

        rows = read_rows(output)[1:]
        self.assertEqual([row[1] for row in rows], ['Espresso'])
        self.assertEqual(stats['records_dropped'], 5)
        self.assertEqual(sum(stats['drop_reasons'].values()), 5)

    def test_instore_sales_are_comma_delimited(self):
        raw = self.write("instore_sales.csv",
                         "id,product,category,price,quantity\n"
                         "1,Croissant,Bakery,3.25,2\n"
                         "2,Latte,Drinks,-4.50,1\n"
                         "3,Espresso,Drinks,3.00,0\n"
                         "4,Muffin,Bakery,abc,1\n"
                         "5,Cup\n"
                         "\n"
                         "6,Cold Brew,Drinks,4.75,3\n")
        output = self.tmp / "instore_sales.csv"

        stats = Normalizer(SourceKind.INSTORE).normalize(raw, output)

        rows = read_rows(output)[1:]
        self.assertEqual([row[1] for row in rows], ['Croissant', 'Cold Brew'])
        self.assertTrue(all(row[5] == 'instore' for row in rows))
        self.assertEqual(Decimal(rows[1][6]), Decimal('14.25'))
        self.assertEqual(stats['records_processed'], 6)
        self.assertEqual(stats['records_dropped'], 4)

    def test_inventory_dump_is_tab_delimited(self):
        raw = self.write("store_inventory.csv",
                         "id\tproduct\tcategory\tprice\tquantity\n"
                         "1\tMilk\tSupplies\t1.20\t3\n"
                         "2\tSugar\tSupplies\tNULL\t10\n"
                         "3\tCoffee Beans, House Blend\tRetail\t24.00\t2\n")
        output = self.tmp / "store_inventory_clean.csv"

        Normalizer(SourceKind.INVENTORY).normalize(raw, output)

        rows = read_rows(output)[1:]
        self.assertEqual([row[1] for row in rows], ['Milk', 'Coffee Beans, House Blend'])
        self.assertTrue(all(row[5] == 'inventory' for row in rows))
        self.assertEqual(Decimal(rows[0][6]), Decimal('3.60'))

    def test_normalizing_output_again_changes_nothing(self):
        """
        A normalized artifact fed back through the same normalizer is reproduced.
        """
        raw = self.write("instore_sales.csv",
                         "id,product,category,price,quantity\n"
                         "1,Croissant,Bakery,3.25,2\n"
                         "2,Latte,Drinks,0,1\n"
                         "3,Espresso,Drinks,3.00,4\n")
        first = self.tmp / "first.csv"
        second = self.tmp / "second.csv"

        Normalizer(SourceKind.INSTORE).normalize(raw, first)
        stats = Normalizer(SourceKind.INSTORE).normalize(first, second)

        self.assertEqual(read_rows(first), read_rows(second))
        self.assertEqual(stats['records_dropped'], 0)

    def test_surviving_rows_are_positive(self):
        raw = self.write("instore_sales.csv",
                         "id,product,category,price,quantity\n"
                         "1,A,X,1.5,1\n"
                         "2,B,X,-1,2\n"
                         "3,C,X,2,-3\n"
                         "4,D,X,0.01,7\n")
        output = self.tmp / "out.csv"

        Normalizer(SourceKind.INSTORE).normalize(raw, output)

        for row in read_rows(output)[1:]:
            price, quantity, total = Decimal(row[3]), int(row[4]), Decimal(row[6])
            self.assertGreater(price, 0)
            self.assertGreater(quantity, 0)
            self.assertEqual(total, price * quantity)

    def test_missing_raw_artifact_raises(self):
        output = self.tmp / "out.csv"
        with self.assertRaises(TransformError):
            Normalizer(SourceKind.INSTORE).normalize(self.tmp / "missing.csv", output)
        self.assertFalse(output.exists())

    def test_json_that_is_not_an_array_raises(self):
        raw = self.write("online_orders.json", json.dumps({"id": 1}))
        with self.assertRaises(TransformError):
            Normalizer(SourceKind.ONLINE).normalize(raw, self.tmp / "out.csv")

    def test_malformed_json_raises(self):
        raw = self.write("online_orders.json", "[{\"id\": 1,")
        with self.assertRaises(TransformError):
            Normalizer(SourceKind.ONLINE).normalize(raw, self.tmp / "out.csv")

    def test_extreme_numbers_are_dropped(self):
        """
        Huge exponents are dropped as bad rows instead of overflowing the total.
        """
        raw = self.write("instore_sales.csv",
                         "id,product,category,price,quantity\n"
                         "1,Latte,Drinks,4.50,2\n"
                         "2,Mocha,Drinks,1E+999999,10\n"
                         "3,Tea,Drinks,2.00,1e50000000\n"
                         "4,Scone,Bakery,99999999999999,1\n")
        output = self.tmp / "out.csv"

        stats = Normalizer(SourceKind.INSTORE).normalize(raw, output)

        rows = read_rows(output)[1:]
        self.assertEqual([row[1] for row in rows], ['Latte'])
        self.assertEqual(stats['records_written'], 1)
        self.assertEqual(stats['records_dropped'], 3)

    def test_row_with_bad_bytes_is_dropped(self):
        raw = self.tmp / "instore_sales.csv"
        raw.write_bytes(b"id,product,category,price,quantity\n"
                        b"1,Latte,Drinks,4.50,2\n"
                        b"2,Caf\xe9,Drinks,3.00,1\n"
                        b"3,Espresso,Drinks,3.00,1\n")
        output = self.tmp / "out.csv"

        stats = Normalizer(SourceKind.INSTORE).normalize(raw, output)

        rows = read_rows(output)[1:]
        self.assertEqual([row[1] for row in rows], ['Latte', 'Espresso'])
        self.assertEqual(stats['drop_reasons'], {"row is not valid UTF-8": 1})

    def test_blank_product_or_category_is_dropped(self):
        raw = self.write("instore_sales.csv",
                         "id,product,category,price,quantity\n"
                         "1,,Drinks,4.50,2\n"
                         "2,Latte, ,4.50,2\n"
                         "3,Latte,Drinks,4.50,2\n")
        output = self.tmp / "out.csv"

        stats = Normalizer(SourceKind.INSTORE).normalize(raw, output)

        self.assertEqual(len(read_rows(output)), 2)
        self.assertEqual(stats['records_dropped'], 2)

    def test_header_only_input_writes_header_only_output(self):
        raw = self.write("instore_sales.csv", "id,product,category,price,quantity\n")
        output = self.tmp / "out.csv"

        stats = Normalizer(SourceKind.INSTORE).normalize(raw, output)

        self.assertEqual(read_rows(output), [NORMALIZED_HEADER])
        self.assertEqual(stats['records_written'], 0)


class TestValueParsing(unittest.TestCase):

    def test_parse_decimal(self):
        self.assertEqual(parse_decimal("4.50"), Decimal("4.50"))
        self.assertEqual(parse_decimal(" 2 "), Decimal("2"))
        self.assertEqual(parse_decimal(3), Decimal("3"))
        for value in ("N/A", "", "NaN", "Infinity", None, True, [1]):
            with self.assertRaises(TransformWarning):
                parse_decimal(value)

    def test_parse_quantity(self):
        self.assertEqual(parse_quantity("3"), 3)
        self.assertEqual(parse_quantity("3.0"), 3)
        with self.assertRaises(TransformWarning):
            parse_quantity("2.5")
        with self.assertRaises(TransformWarning):
            parse_quantity("1e50000000")

    def test_parse_decimal_rejects_out_of_range(self):
        self.assertEqual(parse_decimal("1E+12"), Decimal("1E+12"))
        self.assertEqual(parse_decimal("0E+999999"), Decimal(0))
        for value in ("1E+13", "1E+999999", "-1E+999999"):
            with self.assertRaises(TransformWarning):
                parse_decimal(value)


if __name__ == '__main__':
    unittest.main()
