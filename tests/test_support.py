# ========================
# tests/test_support.py
# ========================

import unittest
import sys
import os
import csv
import json
import tempfile
from pathlib import Path

from sqlalchemy import create_engine, text

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.utils.alerting import AlertNotifier
from src.utils.config import Config
from src.utils.data_generator import SOURCE_FIELDS, SampleDataGenerator
from src.utils.job_metadata import JobMetadataManager


class TestAlertNotifier(unittest.TestCase):

    def test_disabled_alerts_are_skipped(self):
        notifier = AlertNotifier(Config({'SMTP_HOST': '', 'ALERT_EMAIL': ''}))
        self.assertIsNone(notifier.send_alert("ETL Success", "done"))

    def test_delivery_failure_is_only_logged(self):
        # Nothing listens on port 1, so the connection is refused
        notifier = AlertNotifier(Config({'SMTP_HOST': '127.0.0.1', 'SMTP_PORT': 1,
                                         'SMTP_TIMEOUT': 2, 'ALERT_EMAIL': 'ops@example.com'}))

        with self.assertLogs('src.utils.alerting', level='WARNING') as logs:
            thread = notifier.send_alert("ETL Failed", "Step failed: extracting")
            thread.join(timeout=10)

        self.assertFalse(thread.is_alive())
        self.assertTrue(any("could not be sent" in line for line in logs.output))


class TestSampleDataGenerator(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_feeds_have_requested_rows(self):
        generator = SampleDataGenerator(seed=7)
        online = self.tmp / "data" / "online_orders.json"
        instore = self.tmp / "data" / "instore_sales.csv"

        stats = generator.generate_online_orders(str(online), 25)
        generator.generate_instore_sales(str(instore), 30)

        orders = json.loads(online.read_text())
        self.assertEqual(len(orders), 25)
        self.assertEqual(set(orders[0]), set(SOURCE_FIELDS))
        self.assertLessEqual(stats['records_with_errors'], 25)
        with open(instore, newline='') as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0], SOURCE_FIELDS)
        self.assertEqual(len(rows), 31)

    def test_same_seed_same_data(self):
        first, second = self.tmp / "a.json", self.tmp / "b.json"
        SampleDataGenerator(seed=1).generate_online_orders(str(first), 10)
        SampleDataGenerator(seed=1).generate_online_orders(str(second), 10)
        self.assertEqual(first.read_text(), second.read_text())

    def test_seeds_inventory_table(self):
        database_url = f"sqlite:///{self.tmp / 'inventory.db'}"

        SampleDataGenerator(seed=3).seed_inventory_table(database_url, num_rows=12,
                                                          error_rate=0.5)

        engine = create_engine(database_url)
        with engine.connect() as connection:
            count = connection.execute(text("SELECT COUNT(*) FROM store_inventory")).scalar()
        engine.dispose()
        self.assertEqual(count, 12)


class TestJobMetadataManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.temp_dir.name)
        self.manager = JobMetadataManager(str(self.tmp / "meta" / "jobs.json"))

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_saved_jobs_load_back(self):
        jobs = {'abc': {'job_id': 'abc', 'status': 'completed'}}
        self.manager.save_job_metadata(jobs)
        self.assertEqual(self.manager.load_job_metadata(), jobs)

    def test_corrupt_metadata_loads_empty(self):
        self.manager.metadata_file.write_text("{not json")
        self.assertEqual(self.manager.load_job_metadata(), {})

    def test_runs_discovered_from_reports(self):
        reports = self.tmp / "reports"
        reports.mkdir()
        (reports / "report_2024-05-01.txt").write_text("---- ETL Summary ----\n")
        (reports / "notes.txt").write_text("ignored")

        discovered = self.manager.discover_existing_runs(str(reports))

        self.assertEqual(list(discovered), ["run-2024-05-01"])
        self.assertEqual(discovered["run-2024-05-01"]['status'], 'completed')
        self.assertEqual(discovered["run-2024-05-01"]['run_date'], '2024-05-01')


if __name__ == '__main__':
    unittest.main()
