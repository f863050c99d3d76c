# ========================
# tests/test_main.py
# ========================

import unittest
import sys
import os
import logging
import tempfile
from datetime import date
from pathlib import Path
from unittest import mock

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main
from src.utils.config import Config


class TestMainEntryPoint(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory(ignore_cleanup_errors=True)
        self.base = Path(self.temp_dir.name)

    def tearDown(self):
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        self.temp_dir.cleanup()

    def test_unparseable_setting_exits_with_logged_error(self):
        """
        A non-numeric DB_PORT fails the run in preflight and lands in the error log.
        """
        env = {'ETL_BASE_DIR': str(self.base), 'DB_PORT': 'abc', 'SMTP_HOST': '',
               'LOG_LEVEL': 'INFO'}
        with mock.patch.dict(os.environ, env):
            exit_code = main.main()

        self.assertEqual(exit_code, 1)
        error_log = self.base / "logs" / f"error_{date.today().isoformat()}.log"
        self.assertIn("db_port", error_log.read_text())

    def test_unparseable_setting_is_reported_by_validation(self):
        with mock.patch.dict(os.environ, {'SMTP_PORT': 'twenty-five'}):
            config = Config()

        self.assertEqual(config.SMTP_PORT, 25)
        self.assertFalse(config.validate_config()['smtp_port'])
        self.assertNotIn('_invalid_env', config.to_dict())

    def test_override_clears_unparseable_setting(self):
        with mock.patch.dict(os.environ, {'KEEP_LOG_DAYS': 'week'}):
            config = Config({'KEEP_LOG_DAYS': 7})

        self.assertTrue(config.validate_config()['keep_log_days'])

    def test_unknown_log_level_fails_preflight(self):
        env = {'ETL_BASE_DIR': str(self.base), 'LOG_LEVEL': 'LOUD', 'SMTP_HOST': ''}
        with mock.patch.dict(os.environ, env):
            exit_code = main.main()

        self.assertEqual(exit_code, 1)


if __name__ == '__main__':
    unittest.main()
