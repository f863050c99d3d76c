# ========================
# src/utils/logging_setup.py
# ========================

"""
Logging Configuration

Centralized logging setup for the ETL pipeline: console output, a daily
run log and a daily error log, plus the log retention sweep.
"""

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: str = "INFO",
                  log_dir: str = "logs",
                  run_date: Optional[date] = None,
                  console: bool = True) -> None:
    """
    Set up logging configuration for the pipeline.

    Args:
        log_level (str): Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir (str): Directory for log files
        run_date (date): Date used in the daily log file names (default: today)
        console (bool): Also log to stdout
    """
    run_date = run_date or date.today()
    # Unknown names fall back to INFO; preflight rejects them
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Create logs directory
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Daily run log gets all messages
    run_log = log_path / f"etl_{run_date.isoformat()}.log"
    file_handler = logging.FileHandler(run_log, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Daily error log
    error_log = log_path / f"error_{run_date.isoformat()}.log"
    error_handler = logging.FileHandler(error_log, encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    root_logger.addHandler(error_handler)

    # Set specific logger levels
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    logging.info(f"Logging to file: {run_log}")
    logging.info(f"Logging initialized - Level: {log_level}")


def cleanup_old_logs(log_dir: str, keep_days: int) -> List[Path]:
    """
    Delete log files older than keep_days days.

    Age is measured from the file modification time. Files held open by the
    current run are younger than any positive cut-off and survive.

    Args:
        log_dir (str): Directory holding the log files
        keep_days (int): Retention window in days

    Returns:
        list[Path]: The files that were deleted
    """
    log_path = Path(log_dir)
    if not log_path.is_dir():
        return []

    cutoff = time.time() - keep_days * 86400
    deleted = []
    for log_file in sorted(log_path.iterdir()):
        if log_file.is_file() and log_file.stat().st_mtime < cutoff:
            log_file.unlink()
            deleted.append(log_file)
            logging.getLogger(__name__).debug(f"Deleted old log file: {log_file}")
    return deleted

