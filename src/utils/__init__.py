# ========================
# src/utils/__init__.py
# ========================

"""
Utilities Package

Configuration, logging, alerting and other helpers for the ETL pipeline.
"""

from .config import Config
from .run_context import RunContext
from .performance_monitor import monitor_performance, PerformanceMonitor
from .logging_setup import setup_logging, cleanup_old_logs
from .alerting import AlertNotifier
from .data_generator import SampleDataGenerator
from .job_metadata import JobMetadataManager

__all__ = [
    'Config',
    'RunContext',
    'monitor_performance',
    'PerformanceMonitor',
    'setup_logging',
    'cleanup_old_logs',
    'AlertNotifier',
    'SampleDataGenerator',
    'JobMetadataManager'
]
