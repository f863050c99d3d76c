# ========================
# src/utils/performance_monitor.py
# ========================

"""
Performance Monitoring Utilities

Tracks step timings and process memory for a pipeline run, and checks that
the host has room to write the run's artifacts.
"""

import time
import os
import logging
from contextlib import contextmanager
from typing import Dict, Any, Optional

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Performance monitoring utility for the pipeline.
    Records one checkpoint per completed step.
    """

    def __init__(self, name: str = "ETL Pipeline"):
        """
        Initialize performance monitor.

        Args:
            name (str): Name for this monitoring session
        """
        self.name = name
        self.start_time = None
        self.end_time = None
        self.peak_memory_mb = 0.0
        self.records_processed = 0
        self.checkpoints = []
        self.summary = {}
        self._last_mark = None

        logger.debug(f"PerformanceMonitor initialized: {name}")

    def start_monitoring(self) -> None:
        """Start performance monitoring."""
        self.start_time = time.time()
        self._last_mark = self.start_time
        self.peak_memory_mb = self._get_memory_usage_mb()

        logger.info(f"{self.name} - Performance monitoring started")
        logger.debug(f"Initial memory usage: {self.peak_memory_mb:.2f} MB")

    def update_progress(self, records: int) -> None:
        """
        Add to the running record count.

        Args:
            records (int): Number of records handled since the last update
        """
        self.records_processed += records
        self.peak_memory_mb = max(self.peak_memory_mb, self._get_memory_usage_mb())

    def add_checkpoint(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Add a performance checkpoint.

        Args:
            name (str): Checkpoint name, normally the step that just finished
            metadata (dict): Optional metadata to store
        """
        now = time.time()
        memory_mb = self._get_memory_usage_mb()
        self.peak_memory_mb = max(self.peak_memory_mb, memory_mb)

        checkpoint = {
            'name': name,
            'timestamp': now,
            'step_seconds': now - self._last_mark if self._last_mark else 0.0,
            'memory_mb': memory_mb,
            'records_processed': self.records_processed,
            'metadata': metadata or {}
        }
        self._last_mark = now
        self.checkpoints.append(checkpoint)
        logger.debug(f"Checkpoint '{name}': {checkpoint}")

    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Stop monitoring and return performance summary.

        Returns:
            dict: Performance statistics
        """
        self.end_time = time.time()
        total_time = self.end_time - self.start_time if self.start_time else 0

        summary = {
            'name': self.name,
            'total_processing_time_seconds': total_time,
            'records_processed': self.records_processed,
            'peak_memory_usage_mb': self.peak_memory_mb,
            'steps': {c['name']: round(c['step_seconds'], 3) for c in self.checkpoints},
        }
        self.summary = summary

        logger.info(
            f"{self.name} - {total_time:.2f}s, "
            f"{self.records_processed:,} records, "
            f"peak memory {self.peak_memory_mb:.2f} MB"
        )
        return summary

    def _get_memory_usage_mb(self) -> float:
        """Get current memory usage in MB."""
        try:
            process = psutil.Process(os.getpid())
            return process.memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logger.debug(f"Could not get memory usage: {e}")
            return 0.0


@contextmanager
def monitor_performance(name: str = "ETL Pipeline"):
    """
    Context manager for easy performance monitoring.

    Args:
        name (str): Name for this monitoring session

    Yields:
        PerformanceMonitor: Monitor instance
    """
    monitor = PerformanceMonitor(name)
    monitor.start_monitoring()
    try:
        yield monitor
    finally:
        monitor.stop_monitoring()


class SystemResourceMonitor:
    """Monitor system-wide resource usage."""

    @staticmethod
    def get_free_disk_mb(path: str) -> float:
        """Free disk space, in MB, on the filesystem holding path."""
        return psutil.disk_usage(str(path)).free / (1024 * 1024)

    @staticmethod
    def check_disk_space(path: str, min_free_mb: float) -> bool:
        """
        Check if the filesystem holding path has at least min_free_mb free.

        Args:
            path (str): Any existing path on the filesystem to check
            min_free_mb (float): Minimum required free space in MB

        Returns:
            bool: True if there is enough room
        """
        free_mb = SystemResourceMonitor.get_free_disk_mb(path)
        logger.debug(f"Free disk space at {path}: {free_mb:.0f} MB")
        return free_mb >= min_free_mb
