# ========================
# src/etl/orchestrator.py
# ========================

"""
Pipeline Orchestrator Module

Runs one ETL pass: preflight, parallel extraction, transformation, merge,
archive, report and cleanup. Owns the failure and alerting policy.

Concurrent runs against the same directories are unsupported; no lock is
taken.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .archive import DataArchiver
from .extraction import build_extractors
from .merge import DataMerger, resolve_merge_inputs
from .normalization import Normalizer, SourceKind
from .reporting import ReportGenerator
from ..utils.alerting import AlertNotifier
from ..utils.exceptions import (
    ArchiveError,
    CleanupError,
    PipelineError,
    PreflightError,
    UnexpectedError,
)
from ..utils.logging_setup import cleanup_old_logs
from ..utils.performance_monitor import SystemResourceMonitor, monitor_performance
from ..utils.run_context import RunContext

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    PREFLIGHT = "preflight"
    EXTRACTING = "extracting"
    TRANSFORMING = "transforming"
    LOADING = "loading"
    ARCHIVING = "archiving"
    REPORTING = "reporting"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


class ETLPipeline:
    """
    Orchestrates the entire ETL pipeline for one run.

    Every step runs only after the previous one succeeded. Any step failure
    moves the run to FAILED, fires an alert and re-raises; artifacts already
    written are left in place.
    """

    def __init__(self,
                 context: RunContext,
                 notifier: Optional[AlertNotifier] = None,
                 extractors: Optional[List] = None):
        """
        Initialize the ETL pipeline.

        Args:
            context (RunContext): Paths, date and configuration for this run
            notifier (AlertNotifier): Alert channel (default: email)
            extractors (list): Source adapters (default: the three configured sources)
        """
        self.context = context
        self.config = context.config
        self.notifier = notifier or AlertNotifier(self.config)
        self.extractors = extractors if extractors is not None else build_extractors(context)

        self.transform_plan = [
            (SourceKind.ONLINE, context.raw_online_orders, context.normalized_online_orders),
            (SourceKind.INSTORE, context.raw_instore_sales, context.normalized_instore_sales),
            (SourceKind.INVENTORY, context.raw_store_inventory, context.normalized_store_inventory),
        ]
        self.merger = DataMerger(context.merged_output)
        self.archiver = DataArchiver(context.processed_dir)
        self.reporter = ReportGenerator(
            top_products_limit=self.config.TOP_PRODUCTS_LIMIT,
            low_stock_threshold=self.config.LOW_STOCK_THRESHOLD
        )

        self.state = PipelineState.PREFLIGHT
        self.state_history: List[PipelineState] = []
        self.raw_artifacts: List[Path] = []
        self.run_artifacts: List[Path] = []
        self.merge_inputs: List[Path] = []
        self.results: Dict[str, Any] = {
            'pipeline_status': 'pending',
            'run_date': context.date_stamp,
        }
        self._monitor = None

        logger.info("ETLPipeline initialized:")
        logger.info(f"  Base directory: {context.base_dir}")
        logger.info(f"  Run date: {context.date_stamp}")
        logger.info(f"  Merge scope: {self.config.MERGE_SCOPE}")

    def run(self) -> Dict[str, Any]:
        """
        Execute the complete pipeline from start to finish.

        Returns:
            dict: Summary of the run

        Raises:
            PipelineError: The error of the step that failed
        """
        logger.info("Starting ETL pipeline...")
        self.results['started_at'] = datetime.now().isoformat()

        try:
            with monitor_performance("ETL Pipeline") as monitor:
                self._monitor = monitor
                self._run_step(PipelineState.PREFLIGHT, self.preflight)
                self.results['extracted_files'] = self._run_step(
                    PipelineState.EXTRACTING, self.extract)
                self.results['transform_stats'] = self._run_step(
                    PipelineState.TRANSFORMING, self.transform)
                self.results['merge_stats'] = self._run_step(
                    PipelineState.LOADING, self.load)
                self.results['archive_file'] = self._run_step(
                    PipelineState.ARCHIVING, self.archive)
                self.results['report'] = self._run_step(
                    PipelineState.REPORTING, self.report)
                self.results['cleanup'] = self._run_step(
                    PipelineState.CLEANUP, self.cleanup)
        finally:
            self.results['performance'] = self._monitor.summary if self._monitor else {}

        self._enter(PipelineState.DONE)
        self.results['pipeline_status'] = 'completed'
        self.results['completed_at'] = datetime.now().isoformat()

        self._dispatch_alert("ETL Success",
                             f"Pipeline completed successfully on {datetime.now():%Y-%m-%d %H:%M:%S}")
        logger.info("ETL pipeline completed successfully!")
        return self.results

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self.state_history.append(state)
        self.results['state_history'] = [s.value for s in self.state_history]

    def _run_step(self, state: PipelineState, step: Callable[[], Any]) -> Any:
        """Run one step, routing any failure into the FAILED state."""
        self._enter(state)
        logger.info(f"Running: {state.value}")
        try:
            outcome = step()
        except PipelineError as e:
            self._fail(state, e)
            raise
        except Exception as e:
            error = UnexpectedError(f"Unexpected error during {state.value}",
                                    {'step': state.value}, e)
            self._fail(state, error)
            raise error from e

        self._monitor.add_checkpoint(state.value)
        return outcome

    def _fail(self, state: PipelineState, error: PipelineError) -> None:
        self._enter(PipelineState.FAILED)
        message = f"Step failed: {state.value}: {error}"
        logger.error(message)
        self.results['pipeline_status'] = 'failed'
        self.results['failed_step'] = state.value
        self.results['error'] = error.to_dict()
        self.results['failed_at'] = datetime.now().isoformat()
        self._dispatch_alert("ETL Failed", message)

    def _dispatch_alert(self, subject: str, body: str) -> None:
        # Alerting is best effort and never decides the run's outcome
        try:
            self.notifier.send_alert(subject, body)
        except Exception as e:
            logger.warning(f"Could not dispatch alert '{subject}': {e}")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def preflight(self) -> None:
        """Validate configuration and bootstrap directories."""
        logger.info("Running preflight checks...")
        validations = self.config.validate_config()
        invalid = sorted(name for name, ok in validations.items() if not ok)
        if invalid:
            raise PreflightError(f"Invalid configuration: {', '.join(invalid)}",
                                 {'invalid_settings': invalid})

        try:
            self.context.ensure_directories()
        except OSError as e:
            raise PreflightError("Could not create pipeline directories", {}, e) from e

        if not self.config.alerts_enabled():
            logger.warning("SMTP host or ALERT_EMAIL not set. Email alerts will not be sent.")

        if not SystemResourceMonitor.check_disk_space(self.context.processed_dir,
                                                      self.config.MIN_FREE_DISK_MB):
            logger.warning(f"Less than {self.config.MIN_FREE_DISK_MB} MB free "
                           f"for {self.context.processed_dir}")
        logger.info("Preflight done.")

    def extract(self) -> List[str]:
        """
        Run all source adapters concurrently and wait for them.

        Fails as soon as any adapter fails. Adapters still running are not
        interrupted; their output is ignored.
        """
        executor = ThreadPoolExecutor(max_workers=max(len(self.extractors), 1),
                                      thread_name_prefix="extract")
        futures = [executor.submit(extractor.extract) for extractor in self.extractors]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)

        # First failure in adapter order among those that finished
        for future in futures:
            if future in done and future.exception() is not None:
                executor.shutdown(wait=False, cancel_futures=True)
                raise future.exception()

        executor.shutdown(wait=True)
        self.raw_artifacts = [future.result() for future in futures]
        logger.info("All extraction steps completed.")
        return [str(path) for path in self.raw_artifacts]

    def transform(self) -> Dict[str, Dict[str, Any]]:
        """Normalize each raw artifact with its source kind's rules."""
        stats = {}
        self.run_artifacts = []
        for source_kind, raw_path, output_path in self.transform_plan:
            normalizer = Normalizer(source_kind)
            stats[source_kind.value] = normalizer.normalize(raw_path, output_path)
            self.run_artifacts.append(output_path)
            self._monitor.update_progress(normalizer.records_processed)
        return stats

    def load(self) -> Dict[str, Any]:
        """Merge normalized artifacts into the unified dataset."""
        self.merge_inputs = resolve_merge_inputs(
            self.config.MERGE_SCOPE,
            self.run_artifacts,
            self.context.processed_dir,
            self.context.merged_output
        )
        return self.merger.merge(self.merge_inputs)

    def archive(self) -> Optional[str]:
        """Archive the merged artifacts. Failure is logged, not raised."""
        try:
            archive_path = self.archiver.archive(self.merge_inputs, self.context.run_date)
        except ArchiveError as e:
            logger.warning(f"Archiving failed, continuing: {e}")
            return None
        return str(archive_path) if archive_path else None

    def report(self) -> Dict[str, Any]:
        """Write the daily summary report."""
        report = self.reporter.generate(self.context.merged_output, self.context.report_file)
        return {
            'report_file': str(self.context.report_file),
            'records_read': report.records_read,
            'categories': len(report.revenue_by_category),
            'top_products': len(report.top_products),
            'low_inventory_items': len(report.low_inventory),
        }

    def cleanup(self) -> Dict[str, Any]:
        """
        Sweep old log files and discard this run's raw artifacts.
        Failures here are logged as warnings.
        """
        summary = {'deleted_logs': [], 'discarded_raw': []}
        try:
            self._sweep(summary)
        except CleanupError as e:
            logger.warning(f"Cleanup incomplete, continuing: {e}")
        logger.info("Log cleanup done.")
        return summary

    def _sweep(self, summary: Dict[str, List[str]]) -> None:
        logger.info(f"Cleaning logs older than {self.config.KEEP_LOG_DAYS} days...")
        try:
            deleted = cleanup_old_logs(self.context.log_dir, self.config.KEEP_LOG_DAYS)
            summary['deleted_logs'] = [str(p) for p in deleted]

            if not self.config.KEEP_RAW_ARTIFACTS:
                for raw_path in self.raw_artifacts:
                    Path(raw_path).unlink(missing_ok=True)
                    summary['discarded_raw'].append(str(raw_path))
        except OSError as e:
            raise CleanupError("Cleanup failed", {'log_dir': str(self.context.log_dir)}, e) from e
