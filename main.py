#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the Coffee Shop ETL Pipeline

Runs one full pass: extract the three sources, normalize, merge, archive
and report. Takes no arguments; everything is configured through
environment variables (see src/utils/config.py).

Exit status is 0 on success and 1 when any step fails.
"""

import sys
import logging
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from src.etl import ETLPipeline
from src.utils import Config, RunContext, setup_logging
from src.utils.exceptions import PipelineError


def main():
    """Main execution function."""
    # Initialize configuration
    config = Config()
    context = RunContext.from_config(config)

    # Setup logging
    setup_logging(
        log_level=config.LOG_LEVEL,
        log_dir=str(context.log_dir),
        run_date=context.run_date
    )

    logger = logging.getLogger(__name__)
    logger.info("="*60)
    logger.info("COFFEE SHOP ETL PIPELINE - DAILY RUN")
    logger.info("="*60)

    pipeline = ETLPipeline(context)
    try:
        results = pipeline.run()
    except PipelineError as e:
        # Already logged to the error log by the orchestrator
        print(f"\nETL failed during '{pipeline.results.get('failed_step')}': {e}", file=sys.stderr)
        return 1

    _print_execution_summary(results)
    return 0


def _print_execution_summary(results: dict) -> None:
    """Print final execution summary."""
    print("\n" + "="*70)
    print("ETL EXECUTION SUMMARY")
    print("="*70)

    print("📥 Transformation:")
    for source, stats in results['transform_stats'].items():
        print(f"   • {source}: {stats['records_written']:,} kept, "
              f"{stats['records_dropped']:,} dropped")

    merge_stats = results['merge_stats']
    print("\n🔗 Merge:")
    print(f"   • Records merged: {merge_stats['total_rows']:,}")
    print(f"   • Output: {Path(merge_stats['output_file']).name}")

    report = results['report']
    print("\n📁 Generated Outputs:")
    print(f"   • Report: {Path(report['report_file']).name}")
    if results.get('archive_file'):
        print(f"   • Archive: {Path(results['archive_file']).name}")
    print(f"   • Low inventory items: {report['low_inventory_items']}")

    performance = results.get('performance', {})
    if performance:
        print(f"\n⏱  Total time: {performance['total_processing_time_seconds']:.2f} seconds")

    print("="*70)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
