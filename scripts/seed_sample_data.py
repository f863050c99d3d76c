#!/usr/bin/env python3
# ========================
# scripts/seed_sample_data.py
# ========================

"""
Script to write sample sources for a local pipeline run.
Generates the online orders feed, the in-store sales feed and the
inventory table, each with a share of invalid rows, then optionally runs
the pipeline once over them.
"""

import sys
import os

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.etl import ETLPipeline
from src.utils import Config, RunContext, SampleDataGenerator, setup_logging
from src.utils.exceptions import PipelineError


def main():
    """Seed sample data and optionally run the pipeline on it."""

    # Parse command line arguments
    run_after_seed = '--run' in sys.argv[1:]
    numeric_args = [arg for arg in sys.argv[1:] if arg != '--run']
    if numeric_args:
        try:
            num_rows = int(numeric_args[0])
        except ValueError:
            print("Usage: python seed_sample_data.py [num_rows] [--run]")
            print("Example: python seed_sample_data.py 500 --run")
            sys.exit(1)
    else:
        num_rows = 100

    config = Config()
    context = RunContext.from_config(config)
    setup_logging(log_level=config.LOG_LEVEL, log_dir=str(context.log_dir))

    print("="*60)
    print("COFFEE SHOP SAMPLE DATA")
    print("="*60)
    print(f"Rows per feed: {num_rows:,}")
    print(f"Online orders: {context.online_orders_source}")
    print(f"In-store sales: {context.instore_sales_source}")
    print(f"Inventory table: {config.INVENTORY_TABLE}")
    print("="*60)

    generator = SampleDataGenerator(seed=42)

    print("\n🔄 Step 1: Generating source feeds...")
    online_stats = generator.generate_online_orders(str(context.online_orders_source), num_rows)
    instore_stats = generator.generate_instore_sales(str(context.instore_sales_source), num_rows)
    print(f"   ✅ Online orders: {online_stats['records_with_errors']} rows with errors")
    print(f"   ✅ In-store sales: {instore_stats['records_with_errors']} rows with errors")

    print("\n🔄 Step 2: Seeding inventory table...")
    try:
        inventory_stats = generator.seed_inventory_table(
            context.database_url, config.INVENTORY_TABLE, num_rows=max(num_rows // 5, 10)
        )
    except Exception as e:
        print(f"   ❌ Could not seed {config.INVENTORY_TABLE}: {e}")
        sys.exit(1)
    print(f"   ✅ Inventory: {inventory_stats['total_rows']} rows, "
          f"{inventory_stats['records_with_errors']} with errors")

    if not run_after_seed:
        print("\nDone. Run 'python main.py' to process the sample data.")
        return

    print("\n🔄 Step 3: Running the ETL pipeline...")
    try:
        results = ETLPipeline(context).run()
    except PipelineError as e:
        print(f"   ❌ Pipeline failed: {e}")
        sys.exit(1)

    print(f"   ✅ Merged {results['merge_stats']['total_rows']:,} records")
    print(f"   ✅ Report: {results['report']['report_file']}")


if __name__ == "__main__":
    main()
