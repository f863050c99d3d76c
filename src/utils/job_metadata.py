# ========================
# src/utils/job_metadata.py
# ========================

"""
Job Metadata Management

Handles persistent storage and discovery of pipeline run metadata for the
HTTP surface.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

logger = logging.getLogger(__name__)

REPORT_NAME_PATTERN = re.compile(r"^report_(\d{4}-\d{2}-\d{2})\.txt$")


class JobMetadataManager:
    """Manages persistent job metadata storage."""

    def __init__(self, metadata_file: str = "data/job_metadata.json"):
        self.metadata_file = Path(metadata_file)
        self.metadata_file.parent.mkdir(parents=True, exist_ok=True)

    def save_job_metadata(self, job_status_dict: Dict[str, Dict[str, Any]]) -> None:
        """Save all job metadata to persistent storage."""
        try:
            with open(self.metadata_file, 'w') as f:
                json.dump(job_status_dict, f, indent=2, default=str)
            logger.debug(f"Saved job metadata for {len(job_status_dict)} jobs")
        except OSError as e:
            logger.error(f"Failed to save job metadata: {e}")

    def load_job_metadata(self) -> Dict[str, Dict[str, Any]]:
        """Load job metadata from persistent storage."""
        if not self.metadata_file.exists():
            return {}
        try:
            with open(self.metadata_file, 'r') as f:
                data = json.load(f)
            logger.info(f"Loaded metadata for {len(data)} persisted jobs")
            return data
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load job metadata: {e}")
            return {}

    def discover_existing_runs(self, report_dir: str) -> Dict[str, Dict[str, Any]]:
        """
        Discover completed runs from dated report files.

        Runs started from the command line leave no job record; their
        report_<date>.txt is the evidence that they completed.

        Args:
            report_dir (str): Directory holding daily reports

        Returns:
            dict: Job records keyed by a 'run-<date>' job id
        """
        discovered_jobs = {}
        report_path = Path(report_dir)
        if not report_path.is_dir():
            return discovered_jobs

        for report_file in sorted(report_path.iterdir()):
            match = REPORT_NAME_PATTERN.match(report_file.name)
            if not match:
                continue

            run_date = match.group(1)
            job_id = f"run-{run_date}"
            completed_at = datetime.fromtimestamp(report_file.stat().st_mtime).isoformat()
            discovered_jobs[job_id] = {
                'job_id': job_id,
                'status': 'completed',
                'run_date': run_date,
                'created_at': completed_at,  # Use completion time as best guess
                'completed_at': completed_at,
                'report_file': str(report_file),
                'type': 'discovered',
                'discovered_on_startup': True
            }

        if discovered_jobs:
            logger.info(f"Discovered {len(discovered_jobs)} existing runs from reports")
        return discovered_jobs
