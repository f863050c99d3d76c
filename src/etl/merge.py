# ========================
# src/etl/merge.py
# ========================

"""
Data Merge Module

Concatenates normalized artifacts into the unified dataset and numbers
every row with a dense record_id starting at 1.
"""

import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .normalization import NORMALIZED_HEADER
from ..utils.exceptions import MergeError

logger = logging.getLogger(__name__)

MERGED_HEADER = ['record_id'] + NORMALIZED_HEADER
FIRST_RECORD_ID = 1


def discover_artifacts(processed_dir: Path, exclude: Iterable[Path] = ()) -> List[Path]:
    """
    List every CSV artifact in a directory, alphabetically by file name.

    Leftovers from earlier runs are included; this is the directory-scan
    merge scope.

    Args:
        processed_dir (Path): Directory holding normalized artifacts
        exclude (iterable): Paths to leave out, normally the merged output

    Returns:
        list[Path]: Artifacts in concatenation order
    """
    processed_dir = Path(processed_dir)
    if not processed_dir.is_dir():
        return []
    excluded = {Path(p).resolve() for p in exclude}
    return sorted(
        (p for p in processed_dir.glob("*.csv")
         if p.is_file() and not p.name.startswith(".") and p.resolve() not in excluded),
        key=lambda p: p.name,
    )


class DataMerger:
    """
    Merges normalized CSV artifacts into a single dataset.
    """

    def __init__(self, output_path: Path):
        """
        Initialize the merger.

        Args:
            output_path (Path): Where the merged dataset is written
        """
        self.output_path = Path(output_path)

    def merge(self, artifact_paths: Iterable[Path]) -> Dict[str, Any]:
        """
        Merge artifacts in the given order.

        Every artifact's header row is skipped; one header is written for the
        whole dataset. record_id runs 1..N across source boundaries.

        Args:
            artifact_paths (iterable): Normalized artifacts in concatenation order

        Returns:
            dict: Merge statistics

        Raises:
            MergeError: If there are no artifacts or no data rows
        """
        artifacts = []
        for path in map(Path, artifact_paths):
            if path.is_file():
                artifacts.append(path)
            else:
                logger.warning(f"Normalized artifact missing, skipped: {path}")

        if not artifacts:
            raise MergeError("no data to merge", {'reason': 'no normalized artifacts'})

        logger.info(f"Merging {len(artifacts)} processed CSVs into {self.output_path}...")
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".merge_", suffix=".csv",
                                        dir=self.output_path.parent)
        tmp_path = Path(tmp_name)
        rows_per_artifact = {}
        try:
            with os.fdopen(fd, 'w', newline='', encoding='utf-8') as out:
                writer = csv.writer(out, lineterminator='\n')
                writer.writerow(MERGED_HEADER)
                record_id = FIRST_RECORD_ID
                for artifact in artifacts:
                    count = 0
                    for row in self._read_data_rows(artifact):
                        writer.writerow([record_id] + row)
                        record_id += 1
                        count += 1
                    rows_per_artifact[artifact.name] = count

            total_rows = record_id - FIRST_RECORD_ID
            if total_rows == 0:
                raise MergeError("no data to merge",
                                 {'reason': 'normalized artifacts hold no rows'})

            tmp_path.replace(self.output_path)
        except OSError as e:
            raise MergeError(f"Failed to write {self.output_path.name}", {}, e) from e
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.info(f"Final merged CSV created: {self.output_path} ({total_rows} rows)")
        return {
            'output_file': str(self.output_path),
            'total_rows': total_rows,
            'rows_per_artifact': rows_per_artifact,
        }

    @staticmethod
    def _read_data_rows(path: Path) -> Iterable[List[str]]:
        with open(path, 'r', newline='', encoding='utf-8') as f:
            reader = csv.reader(f)
            next(reader, None)
            for row in reader:
                if row:
                    yield row


def resolve_merge_inputs(scope: str,
                         run_artifacts: List[Path],
                         processed_dir: Path,
                         merged_output: Path) -> List[Path]:
    """
    Pick the merge input set for a run.

    Args:
        scope (str): 'run' for this run's artifacts only, 'directory' for
            every CSV in processed_dir
        run_artifacts (list): Artifacts written by this run's normalizers
        processed_dir (Path): The processed artifact directory
        merged_output (Path): Merged dataset path, never an input

    Returns:
        list[Path]: Artifacts in concatenation order
    """
    if scope == 'directory':
        return discover_artifacts(processed_dir, exclude=[merged_output])
    return list(run_artifacts)

