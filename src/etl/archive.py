# ========================
# src/etl/archive.py
# ========================

"""
Artifact Archiving Module

Bundles the normalized artifacts of a run into a dated tar.gz for retention.
"""

import logging
import tarfile
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from ..utils.exceptions import ArchiveError

logger = logging.getLogger(__name__)


class DataArchiver:
    """Packages normalized CSV artifacts into one compressed archive."""

    def __init__(self, archive_dir: Path):
        self.archive_dir = Path(archive_dir)

    def archive_path(self, run_date: date) -> Path:
        return self.archive_dir / f"archive_{run_date.isoformat()}.tar.gz"

    def archive(self, artifact_paths: Iterable[Path], run_date: date) -> Optional[Path]:
        """
        Write archive_<date>.tar.gz holding the given artifacts.

        Args:
            artifact_paths (iterable): Normalized artifacts to bundle
            run_date (date): Date stamped into the archive name

        Returns:
            Path or None: The archive, or None when there was nothing to archive

        Raises:
            ArchiveError: If the archive cannot be written
        """
        artifacts = [Path(p) for p in artifact_paths if Path(p).is_file()]
        if not artifacts:
            logger.warning("No CSV files to archive")
            return None

        target = self.archive_path(run_date)
        logger.info(f"Archiving {len(artifacts)} processed CSVs to {target}...")
        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            with tarfile.open(target, "w:gz") as tar:
                for artifact in artifacts:
                    tar.add(artifact, arcname=artifact.name)
        except (OSError, tarfile.TarError) as e:
            raise ArchiveError(f"Failed to write {target.name}", {'archive': str(target)}, e) from e

        logger.info(f"Archive created: {target}")
        return target
