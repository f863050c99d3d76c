# ========================
# src/etl/__init__.py
# ========================

"""
ETL Package

Core components of the coffee shop ETL pipeline:
- extraction: Source adapters staging raw artifacts
- normalization: Per-source conversion to the canonical row schema
- merge: Concatenation with sequential record ids
- archive: Dated archive of normalized artifacts
- reporting: Daily summary aggregations
- orchestrator: Step sequencing and failure policy
"""

from .extraction import FileCopyExtractor, QueryDumpExtractor, build_extractors
from .normalization import Normalizer, SourceKind, NORMALIZED_HEADER
from .merge import DataMerger, MERGED_HEADER, discover_artifacts
from .archive import DataArchiver
from .reporting import ReportGenerator, SummaryReport
from .orchestrator import ETLPipeline, PipelineState

__all__ = [
    'FileCopyExtractor',
    'QueryDumpExtractor',
    'build_extractors',
    'Normalizer',
    'SourceKind',
    'NORMALIZED_HEADER',
    'DataMerger',
    'MERGED_HEADER',
    'discover_artifacts',
    'DataArchiver',
    'ReportGenerator',
    'SummaryReport',
    'ETLPipeline',
    'PipelineState'
]

__version__ = "1.0.0"
