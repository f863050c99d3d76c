# ========================
# api_server.py
# ========================

"""
FastAPI Server for the Coffee Shop ETL Pipeline

Provides REST API endpoints for triggering pipeline runs, checking their
status and downloading the artifacts they produce.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from fastapi import FastAPI, HTTPException, BackgroundTasks, Query
from fastapi.responses import FileResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from src.etl import ETLPipeline
from src.utils.config import Config
from src.utils.exceptions import PipelineError
from src.utils.job_metadata import JobMetadataManager
from src.utils.logging_setup import setup_logging
from src.utils.run_context import RunContext

# Configuration
config = Config()
startup_context = RunContext.from_config(config)

# Setup logging
setup_logging(log_level=config.LOG_LEVEL, log_dir=str(startup_context.log_dir))
logger = logging.getLogger(__name__)

# Initialize job metadata manager
job_metadata_manager = JobMetadataManager(
    str(startup_context.base_dir / config.JOB_METADATA_FILE)
)

# Initialize FastAPI app
app = FastAPI(
    title="Coffee Shop ETL API",
    description="Trigger the daily ETL run and fetch its merged dataset, report and archive",
    version="1.0.0"
)

# Add CORS middleware to allow frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def initialize_job_status() -> Dict[str, Dict[str, Any]]:
    """Initialize job status by loading from metadata and discovering earlier runs."""
    job_status = job_metadata_manager.load_job_metadata()

    # Runs started from the command line only leave a report behind
    discovered_jobs = job_metadata_manager.discover_existing_runs(str(startup_context.report_dir))
    for job_id, job_data in discovered_jobs.items():
        if job_id not in job_status:
            job_status[job_id] = job_data
            logger.info(f"Added discovered run {job_id}")

    # Jobs interrupted by a restart will never finish
    for job in job_status.values():
        if job['status'] in ACTIVE_STATUSES:
            job['status'] = 'failed'
            job['error'] = 'Interrupted by server restart'

    if job_status:
        job_metadata_manager.save_job_metadata(job_status)

    return job_status


# Constants
JOB_NOT_FOUND_MSG = "Job not found"
JOB_NOT_COMPLETED_MSG = "Job not completed yet"
ACTIVE_STATUSES = ('queued', 'processing')
DOWNLOADABLE_FILES = ('merged', 'report', 'archive')

# Global state for tracking jobs
job_status: Dict[str, Dict[str, Any]] = initialize_job_status()


def persist_job_status():
    """Save current job status to persistent storage."""
    job_metadata_manager.save_job_metadata(job_status)


class PipelineJobManager:
    """Manages background pipeline jobs."""

    @staticmethod
    def run_pipeline(job_id: str) -> None:
        """Run one ETL pass in the background."""
        logger.info(f"Starting pipeline job {job_id}")
        job_status[job_id]['status'] = 'processing'
        job_status[job_id]['started_at'] = datetime.now().isoformat()
        persist_job_status()

        context = RunContext.from_config(config)
        pipeline = ETLPipeline(context)
        try:
            results = pipeline.run()
        except PipelineError as e:
            logger.error(f"Pipeline job {job_id} failed: {e}")
            job_status[job_id]['status'] = 'failed'
            job_status[job_id]['error'] = str(e)
            job_status[job_id]['failed_at'] = datetime.now().isoformat()
            job_status[job_id]['results'] = pipeline.results
            persist_job_status()
            return

        job_status[job_id]['status'] = 'completed'
        job_status[job_id]['completed_at'] = datetime.now().isoformat()
        job_status[job_id]['run_date'] = results['run_date']
        job_status[job_id]['results'] = results
        persist_job_status()

        logger.info(f"Pipeline job {job_id} completed successfully")

    @staticmethod
    def artifact_path(job: Dict[str, Any], file_type: str) -> Optional[str]:
        """Location of a job's artifact, or None if the job did not produce it."""
        results = job.get('results', {})
        if file_type == 'merged':
            return results.get('merge_stats', {}).get('output_file')
        if file_type == 'report':
            return results.get('report', {}).get('report_file') or job.get('report_file')
        return results.get('archive_file')


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Coffee Shop ETL API",
        "version": "1.0.0",
        "endpoints": {
            "run_pipeline": "/run-pipeline - Start an ETL run",
            "status": "/status/{job_id} - Check job status",
            "jobs": "/jobs - List all jobs",
            "download": "/download/{job_id}?file_type=merged|report|archive - Download an artifact",
            "health": "/health - Health check",
            "api_docs": "/docs - API documentation"
        },
        "api_docs_url": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "active_jobs": len([j for j in job_status.values() if j['status'] in ACTIVE_STATUSES])
    }


@app.post("/run-pipeline")
async def run_pipeline(background_tasks: BackgroundTasks):
    """
    Start one ETL run.

    Only one run may be active at a time: the pipeline's staging and
    output directories are shared.

    Returns:
        dict: Job ID and status information
    """
    active = [j['job_id'] for j in job_status.values() if j['status'] in ACTIVE_STATUSES]
    if active:
        raise HTTPException(status_code=409, detail=f"Pipeline run already in progress: {active[0]}")

    job_id = str(uuid.uuid4())
    job_status[job_id] = {
        'job_id': job_id,
        'status': 'queued',
        'created_at': datetime.now().isoformat(),
        'type': 'etl_run'
    }
    persist_job_status()

    background_tasks.add_task(PipelineJobManager.run_pipeline, job_id)
    logger.info(f"Queued pipeline job {job_id}")

    return {
        "job_id": job_id,
        "type": "etl_run",
        "status": "queued",
        "message": "ETL run started successfully.",
        "estimated_processing_info": "Use /status/{job_id} to check progress"
    }


@app.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """
    Get the status of a pipeline job.

    Args:
        job_id: Unique job identifier

    Returns:
        dict: Job status and results
    """
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)

    job = job_status[job_id].copy()

    # Add additional info for completed jobs
    if job['status'] == 'completed' and 'results' in job:
        results = job['results']
        job['summary'] = {
            'records_merged': results.get('merge_stats', {}).get('total_rows', 0),
            'low_inventory_items': results.get('report', {}).get('low_inventory_items', 0),
            'archived': bool(results.get('archive_file'))
        }

    return job


@app.get("/jobs")
async def list_jobs(
    status: Optional[str] = Query(None, description="Filter by status: queued, processing, completed, failed"),
    limit: int = Query(50, description="Maximum number of jobs to return", ge=1, le=100)
):
    """
    List pipeline jobs, newest first, with optional filtering.

    Args:
        status: Filter jobs by status
        limit: Maximum number of jobs to return

    Returns:
        dict: Matching jobs and counts
    """
    jobs = list(job_status.values())
    if status:
        jobs = [j for j in jobs if j['status'] == status]

    jobs.sort(key=lambda j: j.get('created_at') or '', reverse=True)
    return {
        "jobs": [{k: v for k, v in j.items() if k != 'results'} for j in jobs[:limit]],
        "total": len(jobs),
        "returned": min(len(jobs), limit)
    }


@app.get("/download/{job_id}")
async def download_results(job_id: str, file_type: str = Query(..., description="merged, report or archive")):
    """
    Download an artifact produced by a completed job.

    Args:
        job_id: Unique job identifier
        file_type: Which artifact to download

    Returns:
        FileResponse: The artifact
    """
    if job_id not in job_status:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND_MSG)

    job = job_status[job_id]
    if job['status'] != 'completed':
        raise HTTPException(status_code=400, detail=JOB_NOT_COMPLETED_MSG)

    if file_type not in DOWNLOADABLE_FILES:
        raise HTTPException(status_code=400,
                            detail=f"Invalid file type. Available: {', '.join(DOWNLOADABLE_FILES)}")

    file_path = PipelineJobManager.artifact_path(job, file_type)
    if not file_path or not Path(file_path).exists():
        raise HTTPException(status_code=404, detail=f"No {file_type} file for job {job_id}")

    media_types = {'merged': 'text/csv', 'report': 'text/plain', 'archive': 'application/gzip'}
    return FileResponse(path=file_path, filename=Path(file_path).name,
                        media_type=media_types[file_type])


def start_server(host: str = "0.0.0.0", port: int = config.API_PORT, reload: bool = False):
    """Start the FastAPI server."""
    logger.info(f"Starting Coffee Shop ETL API server on {host}:{port}")
    uvicorn.run(
        "api_server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    start_server()
