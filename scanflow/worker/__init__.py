from scanflow.worker.pool import (
    ABANDONED,
    COMPLETED,
    FAILED,
    JobEnvelope,
    JobOutcome,
    WorkerPool,
)
from scanflow.worker.source import read_job_descriptors

__all__ = [
    "WorkerPool",
    "JobEnvelope",
    "JobOutcome",
    "COMPLETED",
    "FAILED",
    "ABANDONED",
    "read_job_descriptors",
]
