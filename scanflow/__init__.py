"""Scanflow: PDF to Markdown conversion jobs driven by vision models."""

from scanflow.config import ScanflowConfig, load_config
from scanflow.errors import (
    DownloadFailure,
    ExtractionFailure,
    InvalidJobInput,
    MalformedResponseError,
    ModelServiceError,
    PageReconciliationFailure,
    PageTranscriptionFailure,
    PipelineError,
    PublishFailure,
    WorkspaceFailure,
)
from scanflow.models import AssembledDocument, Job, JobState, PipelineResult

__version__ = "0.1.0"

__all__ = [
    "ScanflowConfig",
    "load_config",
    "Job",
    "JobState",
    "AssembledDocument",
    "PipelineResult",
    "PipelineError",
    "InvalidJobInput",
    "WorkspaceFailure",
    "DownloadFailure",
    "ExtractionFailure",
    "PageTranscriptionFailure",
    "PageReconciliationFailure",
    "PublishFailure",
    "ModelServiceError",
    "MalformedResponseError",
]
