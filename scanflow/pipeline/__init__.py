from scanflow.pipeline.assemble import PAGE_SEPARATOR, assemble_document
from scanflow.pipeline.coordinator import JobRun, PipelineCoordinator
from scanflow.pipeline.extract import PageExtractor, render_page_text
from scanflow.pipeline.publish import Publisher
from scanflow.pipeline.reconcile import (
    ReconciliationStage,
    annotate_heading,
    postprocess_markdown,
    strip_code_fence,
)
from scanflow.pipeline.transcribe import TranscriptionStage

__all__ = [
    "PipelineCoordinator",
    "JobRun",
    "PageExtractor",
    "render_page_text",
    "TranscriptionStage",
    "ReconciliationStage",
    "strip_code_fence",
    "annotate_heading",
    "postprocess_markdown",
    "assemble_document",
    "PAGE_SEPARATOR",
    "Publisher",
]
