"""
Failure taxonomy for document conversion jobs.

Every failure that ends a job is a PipelineError subclass. The job runner
never retries internally; `retryable` only tells the queue adapter whether
redelivering the same descriptor can succeed.
"""

from typing import Optional


class PipelineError(Exception):
    retryable = True

    def __init__(self, message: str, page: Optional[int] = None):
        super().__init__(message)
        self.page = page


class InvalidJobInput(PipelineError):
    retryable = False


class WorkspaceFailure(PipelineError):
    pass


class DownloadFailure(PipelineError):
    pass


class ExtractionFailure(PipelineError):
    pass


class PageTranscriptionFailure(PipelineError):
    def __init__(self, page: int, message: str):
        super().__init__(f"Transcription failed for page {page}: {message}", page=page)


class PageReconciliationFailure(PipelineError):
    def __init__(self, page: int, message: str):
        super().__init__(f"Reconciliation failed for page {page}: {message}", page=page)


class PublishFailure(PipelineError):
    pass


class ModelServiceError(Exception):
    """Generate call failed at the transport level or returned non-2xx."""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            message = f"Model service request failed: {body}"
        else:
            message = f"Model service returned HTTP {status_code}: {body}"
        super().__init__(message)


class MalformedResponseError(ModelServiceError):
    pass
