"""
Pipeline coordinator: drives one job from descriptor to published document.

States advance strictly forward:

  VALIDATE → PREPARE_WORKSPACE → DOWNLOAD → EXTRACT → PER_PAGE_LOOP
           → ASSEMBLE → PUBLISH → DONE

and any failure moves the run straight to FAILED, keeping the original
error. Pages are processed one at a time in ascending order; for each page
the final-Markdown cache is checked first, then the transcription cache,
and only missing results reach the model service.
"""

import logging
import shutil
import time
from pathlib import Path
from typing import Any, List, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError

from scanflow.config import ScanflowConfig
from scanflow.errors import DownloadFailure
from scanflow.logger import create_logger
from scanflow.models import (
    JOB_STATE_ORDER,
    AssembledDocument,
    Job,
    JobState,
    Page,
    PipelineResult,
    WorkspacePaths,
    sanitize_job_id,
)
from scanflow.storage.cache import FileCacheStore
from scanflow.storage.object_store import ObjectStore
from scanflow.storage.workspace import WorkspaceManager
from .assemble import assemble_document
from .extract import PageExtractor
from .publish import Publisher
from .reconcile import ReconciliationStage
from .transcribe import TranscriptionStage

module_logger = logging.getLogger(__name__)


class PipelineCoordinator:
    """Holds the shared collaborators; each job gets its own JobRun.

    Collaborators are read-only during a run, so one coordinator can serve
    several worker threads at once.
    """

    def __init__(
        self,
        config: ScanflowConfig,
        store: Optional[ObjectStore],
        client,
        extractor: Optional[PageExtractor] = None,
        workspaces: Optional[WorkspaceManager] = None,
        console_output: bool = False,
    ):
        self.config = config
        self.store = store
        self.client = client
        self.extractor = extractor or PageExtractor.from_config(config)
        self.workspaces = workspaces or WorkspaceManager(config.workspace_root)
        self.console_output = console_output

    def start(self, descriptor: Mapping[str, Any], job_id: Optional[str] = None) -> 'JobRun':
        if self.store is None:
            raise RuntimeError("No object store configured; only convert_file is available")
        return JobRun(self, descriptor=descriptor, job_id=job_id)

    def run(self, descriptor: Mapping[str, Any], job_id: Optional[str] = None) -> PipelineResult:
        return self.start(descriptor, job_id=job_id).execute()

    def convert_file(
        self,
        pdf_path: Path,
        job_id: Optional[str] = None,
        cleanup_policy: Optional[str] = None,
    ) -> AssembledDocument:
        """Convert a local PDF without object storage (no download, no publish).

        `cleanup_policy` overrides the configured policy for this run only.
        """
        pdf_path = Path(pdf_path)
        run = JobRun(
            self,
            descriptor=None,
            job_id=job_id or f"local/{pdf_path.name}",
            cleanup_policy=cleanup_policy,
        )
        return run.execute_local(pdf_path)


class JobRun:
    def __init__(
        self,
        coordinator: PipelineCoordinator,
        descriptor: Optional[Mapping[str, Any]],
        job_id: Optional[str],
        cleanup_policy: Optional[str] = None,
    ):
        self.coordinator = coordinator
        self.config = coordinator.config
        self.cleanup_policy = cleanup_policy or self.config.cleanup_policy
        self.descriptor = descriptor
        self.job_id = job_id

        self.state: Optional[JobState] = None
        self.history: List[JobState] = []
        self.error: Optional[BaseException] = None

        self.job: Optional[Job] = None
        self.paths: Optional[WorkspacePaths] = None
        self._leased_id: Optional[str] = None
        self.pages: List[Page] = []
        self.result: Optional[PipelineResult] = None

        self.logger = create_logger(
            sanitize_job_id(job_id or "pending"),
            "pipeline",
            console_output=coordinator.console_output,
            level=self.config.log_level,
        )

    # ----- state machine -----

    def _transition(self, state: JobState) -> None:
        if self.state is not None:
            if self.state == JobState.FAILED:
                raise RuntimeError("Cannot leave FAILED state")
            if JOB_STATE_ORDER.index(state) <= JOB_STATE_ORDER.index(self.state):
                raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")

        self.state = state
        self.history.append(state)
        self.logger.debug(f"State -> {state.value}")

    def _fail(self, error: BaseException) -> None:
        self.error = error
        self.state = JobState.FAILED
        self.history.append(JobState.FAILED)
        self.logger.error(
            f"Job failed: {error}",
            error=type(error).__name__,
            page=getattr(error, "page", None),
        )

    # ----- entry points -----

    def execute(self) -> PipelineResult:
        start_time = time.time()
        try:
            self._transition(JobState.VALIDATE)
            self.job = Job.from_descriptor(self.descriptor, job_id=self.job_id)

            self._transition(JobState.PREPARE_WORKSPACE)
            self._prepare_workspace(self.job.job_id)

            self._transition(JobState.DOWNLOAD)
            pdf_path = self._download()

            document = self._convert(pdf_path)

            self._transition(JobState.PUBLISH)
            uploaded = self._publish(document)

            self.result = PipelineResult(
                source={"bucket": self.job.source_bucket, "key": self.job.source_key},
                destination={"bucket": self.job.output_bucket, "key": self.job.destination_key},
                page_count=document.page_count,
                uploaded_keys=uploaded,
            )
            self._transition(JobState.DONE)
            self.logger.info(
                "Job completed",
                pages=document.page_count,
                duration_seconds=time.time() - start_time,
            )
            return self.result

        except Exception as e:
            self._fail(e)
            raise

        finally:
            self._finish()

    def execute_local(self, pdf_path: Path) -> AssembledDocument:
        start_time = time.time()
        try:
            self._transition(JobState.PREPARE_WORKSPACE)
            self._prepare_workspace(self.job_id)

            local_copy = self.paths.input_file(pdf_path.name)
            if Path(pdf_path).resolve() != local_copy.resolve():
                shutil.copyfile(pdf_path, local_copy)

            document = self._convert(local_copy)

            self._transition(JobState.DONE)
            self.logger.info(
                "Conversion completed",
                pages=document.page_count,
                duration_seconds=time.time() - start_time,
            )
            return document

        except Exception as e:
            self._fail(e)
            raise

        finally:
            self._finish()

    # ----- stages -----

    def _prepare_workspace(self, job_id: str) -> None:
        workspaces = self.coordinator.workspaces
        workspaces.acquire(job_id)
        self._leased_id = job_id
        self.paths = workspaces.prepare(job_id)

        self.logger.close()
        self.logger = create_logger(
            sanitize_job_id(job_id),
            "pipeline",
            log_dir=self.paths.logs_dir,
            console_output=self.coordinator.console_output,
            level=self.config.log_level,
            filename="pipeline.jsonl",
        )
        self.logger.info(f"Workspace ready at {self.paths.root}")

    def _download(self) -> Path:
        job = self.job
        destination = self.paths.input_file(job.source_key)

        try:
            stream = self.coordinator.store.get(job.source_bucket, job.source_key)
            try:
                with open(destination, 'wb') as f:
                    shutil.copyfileobj(stream, f)
            finally:
                close = getattr(stream, "close", None)
                if close is not None:
                    close()
        except (BotoCoreError, ClientError, OSError) as e:
            raise DownloadFailure(
                f"Failed to download s3://{job.source_bucket}/{job.source_key}: {e}"
            ) from e

        self.logger.info(f"Downloaded s3://{job.source_bucket}/{job.source_key}")
        return destination

    def _convert(self, pdf_path: Path) -> AssembledDocument:
        input_name = Path(pdf_path).stem
        cache = FileCacheStore(self.paths.output_dir)

        self._transition(JobState.EXTRACT)
        self.pages = self.coordinator.extractor.extract(pdf_path, self.paths.images_dir)
        self.logger.info(f"Extracted {len(self.pages)} pages", pages=len(self.pages))

        self._transition(JobState.PER_PAGE_LOOP)
        transcriber = TranscriptionStage(
            self.coordinator.client,
            self.config.vision_model,
            cache,
            input_name,
            self.logger.child(TranscriptionStage.name),
        )
        reconciler = ReconciliationStage(
            self.coordinator.client,
            self.config.reconcile_model,
            cache,
            input_name,
            self.logger.child(ReconciliationStage.name),
        )
        for page in self.pages:
            if reconciler.load_cached(page) is not None:
                continue
            transcriber.run(page)
            reconciler.run(page)

        self._transition(JobState.ASSEMBLE)
        return assemble_document(self.pages, cache, input_name)

    def _publish(self, document: AssembledDocument) -> List[str]:
        publisher = Publisher(self.coordinator.store, self.logger)
        uploaded = [publisher.publish_document(self.job, document)]

        if self.config.publish_artifacts:
            uploaded.extend(publisher.publish_artifacts(self.job, self.paths.output_dir))

        return uploaded

    def _finish(self) -> None:
        policy = self.cleanup_policy
        remove = (
            self.paths is not None
            and (policy == "always" or (policy == "on_success" and self.state == JobState.DONE))
        )

        try:
            self.logger.close()
            if remove:
                self.coordinator.workspaces.cleanup(self.paths)
                module_logger.debug(f"Workspace removed ({policy}): {self.paths.root}")
        finally:
            if self._leased_id is not None:
                self.coordinator.workspaces.release(self._leased_id)
                self._leased_id = None
