import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from scanflow.errors import PipelineError
from scanflow.models import PipelineResult

logger = logging.getLogger(__name__)

COMPLETED = "completed"
FAILED = "failed"
ABANDONED = "abandoned"


@dataclass
class JobEnvelope:
    descriptor: Mapping[str, Any]
    job_id: Optional[str] = None
    attempts: int = 0
    queued_at: float = 0.0

    @property
    def label(self) -> str:
        if self.job_id:
            return self.job_id
        if isinstance(self.descriptor, Mapping):
            if self.descriptor.get("jobId"):
                return str(self.descriptor["jobId"])
            bucket = self.descriptor.get("sourceBucket") or self.descriptor.get("s3Bucket")
            key = self.descriptor.get("sourceKey") or self.descriptor.get("s3Key")
            if bucket and key:
                return f"{bucket}/{key}"
        return "<invalid>"


@dataclass
class JobOutcome:
    job_id: str
    status: str
    attempts: int
    result: Optional[PipelineResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == COMPLETED


class WorkerPool:
    """
    Runs up to `concurrency` jobs at once on worker threads.

    Jobs are independent: each gets its own JobRun and workspace, and the
    coordinator's collaborators are shared read-only. A failed job whose
    error is retryable is re-enqueued until `max_attempts` deliveries have
    been made; the per-page caches let the redelivery resume where the
    previous attempt stopped.
    """

    def __init__(
        self,
        coordinator,
        concurrency: int = 2,
        max_attempts: int = 1,
        on_outcome: Optional[Callable[[JobOutcome], None]] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.coordinator = coordinator
        self.concurrency = concurrency
        self.max_attempts = max_attempts
        self.on_outcome = on_outcome

        self.jobs: "queue.Queue[Optional[JobEnvelope]]" = queue.Queue()
        self.outcomes: "queue.Queue[JobOutcome]" = queue.Queue()

        self._threads: List[threading.Thread] = []
        self._stopping = threading.Event()
        self._pending = 0
        self._pending_cond = threading.Condition()

    @classmethod
    def from_config(cls, coordinator, config, **kwargs) -> 'WorkerPool':
        return cls(
            coordinator,
            concurrency=config.concurrency,
            max_attempts=config.job_attempts,
            **kwargs,
        )

    def start(self) -> 'WorkerPool':
        if self._threads:
            return self

        for index in range(self.concurrency):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"scanflow-worker-{index + 1}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

        logger.info(f"Worker pool started with concurrency {self.concurrency}")
        return self

    def submit(self, descriptor: Mapping[str, Any], job_id: Optional[str] = None) -> None:
        if self._stopping.is_set():
            raise RuntimeError("Worker pool is shutting down")

        with self._pending_cond:
            self._pending += 1
        self.jobs.put(JobEnvelope(descriptor=descriptor, job_id=job_id, queued_at=time.time()))

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted job has an outcome. Returns False on timeout."""
        with self._pending_cond:
            return self._pending_cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop taking work: queued jobs are reported abandoned, in-flight jobs finish."""
        if self._stopping.is_set():
            return
        self._stopping.set()

        abandoned = self._abandon_queued()
        for _ in self._threads:
            self.jobs.put(None)

        if wait:
            for thread in self._threads:
                thread.join()
            # Redeliveries racing the shutdown land behind the sentinels
            abandoned += self._abandon_queued()
            logger.info("Worker pool stopped")

        if abandoned:
            logger.warning(f"Abandoned {abandoned} queued jobs on shutdown")

    def _abandon_queued(self) -> int:
        abandoned = 0
        while True:
            try:
                envelope = self.jobs.get_nowait()
            except queue.Empty:
                return abandoned
            if envelope is not None:
                self._record(JobOutcome(
                    job_id=envelope.label,
                    status=ABANDONED,
                    attempts=envelope.attempts,
                    error="Worker pool shut down before the job started",
                ))
                abandoned += 1

    def drain_outcomes(self) -> List[JobOutcome]:
        drained = []
        while True:
            try:
                drained.append(self.outcomes.get_nowait())
            except queue.Empty:
                return drained

    def _worker_loop(self) -> None:
        worker_id = threading.current_thread().name
        logger.debug(f"{worker_id} started")

        while True:
            envelope = self.jobs.get()
            if envelope is None:
                logger.debug(f"{worker_id} exiting")
                return
            self._process(envelope, worker_id)

    def _process(self, envelope: JobEnvelope, worker_id: str) -> None:
        envelope.attempts += 1
        run = self.coordinator.start(envelope.descriptor, job_id=envelope.job_id)

        try:
            result = run.execute()
        except PipelineError as e:
            job_id = run.job.job_id if run.job is not None else envelope.label
            if e.retryable and envelope.attempts < self.max_attempts and not self._stopping.is_set():
                logger.warning(
                    f"{worker_id}: job {job_id} failed (attempt {envelope.attempts}/{self.max_attempts}), "
                    f"redelivering: {e}"
                )
                self.jobs.put(envelope)
                return
            self._record(JobOutcome(job_id=job_id, status=FAILED, attempts=envelope.attempts, error=str(e)))
            return
        except Exception as e:
            # Unexpected errors are not redelivered
            logger.exception(f"{worker_id}: job {envelope.label} crashed")
            job_id = run.job.job_id if run.job is not None else envelope.label
            self._record(JobOutcome(
                job_id=job_id,
                status=FAILED,
                attempts=envelope.attempts,
                error=f"{type(e).__name__}: {e}",
            ))
            return

        self._record(JobOutcome(
            job_id=run.job.job_id,
            status=COMPLETED,
            attempts=envelope.attempts,
            result=result,
        ))

    def _record(self, outcome: JobOutcome) -> None:
        self.outcomes.put(outcome)
        if self.on_outcome is not None:
            self.on_outcome(outcome)

        with self._pending_cond:
            self._pending -= 1
            self._pending_cond.notify_all()

    def summary(self, outcomes: List[JobOutcome]) -> Dict[str, int]:
        counts = {COMPLETED: 0, FAILED: 0, ABANDONED: 0}
        for outcome in outcomes:
            counts[outcome.status] = counts.get(outcome.status, 0) + 1
        return counts
