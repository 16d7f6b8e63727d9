import logging
import shutil
import threading
from pathlib import Path
from typing import Dict, List

from scanflow.errors import WorkspaceFailure
from scanflow.models import WorkspacePaths, sanitize_job_id

logger = logging.getLogger(__name__)


class WorkspaceManager:
    """Allocates one isolated directory tree per job under a common root.

    The tree for a job id is always the same path, so a redelivered job finds
    the caches its previous attempt left behind. Two runs of the same job id
    never use the tree at once: `acquire` blocks until the other run releases it.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

        self._leases: Dict[str, List] = {}
        self._leases_lock = threading.Lock()

    def _job_dir(self, job_id: str) -> Path:
        job_dir = self.root / sanitize_job_id(job_id)
        if job_dir.resolve().parent != self.root.resolve():
            raise WorkspaceFailure(f"Job id {job_id!r} does not name a directory inside {self.root}")
        return job_dir

    def paths_for(self, job_id: str) -> WorkspacePaths:
        job_dir = self._job_dir(job_id)
        output_dir = job_dir / "output"
        return WorkspacePaths(
            root=job_dir,
            input_dir=job_dir / "input",
            output_dir=output_dir,
            text_dir=output_dir / "text",
            images_dir=output_dir / "images",
            logs_dir=job_dir / "logs",
        )

    def acquire(self, job_id: str) -> None:
        """Take the job's workspace, waiting while another run holds it."""
        name = self._job_dir(job_id).name
        with self._leases_lock:
            lease = self._leases.setdefault(name, [threading.Lock(), 0])
            lease[1] += 1

        if not lease[0].acquire(blocking=False):
            logger.info(f"Workspace {name} is in use, waiting")
            lease[0].acquire()

    def release(self, job_id: str) -> None:
        name = self._job_dir(job_id).name
        with self._leases_lock:
            lease = self._leases[name]
            lease[0].release()
            lease[1] -= 1
            if lease[1] == 0:
                del self._leases[name]

    def prepare(self, job_id: str) -> WorkspacePaths:
        paths = self.paths_for(job_id)
        try:
            for directory in (paths.input_dir, paths.text_dir, paths.images_dir):
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceFailure(f"Could not prepare workspace {paths.root}: {e}") from e

        logger.debug(f"Prepared workspace {paths.root}")
        return paths

    def cleanup(self, paths: WorkspacePaths) -> None:
        if paths.root.exists():
            shutil.rmtree(paths.root)
            logger.debug(f"Removed workspace {paths.root}")
