import json
import logging
from typing import IO, Any, Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


def read_job_descriptors(stream: IO[str]) -> Iterator[Tuple[Optional[str], Dict[str, Any]]]:
    """
    Yield `(job_id, descriptor)` pairs from a JSON-lines stream.

    Each non-blank line holds one job descriptor object. An optional `jobId`
    member becomes the job id. Lines that are not JSON objects are logged
    and skipped.
    """
    for line_number, line in enumerate(stream, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        try:
            descriptor = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping line {line_number}: invalid JSON ({e})")
            continue

        if not isinstance(descriptor, dict):
            logger.warning(f"Skipping line {line_number}: expected an object, got {type(descriptor).__name__}")
            continue

        job_id = descriptor.get("jobId")
        yield (str(job_id) if job_id else None), descriptor
