from pathlib import Path
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from scanflow.errors import PublishFailure
from scanflow.models import AssembledDocument, Job
from scanflow.storage.object_store import ObjectStore, guess_content_type

STORAGE_ERRORS = (BotoCoreError, ClientError, OSError)


class Publisher:
    """Writes conversion results back to object storage."""

    def __init__(self, store: ObjectStore, logger):
        self.store = store
        self.logger = logger

    def publish_document(self, job: Job, document: AssembledDocument) -> str:
        key = job.destination_key
        content_type = guess_content_type(key)

        try:
            self.store.put(job.output_bucket, key, document.markdown.encode('utf-8'), content_type)
        except STORAGE_ERRORS as e:
            raise PublishFailure(f"Failed uploading s3://{job.output_bucket}/{key}: {e}") from e

        self.logger.info(f"Published s3://{job.output_bucket}/{key}", pages=document.page_count)
        return key

    def publish_artifacts(self, job: Job, output_dir: Path) -> List[str]:
        """Upload every file of the workspace output tree under `{key}.artifacts/`."""
        output_dir = Path(output_dir)
        base = f"{job.destination_prefix}{job.source_key}.artifacts/"
        uploaded = []

        for file_path in sorted(p for p in output_dir.rglob("*") if p.is_file()):
            if file_path.name.endswith(".tmp"):
                continue
            rel = file_path.relative_to(output_dir).as_posix()
            key = f"{base}{rel}"
            try:
                with open(file_path, 'rb') as body:
                    self.store.put(job.output_bucket, key, body, guess_content_type(file_path))
            except STORAGE_ERRORS as e:
                raise PublishFailure(f"Failed uploading s3://{job.output_bucket}/{key}: {e}") from e
            uploaded.append(key)

        self.logger.info(f"Published {len(uploaded)} artifacts to s3://{job.output_bucket}/{base}")
        return uploaded
