"""
Data models for document conversion jobs.

Job descriptors are validated with pydantic; per-job working state
(pages, extraction output, results) uses plain dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from scanflow.errors import InvalidJobInput


REQUIRED_DESCRIPTOR_FIELDS = ("sourceBucket", "sourceKey", "outputBucket")


def sanitize_job_id(job_id: str) -> str:
    """Make a job identifier safe to use as a single directory name."""
    return job_id.replace("/", "_").replace("\\", "_")


def is_usable_job_id(job_id: str) -> bool:
    """False for ids that would name the workspace root or its parent."""
    return sanitize_job_id(job_id).strip(".") != ""


class Job(BaseModel):
    job_id: str
    source_bucket: str = Field(
        min_length=1,
        validation_alias=AliasChoices("source_bucket", "sourceBucket", "s3Bucket"),
    )
    source_key: str = Field(
        min_length=1,
        validation_alias=AliasChoices("source_key", "sourceKey", "s3Key"),
    )
    output_bucket: str = Field(
        min_length=1,
        validation_alias=AliasChoices("output_bucket", "outputBucket"),
    )
    output_prefix: str = Field(
        default="",
        validation_alias=AliasChoices("output_prefix", "outputPrefix"),
    )

    model_config = {
        "frozen": True,
    }

    @classmethod
    def from_descriptor(cls, descriptor: Mapping[str, Any], job_id: Optional[str] = None) -> 'Job':
        """Validate a queue job descriptor.

        Raises InvalidJobInput naming every missing or empty required field.
        """
        if not isinstance(descriptor, Mapping):
            raise InvalidJobInput(f"Job descriptor must be an object, got {type(descriptor).__name__}")

        data = dict(descriptor)
        source_bucket = data.get("sourceBucket") or data.get("s3Bucket") or data.get("source_bucket")
        source_key = data.get("sourceKey") or data.get("s3Key") or data.get("source_key")
        output_bucket = data.get("outputBucket") or data.get("output_bucket")

        missing = [
            name for name, value in zip(
                REQUIRED_DESCRIPTOR_FIELDS,
                (source_bucket, source_key, output_bucket),
            )
            if not value
        ]
        if missing:
            raise InvalidJobInput(f"Job descriptor is missing required fields: {', '.join(missing)}")

        resolved_id = str(job_id or data.get("jobId") or f"{source_bucket}/{source_key}")
        if not is_usable_job_id(resolved_id):
            raise InvalidJobInput(f"Job id {resolved_id!r} cannot name a workspace")

        try:
            return cls(
                job_id=resolved_id,
                source_bucket=source_bucket,
                source_key=source_key,
                output_bucket=output_bucket,
                output_prefix=data.get("outputPrefix") or data.get("output_prefix") or "",
            )
        except ValidationError as e:
            raise InvalidJobInput(f"Invalid job descriptor: {e}") from e

    @property
    def workspace_name(self) -> str:
        return sanitize_job_id(self.job_id)

    @property
    def destination_prefix(self) -> str:
        prefix = self.output_prefix
        if not prefix:
            return ""
        return prefix if prefix.endswith("/") else f"{prefix}/"

    @property
    def destination_key(self) -> str:
        return f"{self.destination_prefix}{self.source_key}.md"


class JobState(str, Enum):
    VALIDATE = "validate"
    PREPARE_WORKSPACE = "prepare_workspace"
    DOWNLOAD = "download"
    EXTRACT = "extract"
    PER_PAGE_LOOP = "per_page_loop"
    ASSEMBLE = "assemble"
    PUBLISH = "publish"
    DONE = "done"
    FAILED = "failed"


JOB_STATE_ORDER = [
    JobState.VALIDATE,
    JobState.PREPARE_WORKSPACE,
    JobState.DOWNLOAD,
    JobState.EXTRACT,
    JobState.PER_PAGE_LOOP,
    JobState.ASSEMBLE,
    JobState.PUBLISH,
    JobState.DONE,
]


@dataclass(frozen=True)
class WorkspacePaths:
    root: Path
    input_dir: Path
    output_dir: Path
    text_dir: Path
    images_dir: Path
    logs_dir: Path

    def input_file(self, file_name: str) -> Path:
        return self.input_dir / Path(file_name).name


@dataclass(frozen=True)
class PageImage:
    page_number: int
    path: Path


@dataclass
class TextExtraction:
    """Parsed text per page, with explicit per-page failures."""
    pages: Dict[int, str] = field(default_factory=dict)
    failures: Dict[int, str] = field(default_factory=dict)

    def text_for(self, page_number: int) -> str:
        return self.pages.get(page_number, "")


@dataclass
class Page:
    page_number: int
    image_path: Path
    parsed_text: str = ""
    transcription: Optional[str] = None
    reconciled_markdown: Optional[str] = None


@dataclass
class AssembledDocument:
    markdown: str
    pages: Dict[int, str]
    cache_path: Optional[Path] = None

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass
class PipelineResult:
    source: Dict[str, str]
    destination: Dict[str, str]
    page_count: int = 0
    uploaded_keys: List[str] = field(default_factory=list)
