import os
import tempfile
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class ScanflowConfig(BaseModel):
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Base URL of the generative-model service"
    )

    vision_model: str = Field(
        default="qwen2.5vl:latest",
        description="Vision model used to transcribe page images"
    )

    text_model: str = Field(
        default="",
        description="Text model used for reconciliation (default: vision_model)"
    )

    model_timeout: Optional[float] = Field(
        default=None,
        description="Per-request timeout in seconds; None waits indefinitely"
    )

    s3_endpoint: str = Field(
        default="",
        description="S3-compatible endpoint URL (empty = AWS default)"
    )

    s3_region: str = Field(default="eu-north-1")
    s3_access_key: str = Field(default="")
    s3_secret_key: str = Field(default="")

    workspace_root: Path = Field(
        default=Path(tempfile.gettempdir()) / "scanflow",
        description="Directory holding one workspace per job"
    )

    concurrency: int = Field(
        default=2,
        ge=1,
        description="Jobs processed concurrently by the worker pool"
    )

    job_attempts: int = Field(
        default=1,
        ge=1,
        description="Delivery attempts per job made by the local queue adapter"
    )

    cleanup_policy: Literal["never", "on_success", "always"] = Field(
        default="on_success",
        description="When the job workspace is removed"
    )

    image_dpi: int = Field(default=150, ge=36)

    image_max_width: int = Field(
        default=0,
        ge=0,
        description="Downscale rendered pages wider than this (0 = keep size)"
    )

    publish_artifacts: bool = Field(
        default=False,
        description="Also upload per-page text and images next to the document"
    )

    log_level: str = Field(default="INFO")

    @field_validator('ollama_base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v or v.strip() == '':
            raise ValueError("OLLAMA_BASE_URL must not be empty")
        return v.strip().rstrip('/')

    @field_validator('model_timeout')
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            return None
        return v

    @field_validator('workspace_root')
    @classmethod
    def validate_workspace_root(cls, v: Path) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def reconcile_model(self) -> str:
        return self.text_model or self.vision_model

    model_config = {
        "frozen": True,
        "validate_assignment": True
    }


_ENV_FIELDS = {
    'ollama_base_url': 'OLLAMA_BASE_URL',
    'vision_model': 'VISION_MODEL',
    'text_model': 'TEXT_MODEL',
    'model_timeout': 'MODEL_TIMEOUT',
    's3_endpoint': 'S3_HOST',
    's3_region': 'S3_REGION',
    's3_access_key': 'S3_ACCESS_KEY',
    's3_secret_key': 'S3_SECRET_ACCESS_KEY',
    'workspace_root': 'WORKSPACE_ROOT',
    'concurrency': 'WORKER_CONCURRENCY',
    'job_attempts': 'JOB_ATTEMPTS',
    'cleanup_policy': 'WORKSPACE_CLEANUP',
    'image_dpi': 'IMAGE_DPI',
    'image_max_width': 'IMAGE_MAX_WIDTH',
    'publish_artifacts': 'PUBLISH_ARTIFACTS',
    'log_level': 'LOG_LEVEL',
}


def load_config(**overrides) -> ScanflowConfig:
    """Build the process configuration from .env, the environment and overrides.

    Called once at startup; the result is passed to every component that
    needs it.
    """
    load_dotenv()

    values = {}
    for field_name, env_name in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip() != '':
            values[field_name] = raw.strip()

    values.update({k: v for k, v in overrides.items() if v is not None})
    return ScanflowConfig(**values)
