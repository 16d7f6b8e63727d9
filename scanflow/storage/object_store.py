"""
Object storage adapters.

The pipeline needs two operations: fetch the source document as a byte
stream and publish results with a content type. S3ObjectStore talks to any
S3-compatible service; LocalObjectStore maps buckets onto directories for
local conversions and tests.
"""

import io
import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Union

logger = logging.getLogger(__name__)

Body = Union[bytes, BinaryIO]

CONTENT_TYPES = {
    '.txt': 'text/plain',
    '.json': 'application/json',
    '.pdf': 'application/pdf',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.md': 'text/markdown',
    '.csv': 'text/csv',
}

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def guess_content_type(path: Union[str, Path]) -> str:
    ext = os.path.splitext(str(path))[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


class ObjectStore(ABC):
    @abstractmethod
    def get(self, bucket: str, key: str) -> BinaryIO:
        """Return a readable binary stream for the object."""

    @abstractmethod
    def put(self, bucket: str, key: str, body: Body, content_type: str) -> None:
        ...


class S3ObjectStore(ObjectStore):
    def __init__(
        self,
        endpoint_url: str = "",
        region: str = "eu-north-1",
        access_key: str = "",
        secret_key: str = "",
        client=None,
    ):
        if client is None:
            import boto3
            from botocore.config import Config as BotoConfig

            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url or None,
                region_name=region,
                aws_access_key_id=access_key or None,
                aws_secret_access_key=secret_key or None,
                config=BotoConfig(s3={"addressing_style": "path"}),
            )
        self.client = client

    @classmethod
    def from_config(cls, config) -> 'S3ObjectStore':
        return cls(
            endpoint_url=config.s3_endpoint,
            region=config.s3_region,
            access_key=config.s3_access_key,
            secret_key=config.s3_secret_key,
        )

    def get(self, bucket: str, key: str) -> BinaryIO:
        logger.debug(f"GET s3://{bucket}/{key}")
        response = self.client.get_object(Bucket=bucket, Key=key)
        return response["Body"]

    def put(self, bucket: str, key: str, body: Body, content_type: str) -> None:
        logger.debug(f"PUT s3://{bucket}/{key} ({content_type})")
        self.client.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)


class LocalObjectStore(ObjectStore):
    """Buckets are subdirectories of `root`; keys are relative paths."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        return self.root / bucket / key

    def get(self, bucket: str, key: str) -> BinaryIO:
        path = self._path(bucket, key)
        if not path.is_file():
            raise FileNotFoundError(f"No such object: {bucket}/{key}")
        return open(path, 'rb')

    def put(self, bucket: str, key: str, body: Body, content_type: str) -> None:
        path = self._path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)

        if isinstance(body, (bytes, bytearray)):
            body = io.BytesIO(body)

        with open(path, 'wb') as f:
            shutil.copyfileobj(body, f)

        # Sidecar keeps the content type observable for local consumers.
        path.with_name(path.name + '.content-type').write_text(content_type, encoding='utf-8')
