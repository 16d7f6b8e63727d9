from scanflow.storage.cache import (
    CacheStore,
    FileCacheStore,
    MemoryCacheStore,
    document_key,
    markdown_key,
    transcription_key,
)
from scanflow.storage.object_store import (
    LocalObjectStore,
    ObjectStore,
    S3ObjectStore,
    guess_content_type,
)
from scanflow.storage.workspace import WorkspaceManager

__all__ = [
    "CacheStore",
    "FileCacheStore",
    "MemoryCacheStore",
    "transcription_key",
    "markdown_key",
    "document_key",

    "ObjectStore",
    "S3ObjectStore",
    "LocalObjectStore",
    "guess_content_type",

    "WorkspaceManager",
]
