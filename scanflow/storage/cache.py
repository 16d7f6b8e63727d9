"""
Per-page result caches.

A cache entry's presence means the stage already completed for that page,
and its content is the result. Entries are never validated or invalidated.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict


def transcription_key(input_name: str, page_number: int) -> str:
    return f"text/{input_name}_page_{page_number}.transcription.txt"


def markdown_key(input_name: str, page_number: int) -> str:
    return f"text/{input_name}_page_{page_number}.md"


def document_key(input_name: str) -> str:
    return f"{input_name}.md"


class CacheStore(ABC):
    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def read(self, key: str) -> str:
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        ...


class FileCacheStore(CacheStore):
    """Cache entries stored as UTF-8 files under a workspace directory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.RLock()

    def path_for(self, key: str) -> Path:
        return self.root / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> str:
        file_path = self.path_for(key)

        if not file_path.exists():
            raise FileNotFoundError(f"Cache entry not found: {file_path}")

        return file_path.read_text(encoding='utf-8')

    def write(self, key: str, value: str) -> None:
        with self._lock:
            output_file = self.path_for(key)
            temp_file = output_file.with_name(output_file.name + '.tmp')

            output_file.parent.mkdir(parents=True, exist_ok=True)

            try:
                with open(temp_file, 'w', encoding='utf-8') as f:
                    f.write(value)

                temp_file.replace(output_file)

            except Exception:
                if temp_file.exists():
                    temp_file.unlink()
                raise


class MemoryCacheStore(CacheStore):
    def __init__(self, entries: Dict[str, str] = None):
        self.entries: Dict[str, str] = dict(entries or {})

    def exists(self, key: str) -> bool:
        return key in self.entries

    def read(self, key: str) -> str:
        if key not in self.entries:
            raise FileNotFoundError(f"Cache entry not found: {key}")
        return self.entries[key]

    def write(self, key: str, value: str) -> None:
        self.entries[key] = value
