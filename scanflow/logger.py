"""
Structured per-job logging.

Every job writes one append-only JSONL file inside its workspace. The
coordinator owns a PipelineLogger for the job; stages receive children of
it that tag records with their own stage name but write through the same
handlers. Handlers are attached on the first record, so a job that never
logs leaves no file behind.
"""

import json
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

STRUCTURED_FIELDS = (
    'job_id',
    'stage',
    'page',
    'pages',
    'model',
    'tokens',
    'duration_seconds',
    'cached',
    'error',
)

_LOG_OPTIONS = ('exc_info', 'stack_info')

SHARED_LOGGER_NAME = "scanflow.job"


class FlushingFileHandler(logging.FileHandler):
    """Flush on every record so `tail -f` on a job log stays current."""

    def emit(self, record):
        super().emit(record)
        self.flush()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in STRUCTURED_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        tags = ''.join(
            f"[{label}{getattr(record, name)}]"
            for name, label in (('job_id', ''), ('stage', ''), ('page', 'page '))
            if getattr(record, name, None) is not None
        )
        line = f"[{clock}] {record.levelname:<7} {tags} {record.getMessage()}"

        duration = getattr(record, 'duration_seconds', None)
        if duration is not None:
            line += f" ({duration:.1f}s)"
        return line


class LogSink:
    """Owns the handlers shared by a job's loggers."""

    def __init__(
        self,
        name: str,
        log_path: Optional[Path],
        console_output: bool,
        level: str,
    ):
        self.name = name
        self.log_path = log_path
        self.console_output = console_output
        self.level = level.upper()

        self._logger: Optional[logging.Logger] = None
        self._lock = threading.Lock()

    @property
    def opened(self) -> bool:
        return self._logger is not None

    def get(self) -> logging.Logger:
        with self._lock:
            if self._logger is None:
                self._logger = self._open()
            return self._logger

    def _open(self) -> logging.Logger:
        if not (self.console_output or self.log_path is not None):
            # Nothing of our own to write to; records go through the root logger
            return logging.getLogger(SHARED_LOGGER_NAME)

        # Built directly so the logging registry does not keep one entry per job
        logger = logging.Logger(self.name)
        logger.setLevel(self.level)

        if self.console_output:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(HumanFormatter())
            logger.addHandler(console)

        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            json_file = FlushingFileHandler(self.log_path, mode='a', encoding='utf-8')
            json_file.setFormatter(JSONFormatter())
            logger.addHandler(json_file)

        logger.propagate = False
        return logger

    def close(self) -> None:
        with self._lock:
            if self._logger is None:
                return
            owned = self._logger.handlers if self._logger.name == self.name else []
            for handler in list(owned):
                self._logger.removeHandler(handler)
                handler.close()
            self._logger = None


class PipelineLogger:
    """Logger bound to one job and stage.

    Keyword arguments to the level methods become structured fields of the
    record (page, model, tokens, duration_seconds, ...).
    """

    def __init__(
        self,
        job_id: str,
        stage: str,
        log_dir: Optional[Path] = None,
        console_output: bool = False,
        level: str = "INFO",
        filename: Optional[str] = None,
        sink: Optional[LogSink] = None,
    ):
        self.job_id = job_id
        self.stage = stage
        self._owns_sink = sink is None

        if sink is None:
            log_path = Path(log_dir) / (filename or f"{stage}.jsonl") if log_dir is not None else None
            sink = LogSink(f"scanflow.job.{job_id}.{id(self)}", log_path, console_output, level)
        self._sink = sink

    @property
    def log_file(self) -> Optional[Path]:
        """Path of the JSONL file once something has been written, else None."""
        return self._sink.log_path if self._sink.opened else None

    def log(self, level: int, message: str, **fields) -> None:
        options = {name: fields.pop(name) for name in _LOG_OPTIONS if name in fields}
        fields.update(job_id=self.job_id, stage=self.stage)
        self._sink.get().log(level, message, extra=fields, **options)

    def debug(self, message: str, **fields) -> None:
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields) -> None:
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields) -> None:
        self.log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields) -> None:
        self.log(logging.ERROR, message, **fields)

    def child(self, stage: str) -> 'PipelineLogger':
        return PipelineLogger(self.job_id, stage, sink=self._sink)

    def close(self) -> None:
        # Children share the parent's handlers; only the owner releases them
        if self._owns_sink:
            self._sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def create_logger(job_id: str, stage: str, **kwargs) -> PipelineLogger:
    return PipelineLogger(job_id, stage, **kwargs)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger for library modules (transport, storage)."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level.upper())

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(handler)

    for noisy in ("urllib3", "botocore", "boto3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
