"""Structured logging for build runs.

Every run writes one JSON object per line to ``<log_dir>/<run_id>/buildgate.jsonl``
(optionally mirrored to stderr). Emitting threads only enqueue records; a
``QueueListener`` thread formats and writes them, so module configuration running on
worker threads never blocks on file I/O.

Correlation fields (``run_id``, ``module``, ``task``) live in a context variable.
They are captured when a record is enqueued, on the emitting thread, because the
listener thread has its own context. ``structlog`` events are rendered into stdlib
records and share the same pipeline.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import re
import secrets
import sys
import threading
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

import structlog

from buildgate.domain.models import JSONValue

LogRedactor = Callable[[JSONValue], JSONValue]

ROOT_LOGGER_NAME: Final[str] = "buildgate"
LOG_FILENAME: Final[str] = "buildgate.jsonl"
REDACTED: Final[str] = "***REDACTED***"

_CORRELATION_KEYS: Final[tuple[str, ...]] = ("run_id", "module", "task")

# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "correlation"}

_SENSITIVE_KEY_PARTS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
    "private_key",
)

_TEXT_SCRUBBERS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (
        re.compile(
            r"(?i)\b(api[_-]?key|token|password|secret|authorization)\b\s*([:=])\s*[^\s,;]+"
        ),
        rf"\1\2{REDACTED}",
    ),
    (re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*"), f"Bearer {REDACTED}"),
    (re.compile(r"(?i)\b(https?://)[^\s/@:]+:[^\s/@]+@"), rf"\1{REDACTED}@"),
)

_correlation: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "buildgate_correlation", default={}
)

_active_lock = threading.Lock()
_active: StructuredLoggingHandle | None = None
_atexit_registered = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Settings for one run's structured logging."""

    run_id: str
    base_log_dir: Path | str = Path("build/logs")
    logger_name: str = ROOT_LOGGER_NAME
    level: int | str = "INFO"
    queue_size: int = 4096
    log_filename: str = LOG_FILENAME
    log_to_stderr: bool = False
    redactor: LogRedactor | None = None


# ---------------------------------------------------------------------------
# Setup / teardown
# ---------------------------------------------------------------------------


def new_run_id() -> str:
    """Return a sortable, unique identifier for one build invocation."""

    return f"{datetime.now(tz=UTC):%Y%m%dT%H%M%SZ}-{secrets.token_hex(4)}"


def setup_logging(
    observability: Mapping[str, object] | None = None,
    *,
    run_id: str,
    log_dir: Path | str | None = None,
    logger_name: str = ROOT_LOGGER_NAME,
) -> StructuredLoggingHandle:
    """Configure logging from an ``[observability]`` table and route ``structlog`` into it."""

    options = dict(observability or {})
    level = options.get("log_level", "INFO")
    base_dir = log_dir if log_dir is not None else options.get("log_dir", "build/logs")
    handle = setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            base_log_dir=base_dir if isinstance(base_dir, (Path, str)) else "build/logs",
            logger_name=logger_name,
            level=level if isinstance(level, (int, str)) else "INFO",
            log_to_stderr=bool(options.get("log_to_stderr", False)),
            redactor=None if options.get("redact_secrets", True) else _no_redaction,
        )
    )
    configure_structlog()
    return handle


def configure_structlog() -> None:
    """Render ``structlog`` events as stdlib records whose extras carry the event keys."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Start a queue-backed JSON-lines pipeline for a single run.

    Any previously active pipeline is shut down first.
    """

    global _active

    run_id = _nonblank(config.run_id, "run_id")
    logger_name = _nonblank(config.logger_name, "logger_name")
    filename = _nonblank(config.log_filename, "log_filename")
    if Path(filename).name != filename:
        raise ValueError("log_filename must not include path separators")
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    level = parse_log_level(config.level)

    shutdown_logging()

    log_path = Path(config.base_log_dir) / run_id / filename
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = _JsonLineFormatter(
        run_id=run_id,
        redactor=config.redactor if config.redactor is not None else default_log_redactor,
    )
    sinks: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if config.log_to_stderr:
        sinks.append(logging.StreamHandler(sys.stderr))
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=config.queue_size)
    enqueuer = _CorrelatingQueueHandler(records)
    enqueuer.setLevel(level)
    listener = logging.handlers.QueueListener(records, *sinks, respect_handler_level=True)

    logger = logging.getLogger(logger_name)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(enqueuer)
    listener.start()

    handle = StructuredLoggingHandle(
        logger=logger,
        run_id=run_id,
        log_path=log_path,
        _records=records,
        _enqueuer=enqueuer,
        _sinks=tuple(sinks),
        _listener=listener,
    )
    with _active_lock:
        _active = handle
    _ensure_atexit()
    return handle


def shutdown_logging(
    handle: StructuredLoggingHandle | None = None,
    *,
    timeout_seconds: float = 2.0,
) -> None:
    """Drain and close ``handle`` (default: the active pipeline)."""

    global _active

    target = handle if handle is not None else get_active_logging_handle()
    if target is None:
        return
    target.shutdown(timeout_seconds=timeout_seconds)
    with _active_lock:
        if _active is target:
            _active = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active


@dataclass(eq=False)
class StructuredLoggingHandle:
    """A running logging pipeline."""

    logger: logging.Logger
    run_id: str
    log_path: Path
    _records: queue.Queue[logging.LogRecord] = field(repr=False)
    _enqueuer: _CorrelatingQueueHandler = field(repr=False)
    _sinks: tuple[logging.Handler, ...] = field(repr=False)
    _listener: logging.handlers.QueueListener = field(repr=False)
    _closed: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def dropped_records(self) -> int:
        return self._enqueuer.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while self._records.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        for sink in self._sinks:
            sink.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._enqueuer)
            self._enqueuer.close()
            dropped = self.dropped_records
            if dropped:
                notice = self.logger.makeRecord(
                    self.logger.name,
                    logging.WARNING,
                    __file__,
                    0,
                    "%d log record(s) dropped because the log queue was full",
                    (dropped,),
                    None,
                    extra={"dropped_records": dropped},
                )
                for sink in self._sinks:
                    sink.handle(notice)
            for sink in self._sinks:
                sink.close()
            self._closed = True


# ---------------------------------------------------------------------------
# Loggers and correlation
# ---------------------------------------------------------------------------


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``buildgate`` logger or a child of it."""

    if not name or name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name or ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def get_correlation_context() -> dict[str, str]:
    return dict(_correlation.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for records emitted inside the block.

    A ``None`` value unbinds the field for the duration of the block.
    """

    bound = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            bound.pop(key, None)
        else:
            bound[key] = _nonblank(value, f"correlation field {key!r}")
    token = _correlation.set(bound)
    try:
        yield
    finally:
        _correlation.reset(token)


def parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return level


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Mask sensitive keys, ``key=value`` secrets, bearer tokens and URL credentials."""

    match value:
        case str():
            for pattern, replacement in _TEXT_SCRUBBERS:
                value = pattern.sub(replacement, value)
            return value
        case list():
            return [default_log_redactor(item) for item in value]
        case dict():
            return {
                key: REDACTED if _is_sensitive_key(key) else default_log_redactor(item)
                for key, item in value.items()
            }
        case _:
            return value


def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


def _no_redaction(value: JSONValue) -> JSONValue:
    return value


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


class _CorrelatingQueueHandler(logging.handlers.QueueHandler):
    """Stamp correlation context on records and drop them when the queue is full."""

    def __init__(self, records: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(records)
        self.dropped = 0
        self._dropped_lock = threading.Lock()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record.correlation = get_correlation_context()
        prepared: logging.LogRecord = super().prepare(record)
        return prepared

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._dropped_lock:
                self.dropped += 1


class _JsonLineFormatter(logging.Formatter):
    def __init__(self, *, run_id: str, redactor: LogRedactor) -> None:
        super().__init__()
        self._run_id = run_id
        self._redact = redactor

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")
        event: dict[str, JSONValue] = {
            "timestamp": created.replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": self._redact_text(record.getMessage()),
            "run_id": self._run_id,
        }
        event.update(_correlation_of(record))

        extras = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
            and key not in _CORRELATION_KEYS
            and not key.startswith("_")
        }
        if extras:
            event["fields"] = self._redact(extras)
        if record.exc_info is not None:
            event["exception"] = self._redact_text(self.formatException(record.exc_info))
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def _redact_text(self, text: str) -> str:
        redacted = self._redact(text)
        return redacted if isinstance(redacted, str) else json.dumps(redacted, sort_keys=True)


def _correlation_of(record: logging.LogRecord) -> dict[str, str]:
    captured = getattr(record, "correlation", None)
    context = dict(captured) if isinstance(captured, Mapping) else {}
    for key in _CORRELATION_KEYS:
        explicit = getattr(record, key, None)
        if isinstance(explicit, str) and explicit.strip():
            context[key] = explicit.strip()
    return context


def _jsonable(value: object) -> JSONValue:
    match value:
        case None | bool() | int() | str():
            return value
        case float():
            return value if math.isfinite(value) else str(value)
        case datetime():
            aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
            return aware.astimezone(UTC).isoformat().replace("+00:00", "Z")
        case Path():
            return value.as_posix()
        case bytes():
            return value.decode("utf-8", errors="replace")
        case Mapping():
            return {str(key): _jsonable(item) for key, item in value.items()}
        case list() | tuple():
            return [_jsonable(item) for item in value]
        case set() | frozenset():
            return sorted((_jsonable(item) for item in value), key=repr)
        case _:
            return repr(value)


def _nonblank(value: object, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must be a non-empty string")
    return value.strip()


def _ensure_atexit() -> None:
    global _atexit_registered
    if not _atexit_registered:
        atexit.register(shutdown_logging)
        _atexit_registered = True


__all__ = [
    "LOG_FILENAME",
    "LogRedactor",
    "LoggingConfig",
    "ROOT_LOGGER_NAME",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "get_active_logging_handle",
    "get_correlation_context",
    "get_logger",
    "new_run_id",
    "parse_log_level",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
