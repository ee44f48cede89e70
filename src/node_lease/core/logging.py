"""Logging helpers for node-lease."""

import atexit
import contextlib
import json
import logging
import os
import re
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from node_lease.core.constants import LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES, VALID_LOG_LEVELS

_LOG_RECORD_RESERVED_FIELDS = set(logging.makeLogRecord({}).__dict__.keys()) | {"message", "asctime", "extra_fields"}
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_str(value: object) -> str:
    try:
        return str(value)
    except Exception:
        return "<unprintable>"


def _safe_record_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        # Keep logging resilient when message formatting fails (bad placeholders or broken __str__).
        return f"{_safe_str(getattr(record, 'msg', ''))} [log-message-format-error]"


def _is_reserved_or_private_record_key(key: object) -> bool:
    if not isinstance(key, str):
        return True
    return key in _LOG_RECORD_RESERVED_FIELDS or key.startswith("_")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging output.

    Produces JSON lines suitable for log aggregation systems. Each log
    record is a single JSON object on one line; context fields attached
    with ``with_log_context`` become top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _safe_record_message(record),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
            "thread": record.thread,
            "thread_name": record.threadName,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {}
        record_extra_fields = getattr(record, "extra_fields", None)
        if isinstance(record_extra_fields, dict):
            extra_fields.update(record_extra_fields)

        # Also include custom LogRecord attributes set via logging's `extra`.
        for key, value in record.__dict__.items():
            if _is_reserved_or_private_record_key(key):
                continue
            extra_fields.setdefault(key, value)

        if extra_fields:
            log_entry.update(extra_fields)

        return json.dumps(log_entry, default=str)


# Module-level tracking to prevent duplicate atexit registration
_atexit_registered = False


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges contextual fields into record extras."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra")
        merged_extra = dict(self.extra)
        if isinstance(extra, dict):
            merged_extra.update(extra)
        kwargs["extra"] = merged_extra
        return msg, kwargs


def _unwrap_logger(logger: logging.Logger | logging.LoggerAdapter | None) -> logging.Logger | None:
    current = logger
    while isinstance(current, logging.LoggerAdapter):
        current = current.logger
    if isinstance(current, logging.Logger):
        return current
    return None


def with_log_context(
    logger: logging.Logger | logging.LoggerAdapter | object, **context: object
) -> logging.Logger | logging.LoggerAdapter | object:
    """Return a logger enriched with persistent contextual fields."""
    if not isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        # Preserve test doubles/mocks that may not satisfy logging interfaces.
        return logger

    base_logger = _unwrap_logger(logger)
    if base_logger is None:
        return logger

    normalized_context = {k: v for k, v in context.items() if v is not None}
    existing_context = {}
    if isinstance(logger, logging.LoggerAdapter):
        existing_context = dict(getattr(logger, "extra", {}))

    existing_context.update(normalized_context)
    return ContextLoggerAdapter(base_logger, existing_context)


def flush_logging_handlers(logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
    """Flush logger handlers, including propagated root handlers."""
    handlers: list[logging.Handler] = []
    seen: set[int] = set()

    unwrapped_logger = _unwrap_logger(logger)

    if unwrapped_logger is not None:
        current: logging.Logger | None = unwrapped_logger
        while current is not None:
            handlers.extend(current.handlers)
            if not current.propagate:
                break
            current = current.parent

    if not handlers:
        handlers.extend(logging.root.handlers)

    for handler in handlers:
        handler_id = id(handler)
        if handler_id in seen:
            continue
        seen.add(handler_id)
        with contextlib.suppress(Exception):
            handler.flush()


def _log_file_path(log_dir: Path, holder_identity: str | None) -> Path:
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    if holder_identity:
        safe_identity = _UNSAFE_FILENAME_CHARS.sub("_", holder_identity)
        return log_dir / f"node_lease_{safe_identity}_{timestamp}.log"
    return log_dir / f"node_lease_{timestamp}.log"


def setup_logging(
    holder_identity: str | None = None,
    log_level: str | None = None,
    log_format: str = "text",
    log_dir: str | Path | None = None,
    file_max_bytes: int = LOG_FILE_MAX_BYTES,
    file_backup_count: int = LOG_FILE_BACKUP_COUNT,
) -> logging.Logger:
    """Setup logging to the console and, optionally, a rotating file.

    Args:
        holder_identity: Node name used for log file naming
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - "text" (default) or "json" for structured logging
        log_dir: Directory for log files; console only when None
        file_max_bytes: Maximum size per log file before rotation
        file_backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance

    Priority: 1) Passed parameter, 2) Environment variable LOG_LEVEL, 3) Default INFO
    """
    global _atexit_registered

    # Register atexit handler once to ensure logs are flushed on exit
    if not _atexit_registered:
        atexit.register(logging.shutdown)
        _atexit_registered = True

    log_file = None
    if log_dir is not None:
        directory = Path(log_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            log_file = _log_file_path(directory, holder_identity)
        except OSError as e:
            print(f"Warning: Cannot create log directory {directory}: {e}. Logging to console only.", file=sys.stderr)

    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO")

    if log_level.upper() not in VALID_LOG_LEVELS:
        print(f"Warning: Invalid log level '{log_level}', using INFO", file=sys.stderr)
        log_level = "INFO"

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Clear any existing handlers from root logger
    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(RotatingFileHandler(log_file, maxBytes=file_max_bytes, backupCount=file_backup_count))

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(numeric_level)
        logging.root.addHandler(handler)

    logging.root.setLevel(numeric_level)

    logger = logging.getLogger("node_lease")
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

    if log_file is not None:
        logger.info(f"Logging initialized. Log file: {log_file}")
    else:
        logger.debug("Logging initialized. Console output only.")

    flush_logging_handlers(logger)
    return logger
