# imager/infra/logging_config.py
"""
Logging setup: JSON lines in production, colored console lines in development.

Per-image context (request, image handle, operation) travels on the record
as ``extra`` fields attached by ``LogContext``; both formatters render
whichever of ``CONTEXT_FIELDS`` are present.
"""
import logging
import sys
import json
from datetime import datetime, timezone

# Context attributes a record may carry, with their console labels
CONTEXT_FIELDS = {
    "request_id": "req",
    "image_id": "img",
    "operation": "op",
}

# Extra numeric fields emitted in JSON output when present
METRIC_FIELDS = ("status_code", "duration_ms", "output_bytes")


def record_context(record: logging.LogRecord) -> dict:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        log_data.update(record_context(record))
        for field in METRIC_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Human-readable format for development"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        context = record_context(record)
        if "request_id" in context:
            context["request_id"] = str(context["request_id"])[:8]
        tags = " ".join(f"{CONTEXT_FIELDS[k]}={v}" for k, v in context.items())
        tags = f" [{tags}]" if tags else ""

        message = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{record.name}{tags} - {record.getMessage()}"
        )
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging(level: str = "INFO", use_json: bool = False) -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: JSON lines (production) instead of colored console output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else ConsoleFormatter())
    root_logger.addHandler(handler)

    # PIL logs every chunk it parses at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.info(f"Logging configured: level={level}, json={use_json}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)


class LogContext:
    """Logger wrapper that stamps every record with request/image context"""

    def __init__(
            self,
            logger: logging.Logger,
            request_id: str | None = None,
            image_id: str | None = None,
            operation: str | None = None,
    ):
        self.logger = logger
        self.context = {
            "request_id": request_id,
            "image_id": image_id,
            "operation": operation,
        }

    def bind(self, **context) -> "LogContext":
        """New context with some fields added or replaced."""
        merged = {**self.context, **context}
        return LogContext(self.logger, **merged)

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = kwargs.pop("extra", {})
        extra.update({k: v for k, v in self.context.items() if v is not None})
        self.logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)
