"""
Structured logging for draft engine events.

Provides JSON-formatted logs with timestamps and structured fields.
"""
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    EXCLUDED_ATTRS = {
        'name', 'msg', 'args', 'levelname', 'levelno',
        'pathname', 'filename', 'module', 'exc_info',
        'exc_text', 'stack_info', 'lineno', 'funcName',
        'created', 'msecs', 'relativeCreated', 'thread',
        'threadName', 'processName', 'process', 'message',
        'asctime', 'taskName'
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted string
        """
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in self.EXCLUDED_ATTRS:
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data)


class StructuredLogger:
    """Structured logger wrapper with convenience methods."""

    def __init__(
        self,
        name: str = "raydrop",
        level: int = logging.INFO,
        enable_console: bool = True,
        enable_file: bool = False,
        log_file: Optional[str] = None
    ):
        """Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level
            enable_console: Output to console
            enable_file: Output to file
            log_file: Path to log file
        """
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._logger.handlers = []

        formatter = StructuredFormatter()

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            self._logger.addHandler(console_handler)

        if enable_file and log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            self._logger.addHandler(file_handler)

    @property
    def name(self) -> str:
        return self._logger.name

    def info(self, event: str, **kwargs: Any) -> None:
        """Log info level message.

        Args:
            event: Event name/message
            **kwargs: Additional structured fields
        """
        self._logger.info(event, extra=kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        """Log warning level message.

        Args:
            event: Event name/message
            **kwargs: Additional structured fields
        """
        self._logger.warning(event, extra=kwargs)

    def error(self, event: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error level message.

        Args:
            event: Event name/message
            exc_info: Attach the active exception's traceback
            **kwargs: Additional structured fields
        """
        self._logger.error(event, exc_info=exc_info, extra=kwargs)

    def debug(self, event: str, **kwargs: Any) -> None:
        """Log debug level message.

        Args:
            event: Event name/message
            **kwargs: Additional structured fields
        """
        self._logger.debug(event, extra=kwargs)

    def log_draft_change(
        self,
        operation: str,
        draft_id: Optional[str],
        status: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """Log a change the draft store confirmed.

        Args:
            operation: Operation applied (create/update/delete/status/record_import)
            draft_id: Draft id
            status: Draft status after the change, when known
            **kwargs: Additional structured fields
        """
        self._logger.info(
            "draft_changed",
            extra={
                "operation": operation,
                "draft_id": draft_id,
                "status": status,
                **kwargs
            }
        )

    def log_import(
        self,
        draft_ids: List[str],
        success: bool,
        is_bulk: bool = False,
        job_id: Optional[str] = None,
        test_keys: Optional[List[str]] = None,
        error: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """Log the outcome of a single or bulk import.

        Args:
            draft_ids: Drafts submitted to Xray
            success: Whether Xray accepted the import
            is_bulk: Whether the drafts went in one bulk request
            job_id: Xray import job id
            test_keys: Keys of the created tests
            error: Error message if failed
            **kwargs: Additional structured fields
        """
        level = logging.INFO if success else logging.WARNING
        self._logger.log(
            level,
            "import_completed" if success else "import_failed",
            extra={
                "draft_ids": list(draft_ids),
                "count": len(draft_ids),
                "is_bulk": is_bulk,
                "job_id": job_id,
                "test_keys": list(test_keys or []),
                "success": success,
                "error": error,
                **kwargs
            }
        )


_loggers: Dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    """Get (or lazily create) the structured logger for a component.

    Level and optional log file come from the logging configuration.

    Args:
        name: Component name, appended to the "raydrop" logger namespace

    Returns:
        StructuredLogger instance shared per name
    """
    full_name = name if name.startswith("raydrop") else f"raydrop.{name}"
    if full_name not in _loggers:
        from raydrop.config import LoggingConfig

        settings = LoggingConfig.from_env()
        _loggers[full_name] = StructuredLogger(
            name=full_name,
            level=settings.level,
            enable_file=bool(settings.log_file),
            log_file=settings.log_file
        )
    return _loggers[full_name]
