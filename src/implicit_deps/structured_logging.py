"""
Structured logging configuration for no-implicit-deps.

Emits machine-readable JSON records for check runs and manifest resolution.
All records go to stderr so that findings printed on stdout stay clean.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class CheckLogger:
    """Structured logger carrying the context of the file being checked."""

    def __init__(self, name: str = "implicit_deps"):
        self.logger = logging.getLogger(name)
        self._setup_logger()
        self.check_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def use_json(self, enable_json: bool) -> None:
        """Switch between JSON and plain text records."""
        formatter = (
            StructuredFormatter()
            if enable_json
            else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        for handler in self.logger.handlers:
            handler.setFormatter(formatter)

    def set_check_context(
        self, file_path: Optional[str] = None, run_id: Optional[str] = None
    ) -> None:
        """Set check context for logging."""
        self.check_context = {}
        if run_id:
            self.check_context["run_id"] = run_id
        if file_path:
            self.check_context["file_path"] = file_path

    def clear_check_context(self) -> None:
        """Clear check context."""
        self.check_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.check_context, **kwargs}
        getattr(self.logger, level)(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log("warning", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


# Global logger instances
_checker_logger = CheckLogger("implicit_deps.checker")
_manifest_logger = CheckLogger("implicit_deps.manifest")


def get_checker_logger() -> CheckLogger:
    """Get check run logger."""
    return _checker_logger


def get_manifest_logger() -> CheckLogger:
    """Get manifest resolution logger."""
    return _manifest_logger


def log_check_start(file_path: str, run_id: Optional[str] = None) -> None:
    """Log the start of a single file check."""
    _checker_logger.set_check_context(file_path, run_id)
    _manifest_logger.set_check_context(file_path, run_id)
    _checker_logger.debug("check_started")


def log_check_complete(file_path: str, duration_ms: int, findings_count: int) -> None:
    """Log the end of a single file check."""
    _checker_logger.info(
        "check_completed",
        file_path=file_path,
        check_duration_ms=duration_ms,
        total_findings=findings_count,
    )
    _checker_logger.clear_check_context()
    _manifest_logger.clear_check_context()


def log_manifest_resolved(
    manifest_path: Optional[str], sections: list, allowed_count: int
) -> None:
    """Log which manifest and sections produced the allowed package set."""
    if manifest_path is None:
        _manifest_logger.debug("manifest_not_found")
        return
    _manifest_logger.debug(
        "manifest_resolved",
        manifest_path=manifest_path,
        sections=sections,
        allowed_packages=allowed_count,
    )


def log_finding(package_name: str, line: int, column: int) -> None:
    """Log a reported implicit dependency."""
    _checker_logger.debug(
        "implicit_dependency", package_name=package_name, line=line, column=column
    )


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in [_checker_logger, _manifest_logger]:
        logger.logger.setLevel(level)
        logger.use_json(enable_json)
