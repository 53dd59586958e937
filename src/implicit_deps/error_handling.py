"""
Error handling for no-implicit-deps.

Recoverable problems (unreadable manifests, bad config files) are recorded
here instead of being raised, so a single broken package.json never aborts
a whole check run. Listeners let the CLI surface them next to the findings.
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union


class ErrorCategory(Enum):
    """Where a recoverable problem came from."""

    MANIFEST = "MANIFEST"
    CONFIGURATION = "CONFIGURATION"


@dataclass
class ErrorContext:
    """One recorded problem."""

    category: ErrorCategory
    message: str
    component: str
    function: str
    path: Optional[str] = None
    exception: Optional[Exception] = None
    suggestions: List[str] = field(default_factory=list)

    def describe(self) -> str:
        """Single-line form used in reports."""
        text = self.message
        if self.path:
            text = f"{self.path}: {text}"
        if self.exception:
            text = f"{text} ({type(self.exception).__name__}: {self.exception})"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "component": self.component,
            "function": self.function,
            "path": self.path,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "suggestions": self.suggestions,
        }


ErrorListener = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Central sink for recoverable problems.

    Every problem is logged as a warning and passed to the registered
    listeners. Counts per category are kept for the run.
    """

    def __init__(self, logger_name: str = "implicit_deps", log_level: int = logging.WARNING):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(log_level)
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

        self.listeners: List[ErrorListener] = []
        self.counts: Dict[ErrorCategory, int] = {}

    def add_listener(self, listener: ErrorListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: ErrorListener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def report(
        self,
        category: ErrorCategory,
        message: str,
        component: str,
        function: str,
        path: Optional[Union[str, Path]] = None,
        exception: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Record a problem, log it and notify listeners.

        Returns:
            ErrorContext: The recorded problem
        """
        context = ErrorContext(
            category=category,
            message=message,
            component=component,
            function=function,
            path=str(path) if path is not None else None,
            exception=exception,
            suggestions=suggestions or [],
        )
        self.counts[category] = self.counts.get(category, 0) + 1

        self.logger.warning(
            f"{context.describe()} | component={component} function={function}"
        )

        for listener in list(self.listeners):
            try:
                listener(context)
            except Exception as listener_error:
                self.logger.error(f"Error in error listener: {listener_error}")

        return context


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def log_manifest_error(
    message: str,
    function: str,
    manifest_path: Optional[Path] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """
    Record a package.json that could not be read or parsed.

    The manifest is treated as empty by the caller; this only makes the
    problem visible.

    Args:
        message: Error message
        function: Function name
        manifest_path: Manifest that failed to load
        exception: Optional exception
    """
    return get_error_handler().report(
        ErrorCategory.MANIFEST,
        message,
        "manifest",
        function,
        path=manifest_path,
        exception=exception,
        suggestions=[
            "Check that package.json contains a valid JSON object",
            "Verify the file is readable and UTF-8 encoded",
        ],
    )


def log_config_error(
    message: str,
    function: str,
    config_path: Optional[Path] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """Record a configuration file that could not be loaded."""
    return get_error_handler().report(
        ErrorCategory.CONFIGURATION,
        message,
        "cli_config",
        function,
        path=config_path,
        exception=exception,
        suggestions=["Run 'no-implicit-deps config validate' on the file"],
    )
