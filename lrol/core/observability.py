"""
Observability module for the LROL validator.

Provides:
- Structured logging with JSON format
- Document correlation (the file currently being validated) via context vars
- Prometheus metrics collection (validation outcomes, duration, diagnostics)

Usage:
    from lrol.core.observability import (
        configure_structured_logging,
        document_context,
        metrics,
    )
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# ============================================================================
# Context Variables for Document Tracking
# ============================================================================

# Document being validated - links all logs for a single file
_document_ctx: ContextVar[str] = ContextVar("document", default="")


def get_document() -> str:
    """Get the current document identifier from context."""
    return _document_ctx.get()


@contextmanager
def document_context(document: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``document``."""
    token = _document_ctx.set(document)
    try:
        yield
    finally:
        _document_ctx.reset(token)


# ============================================================================
# Structured Logging Configuration
# ============================================================================

# LogRecord attributes that are not user-supplied extras
_RESERVED_RECORD_KEYS = frozenset(
    {
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
        "taskName",
        "message",
        "asctime",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as JSON with standard fields:
    - timestamp: ISO 8601 format
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - document: Rule file being validated (if available)
    - extra: Any additional context from logging.extra
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        document = get_document()
        if document:
            log_entry["document"] = document

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        log_entry["file"] = record.pathname
        log_entry["line"] = record.lineno
        log_entry["function"] = record.funcName

        extra_keys = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS
        }
        if extra_keys:
            log_entry["extra"] = extra_keys

        return json.dumps(log_entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """
    Configure root logger with structured JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)


def configure_plain_logging(level: str = "WARNING") -> None:
    """Configure root logger with a human-readable single-line format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


# ============================================================================
# Prometheus Metrics
# ============================================================================

# Use a custom registry to avoid conflicts with other Prometheus metrics
_registry = CollectorRegistry()


class Metrics:
    """
    Centralized metrics collection for the validator.

    Metrics groups:
    - Validation: outcome counts and duration per document
    - Diagnostics: parser failures and analyzer errors by kind
    """

    def __init__(self, registry: CollectorRegistry) -> None:
        """Initialize all metrics with proper labels."""
        self.registry = registry

        # Validation outcome count (valid / invalid / error)
        self.validations_total = Counter(
            "lrol_validations_total",
            "Total rule documents validated",
            ["status"],
            registry=self.registry,
        )

        # Validation duration
        self.validation_duration_seconds = Histogram(
            "lrol_validation_duration_seconds",
            "Rule document validation duration in seconds",
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
            registry=self.registry,
        )

        # Evaluations per validated document
        self.evaluations_count = Histogram(
            "lrol_evaluations_count",
            "Number of evaluations in validated documents",
            buckets=(1, 5, 10, 25, 50, 100, 250),
            registry=self.registry,
        )

        # Parser failures by error class
        self.parser_errors_total = Counter(
            "lrol_parser_errors_total",
            "Total documents rejected by the parser",
            ["kind"],
            registry=self.registry,
        )

        # Analyzer diagnostics by kind
        self.analyzer_errors_total = Counter(
            "lrol_analyzer_errors_total",
            "Total analyzer diagnostics reported",
            ["kind"],
            registry=self.registry,
        )

    def render(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)


# Global metrics instance
metrics = Metrics(_registry)
