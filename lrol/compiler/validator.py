"""
Validation orchestration for LROL documents.

Sequences the two front-end stages and merges their diagnostics:

1. Parse the text (fail-fast; at most one ``ParserError``)
2. Only if parsing succeeded, analyze the model with a fresh ``RuleAnalyzer``
3. Collect both channels into one ``ValidationReport``

A report is valid when there is no parser error and no analyzer error. No
automatic recovery is attempted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lrol.compiler.analyzer import RuleAnalyzer, SchemaVocabulary
from lrol.compiler.parser import parse_str
from lrol.core.config import settings
from lrol.core.errors import (
    AnalyzerError,
    FileValidationError,
    InvalidEncodingError,
    ParserError,
    RuleFileNotFoundError,
    RuleFileReadError,
    ValidationErrors,
)
from lrol.core.observability import document_context, metrics
from lrol.domain.models import RuleModel

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of validating one document."""

    file_path: str | None = None
    model: RuleModel | None = None
    parser_error: ParserError | None = None
    analyzer_errors: list[AnalyzerError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.parser_error is None and not self.analyzer_errors

    @property
    def error_count(self) -> int:
        return len(self.analyzer_errors) + (1 if self.parser_error is not None else 0)

    def format_errors(self) -> str:
        """Render every diagnostic as numbered plain-text lines."""
        lines = []
        if self.file_path:
            lines.append(f"File: {self.file_path}")
        if self.parser_error is not None:
            lines.append(f"Parser Error: {self.parser_error}")
        if self.analyzer_errors:
            lines.append("Analyzer Errors:")
            lines.extend(
                f"{i}. {error.message}" for i, error in enumerate(self.analyzer_errors, start=1)
            )
        if self.is_valid:
            lines.append("No validation errors found.")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "valid": self.is_valid,
            "parser_error": self.parser_error.to_dict() if self.parser_error else None,
            "analyzer_errors": [error.to_dict() for error in self.analyzer_errors],
            "model": self.model.model_dump(mode="json") if self.model else None,
        }


def _record_validation_metrics(report: ValidationReport, duration: float) -> None:
    """Record validation metrics to Prometheus when enabled."""
    if not settings.metrics_enabled:
        return

    metrics.validations_total.labels(status="valid" if report.is_valid else "invalid").inc()
    metrics.validation_duration_seconds.observe(duration)

    if report.parser_error is not None:
        metrics.parser_errors_total.labels(kind=type(report.parser_error).__name__).inc()
    if report.model is not None:
        metrics.evaluations_count.observe(len(report.model.evaluations))
    for error in report.analyzer_errors:
        metrics.analyzer_errors_total.labels(kind=error.kind).inc()


class RuleValidator:
    """
    Parse-then-analyze entry points for strings, files and directories.

    Example:
        >>> validator = RuleValidator()
        >>> report = validator.validate_with_report(text)
        >>> report.is_valid
        True
    """

    def __init__(self, vocabulary: SchemaVocabulary | None = None):
        self.vocabulary = vocabulary or SchemaVocabulary()

    def validate_with_report(self, text: str, file_path: str | None = None) -> ValidationReport:
        """Validate ``text`` and return a report holding every diagnostic."""
        start_time = time.time()
        report = ValidationReport(file_path=file_path)

        try:
            report.model = parse_str(text)
        except ParserError as e:
            report.parser_error = e
            logger.info("Parsing failed: %s", e)
        else:
            # Fresh analyzer per document; its working sets must not leak across runs
            analyzer = RuleAnalyzer(self.vocabulary)
            report.analyzer_errors = analyzer.collect_errors(report.model)

        duration = time.time() - start_time
        logger.info(
            "Validated %s: valid=%s, errors=%d, duration=%.4fs",
            file_path or "<string>",
            report.is_valid,
            report.error_count,
            duration,
        )
        _record_validation_metrics(report, duration)
        return report

    def validate(self, text: str) -> RuleModel:
        """
        Validate ``text`` and return the model.

        Raises:
            ValidationErrors: If parsing or analysis reported anything
        """
        report = self.validate_with_report(text)
        if not report.is_valid:
            raise ValidationErrors(report)
        return report.model

    def validate_file(self, path: str | Path) -> ValidationReport:
        """
        Validate a rule file.

        Returns:
            The report, which is always valid

        Raises:
            RuleFileNotFoundError: If the file does not exist
            RuleFileReadError: If the file cannot be read or exceeds the size limit
            InvalidEncodingError: If the file is not UTF-8 text
            ValidationErrors: If the document has diagnostics
        """
        path = Path(path)
        path_str = str(path)

        with document_context(path_str):
            if not path.exists():
                raise RuleFileNotFoundError(path_str)

            try:
                size = path.stat().st_size
                if size > settings.max_rule_file_bytes:
                    raise RuleFileReadError(
                        path_str,
                        f"file is {size} bytes, limit is {settings.max_rule_file_bytes}",
                    )
                raw = path.read_bytes()
            except OSError as e:
                raise RuleFileReadError(path_str, e) from e

            try:
                content = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidEncodingError(path_str) from e

            report = self.validate_with_report(content, file_path=path_str)

        if not report.is_valid:
            raise ValidationErrors(report)
        return report

    def validate_directory(
        self, dir_path: str | Path
    ) -> list[tuple[str, ValidationReport | FileValidationError]]:
        """
        Validate every rule file directly inside ``dir_path``.

        Only files with the configured extension (``.json`` by default) are
        considered, in name order. Each file yields an independent
        ``(path, report_or_error)`` pair.
        """
        dir_path = Path(dir_path)
        try:
            entries = sorted(dir_path.iterdir())
        except OSError as e:
            logger.warning("Cannot list directory %s: %s", dir_path, e)
            return []

        results: list[tuple[str, ValidationReport | FileValidationError]] = []
        for path in entries:
            if not path.is_file() or path.suffix.lower() != settings.rule_file_extension:
                continue
            try:
                outcome: ValidationReport | FileValidationError = self.validate_file(path)
            except FileValidationError as e:
                outcome = e
            results.append((str(path), outcome))

        logger.info(
            "Validated directory %s: %d files, %d valid",
            dir_path,
            len(results),
            sum(1 for _, outcome in results if isinstance(outcome, ValidationReport)),
        )
        return results
