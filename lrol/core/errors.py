"""
Domain-specific exceptions and diagnostics for the LROL front end.

Two independent taxonomies live here:

- Parser errors are raised. The first one aborts parsing and is the only
  diagnostic returned for that document.
- Analyzer diagnostics are collected. Every violated rule is recorded as an
  ``AnalyzerError`` value and returned together; none of them aborts the
  remaining passes.

File-level failures (missing file, unreadable bytes, bad encoding) wrap the
orchestration boundary and are raised like any other domain error.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lrol.compiler.validator import ValidationReport


class LrolError(Exception):
    """Base exception for all LROL domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Parser errors (fail-fast)
# =============================================================================


class ParserError(LrolError):
    """
    Raised when rule text is not well-formed.

    Carries the 1-based ``line`` and ``column`` of the failure when it can be
    attributed to a source position.
    """

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.line = line
        self.column = column
        super().__init__(message, details)

    @property
    def location(self) -> str:
        if self.line is None:
            return ""
        return f" (line {self.line}, column {self.column})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": type(self).__name__,
            "message": str(self),
            "line": self.line,
            "column": self.column,
            **self.details,
        }


class InvalidSyntaxError(ParserError):
    """
    Raised when the text does not match the grammar.

    Examples:
    - Missing comma between object members
    - Unterminated string
    - Trailing content after the closing brace
    """

    def __init__(self, line: int, column: int, message: str):
        self.reason = message
        super().__init__(
            f"Syntax error at line {line}, column {column}: {message}",
            line=line,
            column=column,
            details={"reason": message},
        )


class MissingFieldError(ParserError):
    """
    Raised when an evaluation omits a field its type requires.

    Examples:
    - Comparison without ``right``
    - Logical evaluation without ``operands``
    """

    def __init__(self, field_name: str, line: int | None = None, column: int | None = None):
        self.field = field_name
        super().__init__(
            f"Missing required field: {field_name}",
            line=line,
            column=column,
            details={"field": field_name},
        )

    def __str__(self) -> str:
        return f"{self.message}{self.location}"


class InvalidValueError(ParserError):
    """
    Raised when a field holds a value of the wrong shape or vocabulary.

    Examples:
    - ``threshold`` given as a string
    - Unknown evaluation ``type``
    - Logical ``operator`` outside AND/OR
    """

    def __init__(
        self,
        field_name: str,
        expected: str,
        found: str,
        line: int | None = None,
        column: int | None = None,
    ):
        self.field = field_name
        self.expected = expected
        self.found = found
        super().__init__(
            f"Invalid value for field {field_name}: expected {expected}, found {found}",
            line=line,
            column=column,
            details={"field": field_name, "expected": expected, "found": found},
        )

    def __str__(self) -> str:
        return f"{self.message}{self.location}"


# =============================================================================
# Analyzer diagnostics (accumulated)
# =============================================================================


@dataclass(frozen=True)
class AnalyzerError:
    """Base class for semantic diagnostics collected by the analyzer."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return self.kind

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **asdict(self)}

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class DuplicateEvaluationName(AnalyzerError):
    evaluation_name: str

    @property
    def message(self) -> str:
        return f"Duplicate evaluation name '{self.evaluation_name}'"


@dataclass(frozen=True)
class MissingOperandReference(AnalyzerError):
    evaluation_name: str
    missing_operand: str

    @property
    def message(self) -> str:
        return (
            f"Evaluation '{self.evaluation_name}' references unknown operand "
            f"'{self.missing_operand}'"
        )


@dataclass(frozen=True)
class CircularDependency(AnalyzerError):
    evaluation_name: str
    dependency_chain: tuple[str, ...] = field(default_factory=tuple)

    @property
    def message(self) -> str:
        chain = " -> ".join(self.dependency_chain)
        return f"Circular dependency detected from '{self.evaluation_name}': {chain}"


@dataclass(frozen=True)
class InvalidWeight(AnalyzerError):
    evaluation_name: str
    weight: int

    @property
    def message(self) -> str:
        return f"Evaluation '{self.evaluation_name}' has invalid weight {self.weight} (1-5)"


@dataclass(frozen=True)
class MissingRequiredField(AnalyzerError):
    evaluation_name: str
    field_name: str

    @property
    def message(self) -> str:
        return f"Evaluation '{self.evaluation_name}' is missing required field '{self.field_name}'"


@dataclass(frozen=True)
class InvalidLogicalOperator(AnalyzerError):
    evaluation_name: str
    operator: str

    @property
    def message(self) -> str:
        return f"Evaluation '{self.evaluation_name}' has invalid logical operator '{self.operator}'"


@dataclass(frozen=True)
class EmptyOperands(AnalyzerError):
    evaluation_name: str

    @property
    def message(self) -> str:
        return f"Evaluation '{self.evaluation_name}' has an empty operands list"


@dataclass(frozen=True)
class InvalidStringReference(AnalyzerError):
    evaluation_name: str
    field_name: str
    reference: str

    @property
    def message(self) -> str:
        return (
            f"Evaluation '{self.evaluation_name}' field '{self.field_name}' references "
            f"unknown evaluation '@{self.reference}'"
        )


@dataclass(frozen=True)
class InvalidDateTimeExpression(AnalyzerError):
    evaluation_name: str
    field_name: str
    expression: str
    reason: str

    @property
    def message(self) -> str:
        return (
            f"Evaluation '{self.evaluation_name}' field '{self.field_name}' has invalid "
            f"datetime expression '{self.expression}': {self.reason}"
        )


@dataclass(frozen=True)
class InvalidThreshold(AnalyzerError):
    value: float
    reason: str

    @property
    def message(self) -> str:
        return f"Invalid threshold {self.value}: {self.reason}"


@dataclass(frozen=True)
class InvalidEvaluationType(AnalyzerError):
    evaluation_name: str
    found_type: str

    @property
    def message(self) -> str:
        return f"Evaluation '{self.evaluation_name}' has invalid type '{self.found_type}'"


@dataclass(frozen=True)
class InvalidComparisonOperator(AnalyzerError):
    evaluation_name: str
    operator: str

    @property
    def message(self) -> str:
        return (
            f"Evaluation '{self.evaluation_name}' has invalid comparison operator "
            f"'{self.operator}'"
        )


@dataclass(frozen=True)
class InvalidWeightRange(AnalyzerError):
    evaluation_name: str
    weight: int

    @property
    def message(self) -> str:
        return f"Evaluation '{self.evaluation_name}' weight {self.weight} is outside 1-5"


@dataclass(frozen=True)
class InvalidActionType(AnalyzerError):
    action_type: str

    @property
    def message(self) -> str:
        return f"Invalid action type '{self.action_type}'"


@dataclass(frozen=True)
class MissingActionReason(AnalyzerError):
    action_type: str

    @property
    def message(self) -> str:
        return f"Action '{self.action_type}' is missing a reason"


@dataclass(frozen=True)
class InvalidMetadataFormat(AnalyzerError):
    field: str
    reason: str

    @property
    def message(self) -> str:
        return f"Metadata field '{self.field}': {self.reason}"


@dataclass(frozen=True)
class MissingRequiredSchemaField(AnalyzerError):
    field: str

    @property
    def message(self) -> str:
        return f"Missing required schema field '{self.field}'"


class AnalysisError(LrolError):
    """
    Raised by ``RuleAnalyzer.analyze`` when any semantic rule is violated.

    ``errors`` holds every collected diagnostic, in pass order.
    """

    def __init__(self, errors: list[AnalyzerError]):
        self.errors = list(errors)
        super().__init__(
            f"Semantic analysis found {len(self.errors)} error(s)",
            details={"errors": [e.to_dict() for e in self.errors]},
        )


# =============================================================================
# File-level validation errors
# =============================================================================


class FileValidationError(LrolError):
    """Base class for failures of the file and directory entry points."""

    def __init__(self, message: str, path: str, details: dict[str, Any] | None = None):
        self.path = path
        super().__init__(message, details={"path": path, **(details or {})})


class RuleFileNotFoundError(FileValidationError):
    """Raised when the rule file does not exist."""

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}", path)


class RuleFileReadError(FileValidationError):
    """Raised when the rule file exists but cannot be read."""

    def __init__(self, path: str, error: Exception | str):
        self.error = error
        super().__init__(
            f"Error reading file {path}: {error}", path, details={"error": str(error)}
        )


class InvalidEncodingError(FileValidationError):
    """Raised when the rule file is not valid UTF-8 text."""

    def __init__(self, path: str):
        super().__init__(f"File {path} contains invalid UTF-8", path)


class ValidationErrors(FileValidationError):
    """
    Raised when a document parses or analyzes with errors.

    Wraps the full ``ValidationReport`` so callers can render every diagnostic.
    """

    def __init__(self, report: ValidationReport):
        self.report = report
        super().__init__(
            f"Validation errors in file:\n{report.format_errors()}",
            report.file_path or "<string>",
        )
