"""
LROL compiler front end.

This package turns LROL rule text into a validated ``RuleModel``.

Key Components:
- grammar: Cursor-based recognizers for the JSON-like value grammar
- parser: Document parser producing the typed model with located syntax errors
- expressions: ``@name`` reference and ``datetime(...)`` mini-grammar extraction
- analyzer: Multi-pass semantic validation and dependency cycle detection
- validator: Parse-then-analyze orchestration for strings, files and directories

Design Principles:
- Well-formedness at parse time (fail-fast), completeness at analysis time
- Analysis collects every diagnostic in one call
- Deterministic output: same input, same diagnostics in the same order
"""

from lrol.compiler.analyzer import RuleAnalyzer, SchemaVocabulary
from lrol.compiler.expressions import extract_references, parse_datetime_expression
from lrol.compiler.parser import DocumentParser, parse_file, parse_str
from lrol.compiler.validator import RuleValidator, ValidationReport

__all__ = [
    "DocumentParser",
    "RuleAnalyzer",
    "RuleValidator",
    "SchemaVocabulary",
    "ValidationReport",
    "extract_references",
    "parse_datetime_expression",
    "parse_file",
    "parse_str",
]
