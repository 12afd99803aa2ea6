"""LROL (risk orchestration rules language) parser and validator."""

from lrol.compiler import (
    DocumentParser,
    RuleAnalyzer,
    RuleValidator,
    ValidationReport,
    parse_file,
    parse_str,
)
from lrol.domain.models import Action, Evaluation, Metadata, RuleModel

__version__ = "0.1.0"

__all__ = [
    "Action",
    "DocumentParser",
    "Evaluation",
    "Metadata",
    "RuleAnalyzer",
    "RuleModel",
    "RuleValidator",
    "ValidationReport",
    "parse_file",
    "parse_str",
]
