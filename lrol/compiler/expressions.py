"""
Reference and expression extraction for LROL string fields.

String-valued ``left`` / ``right`` operands may embed two small constructs:

- ``@name`` reference tokens pointing at other evaluations
- ``datetime(<now|'timestamp'>[, '<signed-int> <unit>'])`` expressions

Both parser-side tooling and the analyzer share these pure functions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from lrol.domain.enums import DURATION_UNIT_ALIASES, DurationUnit

DATETIME_PREFIX = "datetime("
NOW = "now"
QUOTES = "'\""
SIGNED_INTEGER = re.compile(r"[+-]?[0-9]+")


class DateTimeExpressionError(ValueError):
    """Raised when a datetime or duration expression is malformed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


@dataclass(frozen=True)
class Duration:
    value: int
    unit: DurationUnit


@dataclass(frozen=True)
class DateTimeExpression:
    """A parsed ``datetime(...)`` call: a base instant plus an optional offset."""

    timestamp: str | None = None
    offset: Duration | None = None

    @property
    def is_now(self) -> bool:
        return self.timestamp is None


def extract_references(text: str) -> list[str]:
    """
    Extract ``@name`` references from free text.

    Tokens are whitespace-delimited; each token starting with ``@`` yields the
    token without its leading ``@``. Trailing punctuation stays attached, so
    ``"@eval2,"`` yields ``"eval2,"``.

    Example:
        >>> extract_references("@base_check result * @ratio")
        ['base_check', 'ratio']
    """
    return [token[1:] for token in text.split() if token.startswith("@")]


def is_datetime_expression(text: str) -> bool:
    return text.startswith(DATETIME_PREFIX)


def _strip_quotes(text: str) -> str:
    return text.strip(QUOTES)


def parse_duration(text: str) -> Duration:
    """
    Parse a duration such as ``"-2 hours"`` or ``"'3 days'"``.

    Raises:
        DateTimeExpressionError: If the value or unit is not recognized
    """
    parts = _strip_quotes(text.strip()).split()

    if len(parts) != 2:
        raise DateTimeExpressionError(
            f"Invalid duration unit: duration must contain a number and a unit, got '{text}'"
        )

    raw_value, raw_unit = parts
    # int() alone would also take "1_000" and non-ASCII digits
    if not SIGNED_INTEGER.fullmatch(raw_value):
        raise DateTimeExpressionError(f"Invalid duration value '{raw_value}'")
    value = int(raw_value)

    unit = DURATION_UNIT_ALIASES.get(raw_unit.lower())
    if unit is None:
        raise DateTimeExpressionError(f"Invalid duration unit '{raw_unit}'")

    return Duration(value=value, unit=unit)


def parse_datetime_expression(text: str) -> DateTimeExpression:
    """
    Parse ``datetime(now)``, ``datetime('2024-01-01T00:00:00Z', '-2 hours')`` etc.

    Args:
        text: Raw operand text

    Returns:
        Parsed expression

    Raises:
        DateTimeExpressionError: With a human-readable reason on any failure
    """
    if not text.startswith(DATETIME_PREFIX) or not text.endswith(")"):
        raise DateTimeExpressionError("Invalid datetime function syntax")

    args = [arg.strip() for arg in text[len(DATETIME_PREFIX) : -1].split(",")]
    if len(args) > 2:
        raise DateTimeExpressionError("datetime() requires 1 or 2 arguments")

    base = args[0]
    if base == NOW:
        timestamp = None
    elif len(base) >= 2 and base[0] in QUOTES and base[-1] == base[0]:
        timestamp = base[1:-1]
    else:
        raise DateTimeExpressionError(
            f"Invalid first argument '{base}': expected now or a quoted timestamp"
        )

    offset = None
    if len(args) == 2:
        if not _strip_quotes(args[1]):
            raise DateTimeExpressionError("Empty duration string")
        offset = parse_duration(args[1])

    return DateTimeExpression(timestamp=timestamp, offset=offset)
