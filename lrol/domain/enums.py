"""
Domain enums for the LROL rule language.

These enums provide type-safe representations of the fixed vocabularies of
the language and are used by the parser and analyzer for classification.
"""

from __future__ import annotations

from enum import Enum


class EvaluationType(str, Enum):
    """Kind of evaluation - matches the ``type`` key of an evaluation object."""

    COMPARISON = "comparison"
    LOGICAL = "logical"
    AGGREGATION = "aggregation"
    TIME_BASED = "time-based"
    CONDITIONAL = "conditional"

    @classmethod
    def from_name(cls, value: str) -> EvaluationType:
        """Case-insensitive lookup; raises ValueError for unknown names."""
        return cls(value.lower())


class LogicalOperator(str, Enum):
    """Operators allowed on logical evaluations."""

    AND = "AND"
    OR = "OR"


class ComparisonOperator(str, Enum):
    """Operators allowed on comparison evaluations."""

    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "=="
    NE = "!="
    IN = "IN"
    NOT_IN = "NOT IN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"


class AggregationKind(str, Enum):
    """Aggregation function applied by aggregation evaluations."""

    SUM = "sum"
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    DISTINCT_COUNT = "distinct_count"

    @classmethod
    def from_name(cls, value: str) -> AggregationKind:
        """Case-insensitive lookup; raises ValueError for unknown names."""
        return cls(value.lower())


class DurationUnit(str, Enum):
    """Units accepted in ``datetime(...)`` duration offsets."""

    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


# Spellings accepted for each duration unit (matched case-insensitively)
DURATION_UNIT_ALIASES = {
    "minute": DurationUnit.MINUTES,
    "minutes": DurationUnit.MINUTES,
    "min": DurationUnit.MINUTES,
    "mins": DurationUnit.MINUTES,
    "hour": DurationUnit.HOURS,
    "hours": DurationUnit.HOURS,
    "hr": DurationUnit.HOURS,
    "hrs": DurationUnit.HOURS,
    "day": DurationUnit.DAYS,
    "days": DurationUnit.DAYS,
    "week": DurationUnit.WEEKS,
    "weeks": DurationUnit.WEEKS,
    "month": DurationUnit.MONTHS,
    "months": DurationUnit.MONTHS,
    "year": DurationUnit.YEARS,
    "years": DurationUnit.YEARS,
}
