"""
Document parser for LROL rule models.

Composes the grammar primitives into the typed document tree
(``RuleModel`` → evaluations, actions, metadata).

Parsing is fail-fast: the first problem raises a ``ParserError`` subclass
carrying the line and column of the offending token. The parser only checks
well-formedness; completeness (non-empty ids, thresholds in range, at least
one evaluation and action) is left to the analyzer's schema pass, so missing
top-level fields default to empty values here.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from lrol.compiler.grammar import (
    GrammarError,
    Member,
    describe_value,
    expect_char,
    parse_members,
    parse_sequence,
    parse_string,
    parse_value,
    peek,
    position_of,
    skip_whitespace,
)
from lrol.core.errors import InvalidSyntaxError, InvalidValueError, MissingFieldError
from lrol.domain.enums import AggregationKind, EvaluationType, LogicalOperator
from lrol.domain.models import Action, Evaluation, Metadata, RuleModel

logger = logging.getLogger(__name__)

# Expected value variant for each recognized scalar top-level key
_STRING_FIELDS = ("model_id", "name", "description")
_METADATA_FIELDS = ("created_by", "created_at", "last_updated", "notes")

# Nesting depth of model field values and of evaluation / action objects
_FIELD_DEPTH = 1
_ELEMENT_DEPTH = 2

# Required fields per evaluation type (checked right after classification)
REQUIRED_FIELDS_BY_TYPE: dict[EvaluationType, tuple[str, ...]] = {
    EvaluationType.COMPARISON: ("left", "operator", "right"),
    EvaluationType.LOGICAL: ("operator", "operands"),
}

_EVALUATION_TYPE_NAMES = "|".join(t.value for t in EvaluationType)
_AGGREGATION_NAMES = "|".join(k.value for k in AggregationKind)
_LOGICAL_OPERATOR_NAMES = "|".join(o.value for o in LogicalOperator)


class DocumentParser:
    """
    Recursive-descent parser over one immutable document text.

    Example:
        >>> model = DocumentParser('{"model_id": "M1", "threshold": 0.5}').parse()
        >>> model.model_id, model.threshold
        ('M1', 0.5)
    """

    def __init__(self, text: str):
        self.text = text

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def _syntax_error(self, offset: int, message: str) -> InvalidSyntaxError:
        line, column = position_of(self.text, offset)
        return InvalidSyntaxError(line, column, message)

    def _invalid_value(
        self, field_name: str, expected: str, found: str, offset: int
    ) -> InvalidValueError:
        line, column = position_of(self.text, offset)
        return InvalidValueError(field_name, expected, found, line=line, column=column)

    def _missing_field(self, field_name: str, offset: int) -> MissingFieldError:
        line, column = position_of(self.text, offset)
        return MissingFieldError(field_name, line=line, column=column)

    def _require(self, member: Member, expected: type | tuple[type, ...], label: str) -> Any:
        """Return the member value if it matches ``expected``, else raise InvalidValueError."""
        value = member.value
        # bool is an int subclass; never let it satisfy a number check
        matches = isinstance(value, expected) and not (
            isinstance(value, bool) and label == "number"
        )
        if not matches:
            raise self._invalid_value(member.key, label, describe_value(value), member.value_offset)
        return value

    # -------------------------------------------------------------------------
    # Top level
    # -------------------------------------------------------------------------

    def parse(self) -> RuleModel:
        """
        Parse the whole document into a ``RuleModel``.

        Raises:
            InvalidSyntaxError: Text does not match the grammar
            InvalidValueError: A field holds the wrong kind of value
            MissingFieldError: An evaluation lacks a field its type requires
        """
        try:
            pos = skip_whitespace(self.text, 0)
            pos = expect_char(self.text, pos, "{", "at start of document")
            fields, pos = self._parse_model_fields(pos)
            pos = skip_whitespace(self.text, pos)
            pos = expect_char(self.text, pos, "}", "or ',' between model fields")
            pos = skip_whitespace(self.text, pos)
        except GrammarError as e:
            raise self._syntax_error(e.offset, e.message) from None

        if pos < len(self.text):
            raise self._syntax_error(pos, "Unexpected trailing content after document")

        model = RuleModel(**fields)
        logger.debug(
            "Parsed model %s: %d evaluations, %d actions",
            model.model_id or "<unnamed>",
            len(model.evaluations),
            len(model.actions),
        )
        return model

    def _parse_model_fields(self, pos: int) -> tuple[dict[str, Any], int]:
        """Parse ``"key": value`` pairs until no comma follows."""
        fields: dict[str, Any] = {}
        pos = skip_whitespace(self.text, pos)
        if peek(self.text, pos) == "}":
            return fields, pos

        while True:
            pos = skip_whitespace(self.text, pos)
            key_offset = pos
            key, pos = self._parse_key(pos)
            value_offset = pos

            if key == "evaluations":
                fields["evaluations"], pos = self._parse_object_array(
                    pos, key, self._build_evaluation
                )
            elif key == "actions":
                actions, pos = self._parse_object_array(pos, key, self._build_action)
                fields["actions"] = [action for action in actions if action is not None]
            elif key == "metadata":
                fields["metadata"], pos = self._parse_metadata(pos)
            else:
                value, pos = parse_value(self.text, pos, _FIELD_DEPTH)
                member = Member(key, value, key_offset, value_offset)
                if key in _STRING_FIELDS:
                    fields[key] = self._require(member, str, "string")
                elif key == "threshold":
                    fields[key] = float(self._require(member, (int, float), "number"))
                # Unknown keys are ignored for forward compatibility

            pos = skip_whitespace(self.text, pos)
            if peek(self.text, pos) != ",":
                return fields, pos
            pos += 1

    def _parse_key(self, pos: int) -> tuple[str, int]:
        if peek(self.text, pos) != '"':
            raise GrammarError(pos, "Expected quoted field name")
        key, pos = parse_string(self.text, pos)
        pos = skip_whitespace(self.text, pos)
        pos = expect_char(self.text, pos, ":", f"after field name '{key}'")
        return key, skip_whitespace(self.text, pos)

    def _parse_object_array(
        self, pos: int, field_name: str, builder: Callable[[list[Member], int], Any]
    ) -> tuple[list[Any], int]:
        """Parse ``[ {..}, {..} ]`` and hand each element's members to ``builder``."""

        def element(text: str, offset: int) -> tuple[Any, int]:
            if peek(text, offset) != "{":
                value, _ = parse_value(text, offset, _ELEMENT_DEPTH)
                raise self._invalid_value(field_name, "object", describe_value(value), offset)
            members, end = parse_members(text, offset, _ELEMENT_DEPTH)
            return builder(members, offset), end

        if peek(self.text, pos) != "[":
            value, _ = parse_value(self.text, pos, _FIELD_DEPTH)
            raise self._invalid_value(field_name, "array", describe_value(value), pos)
        return parse_sequence(self.text, pos, "[", "]", element)

    def _parse_metadata(self, pos: int) -> tuple[Metadata, int]:
        if peek(self.text, pos) != "{":
            value, _ = parse_value(self.text, pos, _FIELD_DEPTH)
            raise self._invalid_value("metadata", "object", describe_value(value), pos)

        members, pos = parse_members(self.text, pos, _FIELD_DEPTH)
        values = {
            member.key: self._require(member, str, "string")
            for member in members
            if member.key in _METADATA_FIELDS
        }
        return Metadata(**values), pos

    # -------------------------------------------------------------------------
    # Evaluations and actions
    # -------------------------------------------------------------------------

    def _build_evaluation(self, members: list[Member], offset: int) -> Evaluation:
        """
        Classify one evaluation object and enforce its structural invariant.

        Fields are scanned once; the declared ``type`` decides which fields are
        required. A logical evaluation's operator is checked against AND/OR here
        and again (advisory) by the analyzer.
        """
        values: dict[str, Any] = {}
        seen: dict[str, Member] = {}

        for member in members:
            key = member.key
            if key in ("name", "left", "operator"):
                values[key] = self._require(member, str, "string")
            elif key == "type":
                raw_type = self._require(member, str, "string")
                try:
                    values["evaluation_type"] = EvaluationType.from_name(raw_type)
                except ValueError:
                    raise self._invalid_value(
                        "type", _EVALUATION_TYPE_NAMES, raw_type, member.value_offset
                    ) from None
            elif key == "right":
                values["right"] = member.value
            elif key == "operands":
                values["operands"] = self._parse_operands(member)
            elif key == "weight":
                values["weight"] = int(self._require(member, (int, float), "number"))
            elif key == "aggregation":
                raw_kind = self._require(member, str, "string")
                try:
                    values["aggregation"] = AggregationKind.from_name(raw_kind)
                except ValueError:
                    raise self._invalid_value(
                        "aggregation", _AGGREGATION_NAMES, raw_kind, member.value_offset
                    ) from None
            else:
                continue
            seen[key] = member

        if "name" not in values:
            raise self._missing_field("name", offset)
        if "evaluation_type" not in values:
            raise self._missing_field("type", offset)

        evaluation_type = values["evaluation_type"]
        for required in REQUIRED_FIELDS_BY_TYPE.get(evaluation_type, ()):
            if required not in values:
                raise self._missing_field(required, offset)

        if evaluation_type is EvaluationType.LOGICAL:
            operator = values["operator"]
            if operator not in {o.value for o in LogicalOperator}:
                raise self._invalid_value(
                    "operator", _LOGICAL_OPERATOR_NAMES, operator, seen["operator"].value_offset
                )
            if not values["operands"]:
                raise self._invalid_value(
                    "operands", "non-empty array", "empty array", seen["operands"].value_offset
                )

        return Evaluation(**values)

    def _parse_operands(self, member: Member) -> list[str]:
        operands = self._require(member, list, "array")
        for operand in operands:
            if not isinstance(operand, str):
                raise self._invalid_value(
                    "operands", "array of strings", describe_value(operand), member.value_offset
                )
        return list(operands)

    def _build_action(self, members: list[Member], offset: int) -> Action | None:
        """Build an action; incomplete actions are dropped rather than rejected."""
        values = {
            member.key: member.value
            for member in members
            if member.key in ("type", "reason") and isinstance(member.value, str)
        }
        if "type" not in values or "reason" not in values:
            line, column = position_of(self.text, offset)
            logger.debug("Dropping incomplete action at line %d, column %d", line, column)
            return None
        return Action(action_type=values["type"], reason=values["reason"])


def parse_str(content: str) -> RuleModel:
    """Parse LROL content from a string."""
    return DocumentParser(content).parse()


def parse_file(path: str | Path) -> RuleModel:
    """
    Parse LROL content from a file.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not valid UTF-8
        ParserError: If the content is not a well-formed document
    """
    content = Path(path).read_text(encoding="utf-8")
    return parse_str(content)
