"""
Unit tests for the document parser.

Tests cover:
- Building the typed model from well-formed text
- Located syntax errors (missing commas, trailing content, bad tokens)
- Field shape errors (InvalidValueError) and per-type required fields
- Lenient handling: unknown keys, incomplete actions, defaults
"""

import json

import pytest
from conftest import VALID_DOCUMENT, document_text

from lrol.compiler.parser import DocumentParser, parse_file, parse_str
from lrol.core.errors import (
    InvalidSyntaxError,
    InvalidValueError,
    MissingFieldError,
    ParserError,
)
from lrol.domain.enums import AggregationKind, EvaluationType


def with_evaluations(*evaluations: dict) -> str:
    return document_text(evaluations=list(evaluations))


class TestWellFormedDocuments:
    def test_parses_full_document(self, valid_text):
        model = parse_str(valid_text)

        assert model.model_id == "M1"
        assert model.name == "High value transfers"
        assert model.threshold == 0.9
        assert [e.name for e in model.evaluations] == ["large_amount", "recent", "combined"]
        assert model.evaluations[0].evaluation_type is EvaluationType.COMPARISON
        assert model.evaluations[0].right == 100.0
        assert model.evaluations[0].weight == 3
        assert model.evaluations[2].operands == ["large_amount", "recent"]
        assert model.actions[0].action_type == "flag_transaction"
        assert model.metadata.created_by == "risk-team"
        assert model.metadata.last_updated is None

    def test_compact_single_line_document(self):
        text = (
            '{"model_id":"M1","name":"N","threshold":0.9,"evaluations":[{"name":"a",'
            '"type":"comparison","left":"amt","operator":">","right":100,"weight":3}],'
            '"actions":[{"type":"flag","reason":"r"}]}'
        )
        model = DocumentParser(text).parse()
        assert model.evaluations[0].left == "amt"
        assert model.actions[0].reason == "r"

    def test_missing_top_level_fields_default(self):
        model = parse_str("{}")
        assert model.model_id == ""
        assert model.name == ""
        assert model.threshold == 0.0
        assert model.evaluations == []
        assert model.actions == []
        assert model.metadata is None

    def test_unknown_keys_are_ignored(self):
        model = parse_str(document_text(version="2", tags=["a", "b"]))
        assert model.model_id == "M1"

    def test_type_is_case_insensitive(self):
        model = parse_str(
            with_evaluations(
                {"name": "a", "type": "COMPARISON", "left": "x", "operator": ">", "right": 1}
            )
        )
        assert model.evaluations[0].evaluation_type is EvaluationType.COMPARISON

    def test_right_keeps_its_variant(self):
        model = parse_str(
            with_evaluations(
                {"name": "s", "type": "comparison", "left": "x", "operator": "==", "right": "v"},
                {"name": "b", "type": "comparison", "left": "x", "operator": "==", "right": True},
                {
                    "name": "l",
                    "type": "comparison",
                    "left": "x",
                    "operator": "IN",
                    "right": ["US", "CA"],
                },
            )
        )
        rights = [e.right for e in model.evaluations]
        assert rights == ["v", True, ["US", "CA"]]
        assert isinstance(rights[1], bool)

    def test_fractional_weight_is_truncated(self):
        model = parse_str(
            with_evaluations(
                {
                    "name": "a",
                    "type": "comparison",
                    "left": "x",
                    "operator": ">",
                    "right": 1,
                    "weight": 2.9,
                }
            )
        )
        assert model.evaluations[0].weight == 2

    def test_aggregation_kind(self):
        model = parse_str(
            with_evaluations({"name": "agg", "type": "aggregation", "aggregation": "SUM"})
        )
        assert model.evaluations[0].aggregation is AggregationKind.SUM

    def test_time_based_and_conditional_have_no_required_fields(self):
        model = parse_str(
            with_evaluations(
                {"name": "t", "type": "time-based"},
                {"name": "c", "type": "conditional"},
            )
        )
        assert [e.evaluation_type for e in model.evaluations] == [
            EvaluationType.TIME_BASED,
            EvaluationType.CONDITIONAL,
        ]

    def test_incomplete_actions_are_dropped(self):
        model = parse_str(
            document_text(
                actions=[
                    {"type": "flag"},
                    {"reason": "no type"},
                    {"type": "block", "reason": 5},
                    {"type": "alert", "reason": "ok"},
                ]
            )
        )
        assert [a.action_type for a in model.actions] == ["alert"]

    def test_empty_strings_are_accepted(self):
        model = parse_str(document_text(model_id="", name=""))
        assert model.model_id == ""


class TestSyntaxErrors:
    def test_missing_comma_reports_position(self):
        text = '{\n  "model_id": "M1"\n  "name": "N"\n}'
        with pytest.raises(InvalidSyntaxError) as exc_info:
            parse_str(text)
        error = exc_info.value
        assert (error.line, error.column) == (3, 3)
        assert str(error).startswith("Syntax error at line 3, column 3:")

    def test_trailing_content(self):
        with pytest.raises(InvalidSyntaxError) as exc_info:
            parse_str('{"model_id": "M1"} extra')
        assert exc_info.value.column == 20
        assert "trailing" in exc_info.value.reason

    def test_trailing_whitespace_is_fine(self):
        assert parse_str('{"model_id": "M1"}\n\n  ').model_id == "M1"

    def test_not_an_object(self):
        with pytest.raises(InvalidSyntaxError) as exc_info:
            parse_str("[1, 2]")
        assert (exc_info.value.line, exc_info.value.column) == (1, 1)

    def test_empty_input(self):
        with pytest.raises(InvalidSyntaxError):
            parse_str("")

    def test_trailing_comma_in_evaluations(self):
        text = document_text().replace('"weight": 5\n    }\n  ]', '"weight": 5\n    },\n  ]')
        assert text != document_text()
        with pytest.raises(InvalidSyntaxError):
            parse_str(text)

    def test_unterminated_string(self):
        with pytest.raises(InvalidSyntaxError) as exc_info:
            parse_str('{"model_id": "M1}')
        assert "Unterminated" in exc_info.value.reason

    def test_null_is_not_a_value(self):
        with pytest.raises(InvalidSyntaxError) as exc_info:
            parse_str('{"description": null}')
        assert exc_info.value.reason == "Unexpected character: 'n'"

    def test_deeply_nested_value(self):
        text = '{"model_id": "M", "extra": ' + "[" * 3000 + "]" * 3000 + "}"
        with pytest.raises(InvalidSyntaxError) as exc_info:
            parse_str(text)
        assert exc_info.value.reason == "Nesting too deep"
        assert exc_info.value.line == 1

    def test_moderate_nesting_in_ignored_key(self):
        text = '{"model_id": "M", "extra": ' + "[" * 60 + "]" * 60 + "}"
        assert parse_str(text).model_id == "M"


class TestFieldErrors:
    def test_threshold_must_be_number(self):
        text = '{"model_id": "M1", "threshold": "high"}'
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str(text)
        error = exc_info.value
        assert error.field == "threshold"
        assert error.expected == "number"
        assert error.found == "string"
        assert error.column == text.index('"high"') + 1

    def test_model_id_must_be_string(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str('{"model_id": 12}')
        assert exc_info.value.found == "number"

    def test_boolean_is_not_a_number(self):
        with pytest.raises(InvalidValueError):
            parse_str('{"threshold": true}')

    def test_evaluations_must_be_array(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str('{"evaluations": {"name": "a"}}')
        assert exc_info.value.field == "evaluations"
        assert exc_info.value.found == "object"

    def test_evaluation_elements_must_be_objects(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str('{"evaluations": ["a"]}')
        assert exc_info.value.expected == "object"

    def test_action_elements_must_be_objects(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str('{"actions": [true]}')
        assert exc_info.value.field == "actions"

    def test_unknown_evaluation_type(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str(with_evaluations({"name": "a", "type": "fuzzy"}))
        assert exc_info.value.field == "type"
        assert exc_info.value.found == "fuzzy"

    def test_unknown_aggregation(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str(
                with_evaluations({"name": "a", "type": "aggregation", "aggregation": "median"})
            )
        assert exc_info.value.field == "aggregation"

    def test_logical_operator_must_be_and_or(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str(
                with_evaluations(
                    {"name": "a", "type": "logical", "operator": "XOR", "operands": ["b"]}
                )
            )
        assert exc_info.value.field == "operator"
        assert exc_info.value.found == "XOR"

    def test_logical_operands_must_not_be_empty(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str(
                with_evaluations({"name": "a", "type": "logical", "operator": "OR", "operands": []})
            )
        assert exc_info.value.field == "operands"

    def test_operands_must_be_strings(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str(
                with_evaluations(
                    {"name": "a", "type": "logical", "operator": "OR", "operands": ["b", 1]}
                )
            )
        assert exc_info.value.expected == "array of strings"

    def test_metadata_values_must_be_strings(self):
        with pytest.raises(InvalidValueError) as exc_info:
            parse_str('{"metadata": {"created_at": 2024}}')
        assert exc_info.value.field == "created_at"


class TestRequiredFields:
    @pytest.mark.parametrize("missing", ["left", "operator", "right"])
    def test_comparison_fields(self, missing):
        evaluation = {"name": "a", "type": "comparison", "left": "x", "operator": ">", "right": 1}
        del evaluation[missing]
        with pytest.raises(MissingFieldError) as exc_info:
            parse_str(with_evaluations(evaluation))
        assert exc_info.value.field == missing

    @pytest.mark.parametrize("missing", ["operator", "operands"])
    def test_logical_fields(self, missing):
        evaluation = {"name": "a", "type": "logical", "operator": "AND", "operands": ["b"]}
        del evaluation[missing]
        with pytest.raises(MissingFieldError) as exc_info:
            parse_str(with_evaluations(evaluation))
        assert exc_info.value.field == missing

    def test_name_and_type_are_always_required(self):
        with pytest.raises(MissingFieldError) as exc_info:
            parse_str(with_evaluations({"type": "conditional"}))
        assert exc_info.value.field == "name"

        with pytest.raises(MissingFieldError) as exc_info:
            parse_str(with_evaluations({"name": "a"}))
        assert exc_info.value.field == "type"

    def test_missing_field_is_located_at_evaluation(self):
        text = '{"evaluations": [\n  {"name": "a", "type": "logical", "operator": "AND"}\n]}'
        with pytest.raises(MissingFieldError) as exc_info:
            parse_str(text)
        assert (exc_info.value.line, exc_info.value.column) == (2, 3)
        assert "line 2, column 3" in str(exc_info.value)


class TestParseFile:
    def test_reads_utf8_file(self, tmp_path):
        path = tmp_path / "rule.json"
        path.write_text(json.dumps(VALID_DOCUMENT), encoding="utf-8")
        assert parse_file(path).model_id == "M1"

    def test_missing_file_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            parse_file(tmp_path / "nope.json")

    def test_errors_are_parser_errors(self):
        with pytest.raises(ParserError) as exc_info:
            parse_str("{")
        assert exc_info.value.to_dict()["kind"] == "InvalidSyntaxError"
