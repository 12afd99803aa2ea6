"""
Unit tests for validation orchestration.

Tests cover:
- String validation with merged parser/analyzer diagnostics
- File validation and its file-level failures
- Directory validation (filtering, ordering, per-file independence)
- Report rendering
"""

import json

import pytest
from conftest import document_text

from lrol.compiler.validator import RuleValidator, ValidationReport
from lrol.core.config import settings
from lrol.core.errors import (
    InvalidEncodingError,
    InvalidSyntaxError,
    InvalidThreshold,
    RuleFileNotFoundError,
    RuleFileReadError,
    ValidationErrors,
)
from lrol.core.observability import metrics


class TestValidateString:
    def test_valid_document(self, valid_text):
        report = RuleValidator().validate_with_report(valid_text)
        assert report.is_valid
        assert report.error_count == 0
        assert report.model.model_id == "M1"
        assert report.parser_error is None

    def test_parser_error_skips_analysis(self):
        report = RuleValidator().validate_with_report('{"model_id": }')
        assert not report.is_valid
        assert isinstance(report.parser_error, InvalidSyntaxError)
        assert report.model is None
        assert report.analyzer_errors == []
        assert report.error_count == 1

    def test_analyzer_errors_are_collected(self):
        report = RuleValidator().validate_with_report(document_text(threshold=1.5))
        assert report.parser_error is None
        assert [type(e) for e in report.analyzer_errors] == [InvalidThreshold]
        assert report.model is not None

    def test_validate_returns_model(self, valid_text):
        model = RuleValidator().validate(valid_text)
        assert model.name == "High value transfers"

    def test_validate_raises_with_report(self):
        with pytest.raises(ValidationErrors) as exc_info:
            RuleValidator().validate(document_text(threshold=1.5))
        assert exc_info.value.path == "<string>"
        assert exc_info.value.report.error_count == 1
        assert "Invalid threshold 1.5" in exc_info.value.message

    def test_repeated_validation_is_independent(self, valid_text):
        validator = RuleValidator()
        broken = document_text(
            evaluations=[
                {"name": "b", "type": "comparison", "left": "@large_amount", "operator": ">",
                 "right": 1}
            ]
        )
        assert validator.validate_with_report(valid_text).is_valid
        report = validator.validate_with_report(broken)
        assert [e.kind for e in report.analyzer_errors] == ["InvalidStringReference"]

    def test_long_dependency_chain(self):
        evaluations = [
            {"name": f"e{i}", "type": "logical", "operator": "AND", "operands": [f"e{i - 1}"]}
            for i in range(1499, 0, -1)
        ]
        evaluations.append(
            {"name": "e0", "type": "comparison", "left": "amount", "operator": ">", "right": 1}
        )
        report = RuleValidator().validate_with_report(document_text(evaluations=evaluations))
        assert report.is_valid
        assert len(report.model.evaluations) == 1500

    def test_deeply_nested_value_is_a_syntax_error(self):
        text = '{"model_id": "M", "extra": ' + "[" * 3000 + "]" * 3000 + "}"
        report = RuleValidator().validate_with_report(text)
        assert not report.is_valid
        assert isinstance(report.parser_error, InvalidSyntaxError)
        assert report.parser_error.reason == "Nesting too deep"


class TestReportRendering:
    def test_format_valid(self):
        report = ValidationReport(file_path="a.json")
        assert report.format_errors() == "File: a.json\nNo validation errors found."

    def test_format_analyzer_errors(self):
        report = RuleValidator().validate_with_report(
            document_text(threshold=1.5), file_path="rules/a.json"
        )
        assert report.format_errors().splitlines() == [
            "File: rules/a.json",
            "Analyzer Errors:",
            "1. Invalid threshold 1.5: Threshold must be between 0 and 1",
        ]

    def test_format_parser_error(self):
        report = RuleValidator().validate_with_report("{")
        text = report.format_errors()
        assert text.startswith("Parser Error: Syntax error at line 1, column 2:")

    def test_to_dict_is_json_serializable(self):
        report = RuleValidator().validate_with_report(document_text(threshold=1.5))
        data = json.loads(json.dumps(report.to_dict()))
        assert data["valid"] is False
        assert data["analyzer_errors"][0]["kind"] == "InvalidThreshold"
        assert data["model"]["model_id"] == "M1"

    def test_parser_error_to_dict(self):
        data = RuleValidator().validate_with_report('{"threshold": "x"}').to_dict()
        assert data["parser_error"]["kind"] == "InvalidValueError"
        assert data["parser_error"]["field"] == "threshold"
        assert data["parser_error"]["line"] == 1


class TestValidateFile:
    def test_valid_file(self, tmp_path, valid_text):
        path = tmp_path / "rule.json"
        path.write_text(valid_text, encoding="utf-8")
        report = RuleValidator().validate_file(path)
        assert report.is_valid
        assert report.file_path == str(path)

    def test_invalid_file_raises_validation_errors(self, tmp_path):
        path = tmp_path / "rule.json"
        path.write_text(document_text(threshold=1.5), encoding="utf-8")
        with pytest.raises(ValidationErrors) as exc_info:
            RuleValidator().validate_file(path)
        assert exc_info.value.path == str(path)
        assert exc_info.value.report.file_path == str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(RuleFileNotFoundError) as exc_info:
            RuleValidator().validate_file(tmp_path / "missing.json")
        assert "File not found" in exc_info.value.message

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "rule.json"
        path.write_bytes(b'{"model_id": "\xff\xfe"}')
        with pytest.raises(InvalidEncodingError):
            RuleValidator().validate_file(path)

    def test_directory_is_not_readable_as_file(self, tmp_path):
        with pytest.raises(RuleFileReadError):
            RuleValidator().validate_file(tmp_path)

    def test_size_limit(self, tmp_path, valid_text, monkeypatch):
        path = tmp_path / "rule.json"
        path.write_text(valid_text, encoding="utf-8")
        monkeypatch.setattr(settings, "max_rule_file_bytes", 10)
        with pytest.raises(RuleFileReadError) as exc_info:
            RuleValidator().validate_file(path)
        assert "limit is 10" in exc_info.value.message


class TestValidateDirectory:
    def test_only_rule_files_in_name_order(self, rules_dir):
        results = RuleValidator().validate_directory(rules_dir)
        assert [path for path, _ in results] == [
            str(rules_dir / "a_valid.json"),
            str(rules_dir / "b_invalid.json"),
        ]

    def test_each_file_is_independent(self, rules_dir):
        results = dict(RuleValidator().validate_directory(rules_dir))
        valid = results[str(rules_dir / "a_valid.json")]
        invalid = results[str(rules_dir / "b_invalid.json")]
        assert isinstance(valid, ValidationReport) and valid.is_valid
        assert isinstance(invalid, ValidationErrors)
        assert invalid.report.analyzer_errors[0].kind == "InvalidThreshold"

    def test_unreadable_file_is_reported_not_raised(self, rules_dir):
        (rules_dir / "c_binary.json").write_bytes(b"\xff\xff")
        results = dict(RuleValidator().validate_directory(rules_dir))
        assert isinstance(results[str(rules_dir / "c_binary.json")], InvalidEncodingError)

    def test_missing_directory_yields_nothing(self, tmp_path, caplog):
        with caplog.at_level("WARNING"):
            assert RuleValidator().validate_directory(tmp_path / "nope") == []
        assert "Cannot list directory" in caplog.text

    def test_empty_directory(self, tmp_path):
        assert RuleValidator().validate_directory(tmp_path) == []

    def test_configured_extension(self, rules_dir, monkeypatch):
        (rules_dir / "d.lrol").write_text(document_text(), encoding="utf-8")
        monkeypatch.setattr(settings, "rule_file_extension", ".lrol")
        results = RuleValidator().validate_directory(rules_dir)
        assert [path for path, _ in results] == [str(rules_dir / "d.lrol")]


class TestValidationMetrics:
    def _sample(self, name, labels):
        return metrics.registry.get_sample_value(name, labels) or 0.0

    def test_outcomes_are_counted(self, valid_text):
        valid_before = self._sample("lrol_validations_total", {"status": "valid"})
        invalid_before = self._sample("lrol_validations_total", {"status": "invalid"})
        threshold_before = self._sample("lrol_analyzer_errors_total", {"kind": "InvalidThreshold"})

        validator = RuleValidator()
        validator.validate_with_report(valid_text)
        validator.validate_with_report(document_text(threshold=1.5))

        assert self._sample("lrol_validations_total", {"status": "valid"}) == valid_before + 1
        assert self._sample("lrol_validations_total", {"status": "invalid"}) == invalid_before + 1
        assert (
            self._sample("lrol_analyzer_errors_total", {"kind": "InvalidThreshold"})
            == threshold_before + 1
        )

    def test_parser_failures_are_counted(self):
        before = self._sample("lrol_parser_errors_total", {"kind": "InvalidSyntaxError"})
        RuleValidator().validate_with_report("not a document")
        after = self._sample("lrol_parser_errors_total", {"kind": "InvalidSyntaxError"})
        assert after == before + 1

    def test_disabled_metrics_are_not_recorded(self, valid_text, monkeypatch):
        monkeypatch.setattr(settings, "metrics_enabled", False)
        before = self._sample("lrol_validations_total", {"status": "valid"})
        RuleValidator().validate_with_report(valid_text)
        assert self._sample("lrol_validations_total", {"status": "valid"}) == before
