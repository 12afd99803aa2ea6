"""
Command-line entry point for the LROL parser and validator.

Usage:
    lrol parse --file rules/high_value.json [--output json]
    lrol validate --file rules/high_value.json [--verbose]
    lrol validate --file rules/            (every *.json in the directory)
    lrol analyze --file rules/high_value.json [--output json]

Exit status is 0 when every document is valid and 1 otherwise.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from lrol import __version__
from lrol.compiler.insights import AnalysisReport, analyze_model
from lrol.compiler.parser import parse_file
from lrol.compiler.validator import RuleValidator, ValidationReport
from lrol.core.config import settings
from lrol.core.errors import FileValidationError, ParserError, ValidationErrors
from lrol.core.observability import (
    configure_plain_logging,
    configure_structured_logging,
    metrics,
)
from lrol.domain.models import RuleModel


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="lrol",
        description="LROL (risk orchestration rules language) parser and validator",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Override LROL_APP_LOG_LEVEL (default: {settings.app_log_level})",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Print Prometheus metrics for this run to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse a rule file and display its contents")
    parse_cmd.add_argument("-f", "--file", type=Path, required=True, help="Rule file")
    parse_cmd.add_argument("-o", "--output", choices=("text", "json"), default="text")
    parse_cmd.add_argument("-v", "--verbose", action="store_true")

    validate_cmd = subparsers.add_parser(
        "validate", help="Validate a rule file (or every rule file in a directory)"
    )
    validate_cmd.add_argument(
        "-f", "--file", type=Path, required=True, help="Rule file or directory"
    )
    validate_cmd.add_argument("-o", "--output", choices=("text", "json"), default="text")
    validate_cmd.add_argument("-v", "--verbose", action="store_true")

    analyze_cmd = subparsers.add_parser(
        "analyze", help="Validate a rule file and report structural insights"
    )
    analyze_cmd.add_argument("-f", "--file", type=Path, required=True, help="Rule file")
    analyze_cmd.add_argument("-o", "--output", choices=("text", "json"), default="text")
    analyze_cmd.add_argument("-v", "--verbose", action="store_true")

    return parser.parse_args(argv)


# =============================================================================
# Rendering
# =============================================================================


def _print_json(obj: object) -> None:
    # Sorted keys keep repeated runs byte-identical
    print(json.dumps(obj, sort_keys=True, indent=2, ensure_ascii=False))


def _print_model_summary(model: RuleModel, verbose: bool) -> None:
    print(f"Model: {model.model_id} - {model.name}")
    if model.description:
        print(f"  Description: {model.description}")
    print(f"  Threshold: {model.threshold}")
    print(f"  Evaluations: {len(model.evaluations)}")
    for evaluation in model.evaluations:
        line = f"    - {evaluation.name} ({evaluation.evaluation_type.value})"
        if evaluation.weight is not None:
            line += f" weight={evaluation.weight}"
        print(line)
        if verbose:
            if evaluation.operands:
                print(f"        {evaluation.operator} {', '.join(evaluation.operands)}")
            elif evaluation.left is not None:
                print(f"        {evaluation.left} {evaluation.operator} {evaluation.right!r}")
    print(f"  Actions: {len(model.actions)}")
    for action in model.actions:
        print(f"    - {action.action_type}: {action.reason}")


def _print_report(report: ValidationReport, verbose: bool) -> None:
    label = report.file_path or "<input>"
    if report.is_valid:
        print(f"✓ {label} is valid")
        if verbose and report.model is not None:
            _print_model_summary(report.model, verbose=False)
        return

    print(f"✗ {label} has {report.error_count} error(s)")
    if report.parser_error is not None:
        print(f"  Parser Error: {report.parser_error}")
    for i, error in enumerate(report.analyzer_errors, start=1):
        print(f"  {i}. {error.message}")
        if verbose:
            print(f"     [{error.kind}]")


def _print_analysis(report: AnalysisReport, verbose: bool) -> None:
    summary = report.summary
    print("Analysis Summary:")
    print(f"  Total Evaluations: {summary.total_evaluations}")
    print("  Evaluation Types:")
    for eval_type, count in summary.evaluation_types.items():
        print(f"    {eval_type}: {count}")
    print(f"  Max Dependency Depth: {summary.max_evaluation_depth}")
    print(f"  Complexity Score: {summary.complexity_score:.2f}")

    if report.warnings:
        print("\nWarnings:")
        for warning in report.warnings:
            print(f"  {warning.severity.value} [{warning.category.value}] {warning.message}")
            if verbose:
                print(f"    Context: {warning.context}")

    if report.suggestions:
        print("\nSuggestions:")
        for suggestion in report.suggestions:
            print(f"  • {suggestion}")

    if verbose:
        print("\nDependency Graph:")
        for name, dependencies in report.details.evaluation_dependencies.items():
            print(f"    {name} -> {', '.join(dependencies)}")
        if report.details.datetime_expressions:
            print("\nDateTime Expressions:")
            for expression in report.details.datetime_expressions:
                print(f"    • {expression}")


# =============================================================================
# Commands
# =============================================================================


def handle_parse(args: argparse.Namespace) -> int:
    try:
        model = parse_file(args.file)
    except ParserError as e:
        print(f"✗ {args.file}: {e}")
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"✗ Failed to read {args.file}: {e}")
        return 1

    if args.output == "json":
        _print_json(model.model_dump(mode="json"))
    else:
        _print_model_summary(model, args.verbose)
    return 0


def _validate_one(validator: RuleValidator, path: Path) -> ValidationReport | FileValidationError:
    try:
        return validator.validate_file(path)
    except FileValidationError as e:
        return e


def handle_validate(args: argparse.Namespace) -> int:
    validator = RuleValidator()
    if args.file.is_dir():
        outcomes = validator.validate_directory(args.file)
    else:
        outcomes = [(str(args.file), _validate_one(validator, args.file))]

    reports = []
    for path, outcome in outcomes:
        if isinstance(outcome, ValidationErrors):
            reports.append(outcome.report)
        elif isinstance(outcome, FileValidationError):
            reports.append(None)
            if args.output == "text":
                print(f"✗ {outcome.message}")
            continue
        else:
            reports.append(outcome)
        if args.output == "text":
            _print_report(reports[-1], args.verbose)

    if args.output == "json":
        payload = [
            report.to_dict()
            if report is not None
            else {"file_path": path, "valid": False, "error": outcome.details}
            for (path, outcome), report in zip(outcomes, reports, strict=True)
        ]
        _print_json(payload)

    all_valid = bool(outcomes) and all(report is not None and report.is_valid for report in reports)
    return 0 if all_valid else 1


def handle_analyze(args: argparse.Namespace) -> int:
    validator = RuleValidator()
    outcome = _validate_one(validator, args.file)
    if isinstance(outcome, FileValidationError):
        print(f"✗ Failed to analyze file: {outcome.message}")
        return 1

    analysis = analyze_model(outcome.model, str(args.file))
    if args.output == "json":
        _print_json(analysis.model_dump(mode="json"))
    else:
        _print_analysis(analysis, args.verbose)
    return 0


COMMANDS = {
    "parse": handle_parse,
    "validate": handle_validate,
    "analyze": handle_analyze,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    level = args.log_level or settings.app_log_level
    if settings.observability_structured_logs:
        configure_structured_logging(level)
    else:
        configure_plain_logging(level)

    exit_code = COMMANDS[args.command](args)

    if args.metrics:
        sys.stderr.write(metrics.render().decode("utf-8"))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
