"""
Semantic analysis for parsed LROL rule models.

Validates that a ``RuleModel`` is complete and internally consistent:
- Schema: required model fields, threshold range, operator/type vocabularies,
  weight range, action and metadata well-formedness
- Evaluation names are unique
- Type-specific structure, ``@name`` references and ``datetime(...)`` operands
- The dependency graph between evaluations is acyclic

Unlike parsing, analysis never stops early: every pass runs and every
violated rule is reported in one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime

from lrol.compiler.expressions import (
    DateTimeExpressionError,
    extract_references,
    is_datetime_expression,
    parse_datetime_expression,
)
from lrol.core.errors import (
    AnalysisError,
    AnalyzerError,
    CircularDependency,
    DuplicateEvaluationName,
    EmptyOperands,
    InvalidActionType,
    InvalidComparisonOperator,
    InvalidDateTimeExpression,
    InvalidEvaluationType,
    InvalidLogicalOperator,
    InvalidMetadataFormat,
    InvalidStringReference,
    InvalidThreshold,
    InvalidWeight,
    InvalidWeightRange,
    MissingActionReason,
    MissingOperandReference,
    MissingRequiredField,
    MissingRequiredSchemaField,
)
from lrol.domain.enums import ComparisonOperator, EvaluationType, LogicalOperator
from lrol.domain.models import Action, Evaluation, Metadata, RuleModel

logger = logging.getLogger(__name__)

MIN_WEIGHT = 1
MAX_WEIGHT = 5
MIN_THRESHOLD = 0.0
MAX_THRESHOLD = 1.0


@dataclass(frozen=True)
class SchemaVocabulary:
    """
    Fixed vocabularies consulted by the schema and structural passes.

    Built once per analyzer instance and passed by reference into each pass.
    """

    evaluation_types: frozenset[str] = field(
        default_factory=lambda: frozenset(t.value for t in EvaluationType)
    )
    comparison_operators: frozenset[str] = field(
        default_factory=lambda: frozenset(o.value for o in ComparisonOperator)
    )
    logical_operators: frozenset[str] = field(
        default_factory=lambda: frozenset(o.value for o in LogicalOperator)
    )


def is_valid_timestamp(value: str) -> bool:
    """
    Check that ``value`` is an absolute calendar timestamp.

    Accepts ISO 8601 / RFC 3339 (``2024-01-01T12:00:00Z``, ``2024-01-01``) and
    RFC 2822 (``Mon, 01 Jan 2024 12:00:00 +0000``).
    """
    text = value.strip()
    if not text:
        return False
    try:
        datetime.fromisoformat(text)
        return True
    except ValueError:
        pass
    try:
        parsedate_to_datetime(text)
        return True
    except (TypeError, ValueError, IndexError):
        return False


def _weight_out_of_range(weight: int | None) -> bool:
    return weight is not None and not MIN_WEIGHT <= weight <= MAX_WEIGHT


class RuleAnalyzer:
    """
    Multi-pass semantic validator for one ``RuleModel`` at a time.

    ``evaluation_names`` and ``dependency_graph`` reflect the most recent
    ``analyze`` call; each call replaces them.

    Example:
        >>> analyzer = RuleAnalyzer()
        >>> analyzer.collect_errors(model)   # [] when the model is valid
        >>> analyzer.analyze(model)          # raises AnalysisError otherwise
    """

    def __init__(self, vocabulary: SchemaVocabulary | None = None):
        self.vocabulary = vocabulary or SchemaVocabulary()
        self.evaluation_names: set[str] = set()
        self.dependency_graph: dict[str, list[str]] = {}

    def analyze(self, model: RuleModel) -> None:
        """
        Run every pass over ``model``.

        Raises:
            AnalysisError: With the complete list of diagnostics, if any
        """
        errors = self.collect_errors(model)
        if errors:
            raise AnalysisError(errors)

    def collect_errors(self, model: RuleModel) -> list[AnalyzerError]:
        """Run every pass over ``model`` and return all diagnostics in pass order."""
        errors: list[AnalyzerError] = []
        self.evaluation_names = set()
        self.dependency_graph = {}

        self._validate_schema(model, errors)
        self._collect_names(model, errors)

        for evaluation in model.evaluations:
            self._validate_evaluation(evaluation, errors)

        self.dependency_graph = build_dependency_graph(model.evaluations)

        cycle = self._check_circular_dependencies()
        if cycle is not None:
            errors.append(cycle)

        logger.debug(
            "Analyzed model %s: %d evaluations, %d graph nodes, %d errors",
            model.model_id or "<unnamed>",
            len(model.evaluations),
            len(self.dependency_graph),
            len(errors),
        )
        return errors

    # -------------------------------------------------------------------------
    # Pass 1: schema
    # -------------------------------------------------------------------------

    def _validate_schema(self, model: RuleModel, errors: list[AnalyzerError]) -> None:
        self._validate_model_requirements(model, errors)

        for evaluation in model.evaluations:
            self._validate_evaluation_schema(evaluation, errors)

        for action in model.actions:
            self._validate_action_schema(action, errors)

        if model.metadata is not None:
            self._validate_metadata_schema(model.metadata, errors)

    def _validate_model_requirements(self, model: RuleModel, errors: list[AnalyzerError]) -> None:
        if not model.model_id:
            errors.append(MissingRequiredSchemaField(field="model_id"))
        if not model.name:
            errors.append(MissingRequiredSchemaField(field="name"))

        if not MIN_THRESHOLD <= model.threshold <= MAX_THRESHOLD:
            errors.append(
                InvalidThreshold(
                    value=model.threshold, reason="Threshold must be between 0 and 1"
                )
            )

        if not model.evaluations:
            errors.append(MissingRequiredSchemaField(field="evaluations"))
        if not model.actions:
            errors.append(MissingRequiredSchemaField(field="actions"))

    def _validate_evaluation_schema(
        self, evaluation: Evaluation, errors: list[AnalyzerError]
    ) -> None:
        eval_type = getattr(evaluation.evaluation_type, "value", str(evaluation.evaluation_type))
        if eval_type not in self.vocabulary.evaluation_types:
            errors.append(
                InvalidEvaluationType(evaluation_name=evaluation.name, found_type=eval_type)
            )

        operator = evaluation.operator
        if operator is not None:
            if eval_type == EvaluationType.COMPARISON.value:
                if operator not in self.vocabulary.comparison_operators:
                    errors.append(
                        InvalidComparisonOperator(
                            evaluation_name=evaluation.name, operator=operator
                        )
                    )
            elif eval_type == EvaluationType.LOGICAL.value:
                if operator not in self.vocabulary.logical_operators:
                    errors.append(
                        InvalidLogicalOperator(evaluation_name=evaluation.name, operator=operator)
                    )

        if _weight_out_of_range(evaluation.weight):
            errors.append(
                InvalidWeightRange(evaluation_name=evaluation.name, weight=evaluation.weight)
            )

    def _validate_action_schema(self, action: Action, errors: list[AnalyzerError]) -> None:
        if not action.action_type.strip():
            errors.append(InvalidActionType(action_type=action.action_type))
        if not action.reason.strip():
            errors.append(MissingActionReason(action_type=action.action_type))

    def _validate_metadata_schema(self, metadata: Metadata, errors: list[AnalyzerError]) -> None:
        for field_name in ("created_at", "last_updated"):
            value = getattr(metadata, field_name)
            if value is not None and not is_valid_timestamp(value):
                errors.append(
                    InvalidMetadataFormat(
                        field=field_name, reason=f"Invalid datetime format: '{value}'"
                    )
                )

    # -------------------------------------------------------------------------
    # Pass 2: name uniqueness
    # -------------------------------------------------------------------------

    def _collect_names(self, model: RuleModel, errors: list[AnalyzerError]) -> None:
        for evaluation in model.evaluations:
            if evaluation.name in self.evaluation_names:
                errors.append(DuplicateEvaluationName(evaluation_name=evaluation.name))
            else:
                self.evaluation_names.add(evaluation.name)

    # -------------------------------------------------------------------------
    # Pass 3: structure and references
    # -------------------------------------------------------------------------

    def _validate_evaluation(self, evaluation: Evaluation, errors: list[AnalyzerError]) -> None:
        self._validate_datetime_expressions(evaluation, errors)
        self._validate_string_references(evaluation, errors)

        # Checked twice: an out-of-range weight yields two InvalidWeight entries
        for _ in range(2):
            if _weight_out_of_range(evaluation.weight):
                errors.append(
                    InvalidWeight(evaluation_name=evaluation.name, weight=evaluation.weight)
                )

        if evaluation.evaluation_type == EvaluationType.LOGICAL:
            self._validate_logical(evaluation, errors)
        elif evaluation.evaluation_type == EvaluationType.COMPARISON:
            for field_name in ("left", "operator", "right"):
                if getattr(evaluation, field_name) is None:
                    errors.append(
                        MissingRequiredField(
                            evaluation_name=evaluation.name, field_name=field_name
                        )
                    )

        for operand in evaluation.operands or ():
            if operand not in self.evaluation_names:
                errors.append(
                    MissingOperandReference(
                        evaluation_name=evaluation.name, missing_operand=operand
                    )
                )

    def _validate_logical(self, evaluation: Evaluation, errors: list[AnalyzerError]) -> None:
        if evaluation.operator is None:
            errors.append(
                MissingRequiredField(evaluation_name=evaluation.name, field_name="operator")
            )
        elif evaluation.operator not in self.vocabulary.logical_operators:
            errors.append(
                InvalidLogicalOperator(
                    evaluation_name=evaluation.name, operator=evaluation.operator
                )
            )

        if evaluation.operands is None:
            errors.append(
                MissingRequiredField(evaluation_name=evaluation.name, field_name="operands")
            )
        elif not evaluation.operands:
            errors.append(EmptyOperands(evaluation_name=evaluation.name))

    def _validate_string_references(
        self, evaluation: Evaluation, errors: list[AnalyzerError]
    ) -> None:
        for field_name, text in evaluation.string_fields():
            for reference in extract_references(text):
                if reference not in self.evaluation_names:
                    errors.append(
                        InvalidStringReference(
                            evaluation_name=evaluation.name,
                            field_name=field_name,
                            reference=reference,
                        )
                    )

    def _validate_datetime_expressions(
        self, evaluation: Evaluation, errors: list[AnalyzerError]
    ) -> None:
        for field_name, text in evaluation.string_fields():
            if not is_datetime_expression(text):
                continue
            try:
                parse_datetime_expression(text)
            except DateTimeExpressionError as e:
                errors.append(
                    InvalidDateTimeExpression(
                        evaluation_name=evaluation.name,
                        field_name=field_name,
                        expression=text,
                        reason=e.reason,
                    )
                )

    # -------------------------------------------------------------------------
    # Pass 5: cycle detection
    # -------------------------------------------------------------------------

    def _check_circular_dependencies(self) -> CircularDependency | None:
        """Report the first cycle found, starting from graph keys in declaration order."""
        visited: set[str] = set()

        for start_node in self.dependency_graph:
            if start_node in visited:
                continue
            cycle = self._detect_cycle(start_node, visited)
            if cycle is not None:
                logger.info("Circular dependency from %s: %s", start_node, " -> ".join(cycle))
                return CircularDependency(
                    evaluation_name=start_node, dependency_chain=tuple(cycle)
                )
        return None

    def _detect_cycle(self, start_node: str, visited: set[str]) -> list[str] | None:
        """
        Depth-first walk from ``start_node`` with an explicit stack.

        ``path`` holds the current chain and ``pending`` the unexplored
        dependencies of each node on it. Reaching a node already on the path
        closes a cycle, reported as the path slice from that node onwards.
        """
        path = [start_node]
        on_path = {start_node}
        pending = [iter(self.dependency_graph.get(start_node, ()))]
        visited.add(start_node)

        while pending:
            dependency = next(pending[-1], None)
            if dependency is None:
                pending.pop()
                on_path.discard(path.pop())
                continue
            if dependency in on_path:
                return path[path.index(dependency) :]
            if dependency in visited:
                continue

            visited.add(dependency)
            path.append(dependency)
            on_path.add(dependency)
            pending.append(iter(self.dependency_graph.get(dependency, ())))

        return None


# -----------------------------------------------------------------------------
# Pass 4: dependency graph
# -----------------------------------------------------------------------------


def evaluation_dependencies(evaluation: Evaluation) -> list[str]:
    """Operands first, then ``@name`` references from ``left`` and a string ``right``."""
    dependencies = list(evaluation.operands or ())
    for _, text in evaluation.string_fields():
        dependencies.extend(extract_references(text))
    return dependencies


def build_dependency_graph(evaluations: list[Evaluation]) -> dict[str, list[str]]:
    """
    Map each evaluation name to the names it depends on.

    Evaluations without dependencies are omitted. Keys keep declaration order;
    a repeated name keeps the edges of its last declaration.
    """
    graph: dict[str, list[str]] = {}
    for evaluation in evaluations:
        dependencies = evaluation_dependencies(evaluation)
        if dependencies:
            graph[evaluation.name] = dependencies
    return graph
