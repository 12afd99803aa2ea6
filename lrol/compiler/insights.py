"""
Structural insights for valid LROL models.

Summarizes a model for ``lrol analyze``: evaluation type counts, dependency
structure, datetime usage and a heuristic complexity score. Also flags
maintainability warnings and suggestions. Nothing here changes validity;
callers should only run it on models that passed validation.
"""

from __future__ import annotations

from collections import Counter
from enum import Enum

from pydantic import BaseModel, Field

from lrol.compiler.analyzer import build_dependency_graph
from lrol.compiler.expressions import extract_references, is_datetime_expression
from lrol.domain.models import Evaluation, RuleModel

# Heuristic weights for the complexity score
EVALUATION_COST = 1.0
OPERAND_COST = 0.5
REFERENCE_COST = 0.3
DATETIME_COST = 0.5

MAX_RECOMMENDED_EVALUATIONS = 10
MAX_RECOMMENDED_DEPTH = 3
RECOMMENDED_ACTION_TYPES = ("flag_transaction", "block_transaction", "send_alert")


class WarningSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class WarningCategory(str, Enum):
    COMPLEXITY = "Complexity"
    PERFORMANCE = "Performance"
    MAINTAINABILITY = "Maintainability"
    BEST_PRACTICE = "BestPractice"


class AnalysisWarning(BaseModel):
    severity: WarningSeverity
    category: WarningCategory
    message: str
    context: str


class AnalysisSummary(BaseModel):
    total_evaluations: int
    evaluation_types: dict[str, int]
    max_evaluation_depth: int
    dependency_count: int
    complexity_score: float


class AnalysisDetails(BaseModel):
    evaluation_dependencies: dict[str, list[str]] = Field(default_factory=dict)
    datetime_expressions: list[str] = Field(default_factory=list)
    reference_chains: list[list[str]] = Field(default_factory=list)
    evaluation_weights: dict[str, int] = Field(default_factory=dict)


class AnalysisReport(BaseModel):
    file_path: str
    summary: AnalysisSummary
    details: AnalysisDetails
    warnings: list[AnalysisWarning] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


def find_datetime_expressions(evaluation: Evaluation) -> list[str]:
    return [text for _, text in evaluation.string_fields() if is_datetime_expression(text)]


def calculate_complexity_score(model: RuleModel) -> float:
    score = len(model.evaluations) * EVALUATION_COST
    for evaluation in model.evaluations:
        score += len(evaluation.operands or ()) * OPERAND_COST
        for _, text in evaluation.string_fields():
            score += len(extract_references(text)) * REFERENCE_COST
        if find_datetime_expressions(evaluation):
            score += DATETIME_COST
    return round(score, 2)


def longest_chains(graph: dict[str, list[str]], starts: list[str]) -> dict[str, list[str]]:
    """
    Longest dependency chain from each node reachable from ``starts``.

    One post-order walk with an explicit stack; each node's chain is computed
    once from its dependencies' chains. A dependency that is still on the
    stack (a cycle) is not followed, so this terminates on any graph.
    """
    best: dict[str, list[str]] = {}

    for start in starts:
        if start in best:
            continue
        stack = [(start, iter(graph.get(start, ())))]
        on_stack = {start}

        while stack:
            node, dependencies = stack[-1]
            dependency = next(
                (d for d in dependencies if d not in best and d not in on_stack), None
            )
            if dependency is not None:
                stack.append((dependency, iter(graph.get(dependency, ()))))
                on_stack.add(dependency)
                continue

            stack.pop()
            on_stack.discard(node)
            chain = [node]
            for dependency in graph.get(node, ()):
                tail = best.get(dependency)
                if tail is not None and len(tail) >= len(chain) and node not in tail:
                    chain = [node, *tail]
            best[node] = chain

    return best


def longest_chain(graph: dict[str, list[str]], start: str) -> list[str]:
    """Longest dependency path starting at ``start``."""
    return longest_chains(graph, [start])[start]


def reference_chains(graph: dict[str, list[str]]) -> list[list[str]]:
    """Longest chain from every root (a graph node nothing else depends on)."""
    dependents = {dependency for dependencies in graph.values() for dependency in dependencies}
    roots = [node for node in graph if node not in dependents] or list(graph)
    best = longest_chains(graph, roots)
    return [best[root] for root in roots]


def _collect_warnings(
    model: RuleModel, chains: list[list[str]], max_depth: int
) -> list[AnalysisWarning]:
    warnings = []

    if len(model.evaluations) > MAX_RECOMMENDED_EVALUATIONS:
        warnings.append(
            AnalysisWarning(
                severity=WarningSeverity.MEDIUM,
                category=WarningCategory.COMPLEXITY,
                message="High number of evaluations may impact maintainability",
                context=f"Total evaluations: {len(model.evaluations)}",
            )
        )

    if max_depth > MAX_RECOMMENDED_DEPTH:
        deepest = max(chains, key=len)
        warnings.append(
            AnalysisWarning(
                severity=WarningSeverity.MEDIUM,
                category=WarningCategory.PERFORMANCE,
                message="Deep dependency chain detected",
                context=f"Longest chain: {' -> '.join(deepest)}",
            )
        )

    for action in model.actions:
        if action.action_type not in RECOMMENDED_ACTION_TYPES:
            warnings.append(
                AnalysisWarning(
                    severity=WarningSeverity.LOW,
                    category=WarningCategory.BEST_PRACTICE,
                    message=(
                        "User defined action types are accepted; prefer one of "
                        + ", ".join(f"'{t}'" for t in RECOMMENDED_ACTION_TYPES)
                    ),
                    context=f"Action type: '{action.action_type}'",
                )
            )

    for evaluation in model.evaluations:
        if evaluation.weight is None:
            warnings.append(
                AnalysisWarning(
                    severity=WarningSeverity.LOW,
                    category=WarningCategory.MAINTAINABILITY,
                    message="Evaluation has no weight",
                    context=f"Evaluation: '{evaluation.name}'",
                )
            )

    return warnings


def _collect_suggestions(model: RuleModel) -> list[str]:
    suggestions = []
    if model.description is None:
        suggestions.append("Consider adding a description to improve rule documentation")

    weights = [e.weight for e in model.evaluations if e.weight is not None]
    if any(weight >= 4 for weight in weights):
        suggestions.append("Consider normalizing evaluation weights to improve rule balance")

    if model.metadata is None:
        suggestions.append("Consider adding metadata (created_by, created_at) for auditability")
    return suggestions


def analyze_model(model: RuleModel, file_path: str) -> AnalysisReport:
    """Build the insight report for an already-validated model."""
    graph = build_dependency_graph(model.evaluations)
    chains = reference_chains(graph)
    max_depth = max((len(chain) for chain in chains), default=0)

    type_counts = Counter(e.evaluation_type.value for e in model.evaluations)

    summary = AnalysisSummary(
        total_evaluations=len(model.evaluations),
        evaluation_types=dict(sorted(type_counts.items())),
        max_evaluation_depth=max_depth,
        dependency_count=len(graph),
        complexity_score=calculate_complexity_score(model),
    )
    details = AnalysisDetails(
        evaluation_dependencies=graph,
        datetime_expressions=[
            expression
            for evaluation in model.evaluations
            for expression in find_datetime_expressions(evaluation)
        ],
        reference_chains=chains,
        evaluation_weights={
            e.name: e.weight for e in model.evaluations if e.weight is not None
        },
    )

    return AnalysisReport(
        file_path=file_path,
        summary=summary,
        details=details,
        warnings=_collect_warnings(model, chains, max_depth),
        suggestions=_collect_suggestions(model),
    )
