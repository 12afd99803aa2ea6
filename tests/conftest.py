"""
Pytest configuration and shared fixtures for the LROL test suite.

Provides:
- A known-good rule document (text and parsed model)
- ``make_model`` / ``make_evaluation`` factories for programmatic models
- ``rules_dir``: a temporary directory pre-populated with rule files
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

# Add lrol to path for imports
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402 (import after path setup)

from lrol.domain.models import Action, Evaluation, RuleModel  # noqa: E402

VALID_DOCUMENT: dict[str, Any] = {
    "model_id": "M1",
    "name": "High value transfers",
    "description": "Flags unusually large transfers",
    "threshold": 0.9,
    "evaluations": [
        {
            "name": "large_amount",
            "type": "comparison",
            "left": "amount",
            "operator": ">",
            "right": 100,
            "weight": 3,
        },
        {
            "name": "recent",
            "type": "comparison",
            "left": "created_at",
            "operator": ">=",
            "right": "datetime(now, '-2 hours')",
            "weight": 2,
        },
        {
            "name": "combined",
            "type": "logical",
            "operator": "AND",
            "operands": ["large_amount", "recent"],
            "weight": 5,
        },
    ],
    "actions": [{"type": "flag_transaction", "reason": "Large recent transfer"}],
    "metadata": {
        "created_by": "risk-team",
        "created_at": "2024-01-01T12:00:00Z",
        "notes": "Reviewed quarterly",
    },
}


def document_text(**overrides: Any) -> str:
    """Serialize ``VALID_DOCUMENT`` with top-level keys replaced by ``overrides``."""
    return json.dumps({**VALID_DOCUMENT, **overrides}, indent=2)


def make_evaluation(name: str, eval_type: str = "comparison", **fields: Any) -> Evaluation:
    if eval_type == "comparison":
        fields = {"left": "amount", "operator": ">", "right": 100.0, **fields}
    return Evaluation(name=name, evaluation_type=eval_type, **fields)


def make_model(*evaluations: Evaluation, **fields: Any) -> RuleModel:
    defaults: dict[str, Any] = {
        "model_id": "M1",
        "name": "N",
        "threshold": 0.9,
        "actions": [Action(action_type="flag", reason="r")],
    }
    defaults.update(fields)
    return RuleModel(evaluations=list(evaluations), **defaults)


@pytest.fixture
def valid_text() -> str:
    return document_text()


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    """Directory with one valid, one invalid and one ignored file."""
    (tmp_path / "a_valid.json").write_text(document_text(), encoding="utf-8")
    (tmp_path / "b_invalid.json").write_text(document_text(threshold=1.5), encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not a rule file", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "c.json").write_text(document_text(), encoding="utf-8")
    return tmp_path
