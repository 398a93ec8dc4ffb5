"""Draft validator module.

Exports the ``Validator`` class, ``lint_card_draft`` and ``apply_lint``,
``Diagnostic`` types, the progress state machine and all built-in
validation rules.
"""
from __future__ import annotations

from carddraft.validator.diagnostics import Diagnostic, DiagnosticSeverity
from carddraft.validator.progress import ProgressState, build_progress, build_task_instruction
from carddraft.validator.rules import DEFAULT_RULES, Rule
from carddraft.validator.validator import (
    LintResult,
    Validator,
    apply_lint,
    lint_card_draft,
    validate,
)

__all__ = [
    "Validator",
    "validate",
    "lint_card_draft",
    "apply_lint",
    "LintResult",
    "Diagnostic",
    "DiagnosticSeverity",
    "Rule",
    "DEFAULT_RULES",
    "ProgressState",
    "build_progress",
    "build_task_instruction",
]
