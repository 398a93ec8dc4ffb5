"""Diagnostic types for the Draft validator.

A ``Diagnostic`` is an annotated message attached to a path inside the
Draft (``card.name``, ``worldbook.entries[2].keys``, ...).  Diagnostics
are never raised; they are collected into ``validation.errors`` and
``validation.warnings``.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class DiagnosticSeverity(Enum):
    """Severity of a finding, aligned with LSP levels.

    Only ERROR and WARNING reach ``validation``; custom rules may emit
    the two lower levels for tooling.
    """

    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "info"
    HINT = "hint"


@dataclass(frozen=True)
class Diagnostic:
    """A single validation finding.

    Parameters
    ----------
    severity:
        How serious this finding is.
    code:
        Stable identifier, ``"VCD001"`` and up; ``"VCD999"`` marks a
        rule that crashed.
    message:
        The text stored in ``validation.errors`` / ``validation.warnings``.
    path:
        Dotted path of the offending Draft field; empty for the whole Draft.
    suggestion:
        Optional fix hint, shown by the CLI.
    rule:
        Name of the rule function that produced it.
    """

    severity: DiagnosticSeverity
    code: str
    message: str
    path: str
    suggestion: str | None = None
    rule: str = ""

    def __str__(self) -> str:
        where = self.path or "<draft>"
        hint = f" (hint: {self.suggestion})" if self.suggestion else ""
        return f"[{self.code}] {self.severity.name} at {where}: {self.message}{hint}"

    @property
    def is_error(self) -> bool:
        return self.severity is DiagnosticSeverity.ERROR

    def promoted(self) -> Diagnostic:
        """Return this diagnostic as an error if it is a warning, else unchanged."""
        if self.severity is DiagnosticSeverity.WARNING:
            return dataclasses.replace(self, severity=DiagnosticSeverity.ERROR)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "path": self.path,
            "suggestion": self.suggestion,
            "rule": self.rule,
        }
