"""Draft Validator: structural lint of a ``CardDraft`` plus progress.

The ``Validator`` runs a configurable set of validation rules against a
Draft and returns a list of ``Diagnostic`` objects.  In strict mode,
warnings are promoted to errors so that CI pipelines can enforce tighter
quality gates.

``lint_card_draft`` wraps the validator and the progress state machine
into the ``{errors, warnings, progress}`` result that is stored back into
the Draft.

Usage
-----
::

    from carddraft.validator import lint_card_draft

    result = lint_card_draft(draft)
    if result.errors:
        print("\\n".join(result.errors))
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from carddraft.model.nodes import CardDraft, DraftMeta, Progress, Validation
from carddraft.model.normalize import normalize_card_draft, now_iso
from carddraft.model.serializer import progress_to_dict
from carddraft.validator.diagnostics import Diagnostic, DiagnosticSeverity
from carddraft.validator.progress import ProgressState, build_progress
from carddraft.validator.rules import DEFAULT_RULES, Rule

logger = logging.getLogger(__name__)


class Validator:
    """Structural validator for Drafts.

    Parameters
    ----------
    rules:
        The list of validation rules to run.  Defaults to all built-in
        rules (``DEFAULT_RULES``).  Pass a custom list to extend or
        restrict which rules apply.
    strict:
        When ``True``, WARNING-level diagnostics are promoted to ERROR
        severity, causing the overall validation to fail on warnings.
    """

    def __init__(
        self,
        rules: list[Rule] | None = None,
        strict: bool = False,
    ) -> None:
        self._rules: list[Rule] = rules if rules is not None else list(DEFAULT_RULES)
        self._strict: bool = strict

    def validate(self, draft: Any) -> list[Diagnostic]:
        """Run all rules against ``draft`` and return the collected diagnostics.

        Parameters
        ----------
        draft:
            A ``CardDraft``, or any value ``normalize_card_draft`` accepts.

        Returns
        -------
        list[Diagnostic]
            All findings in rule order.  May be empty if the Draft is valid.
        """
        card_draft = draft if isinstance(draft, CardDraft) else normalize_card_draft(draft)
        all_diagnostics: list[Diagnostic] = []
        for rule in self._rules:
            try:
                all_diagnostics.extend(rule(card_draft))
            except Exception as exc:  # noqa: BLE001
                # A broken rule is reported, not propagated.
                logger.exception("Validator rule %r crashed", rule.__name__)
                all_diagnostics.append(
                    Diagnostic(
                        severity=DiagnosticSeverity.ERROR,
                        code="VCD999",
                        message=f"Internal validator error in rule {rule.__name__!r}: {exc}",
                        path="",
                        suggestion="Please report this as a bug",
                        rule=rule.__name__,
                    )
                )

        if self._strict:
            return [d.promoted() for d in all_diagnostics]
        return all_diagnostics

    def add_rule(self, rule: Rule) -> None:
        """Add a custom rule to this validator instance.

        Parameters
        ----------
        rule:
            A callable ``(CardDraft) -> list[Diagnostic]``.
        """
        self._rules.append(rule)

    @property
    def rule_count(self) -> int:
        """Return the number of rules currently registered."""
        return len(self._rules)


def validate(draft: Any, strict: bool = False) -> list[Diagnostic]:
    """Convenience function: validate a Draft with default rules."""
    return Validator(strict=strict).validate(draft)


@dataclass(frozen=True)
class LintResult:
    """Outcome of ``lint_card_draft``.

    ``errors`` and ``warnings`` are the diagnostic messages, de-duplicated
    in first-seen order.
    """

    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    progress: Progress
    state: ProgressState
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "progress": progress_to_dict(self.progress),
        }


def _unique(messages: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(m for m in messages if m))


def lint_card_draft(draft: Any, validator: Validator | None = None) -> LintResult:
    """Lint ``draft`` and derive its progress.  Pure: the Draft is not modified.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or any value ``normalize_card_draft`` accepts.
    validator:
        Validator to use; defaults to ``Validator()`` with all built-in rules.
    """
    card_draft = draft if isinstance(draft, CardDraft) else normalize_card_draft(draft)
    diagnostics = (validator or Validator()).validate(card_draft)
    state, progress = build_progress(card_draft.vibe_plan_raw)
    return LintResult(
        errors=_unique([d.message for d in diagnostics if d.is_error]),
        warnings=_unique([d.message for d in diagnostics if d.severity == DiagnosticSeverity.WARNING]),
        progress=progress,
        state=state,
        diagnostics=tuple(diagnostics),
    )


def apply_lint(draft: Any, now: str | None = None, validator: Validator | None = None) -> CardDraft:
    """Return a copy of ``draft`` with ``updatedAt``, ``validation`` and ``progress`` refreshed."""
    card_draft = draft if isinstance(draft, CardDraft) else normalize_card_draft(draft, now=now)
    result = lint_card_draft(card_draft, validator=validator)
    meta: DraftMeta = dataclasses.replace(
        card_draft.meta,
        updated_at=now or now_iso(),
        progress=result.progress,
    )
    return dataclasses.replace(
        card_draft,
        meta=meta,
        validation=Validation(errors=result.errors, warnings=result.warnings),
    )
