"""Individual validation rules for the Draft validator.

Each rule is a callable that accepts a ``CardDraft`` and returns a list
of ``Diagnostic`` objects.  Rules are composed into the ``Validator``
class which runs them all and aggregates results.

Rule codes use the ``VCD`` prefix followed by a three-digit number:

    VCD001  card.name is empty
    VCD002  card.description is empty
    VCD003  card.first_mes is empty
    VCD004  card.personality is empty
    VCD005  card.scenario is empty
    VCD010  Green worldbook entry without keys
    VCD011  at_depth entry without a depth
    VCD012  Worldbook entry with empty content
    VCD020  Regex script with empty placement
    VCD021  Regex placement outside the allowed set
    VCD022  Deprecated regex placement (0)
    VCD023  minDepth below -1
    VCD024  maxDepth below 0
    VCD025  maxDepth below minDepth
    VCD026  substituteRegex outside 0/1/2
    VCD027  Find pattern normalization warning
    VCD028  Find pattern does not compile
    VCD030  vibePlan task depends on a missing task
    VCD031  vibePlan dependency cycle
"""
from __future__ import annotations

from typing import Callable

from carddraft.codec.regex import resolve_find_regex, try_compile_regex
from carddraft.model.nodes import CardDraft, Light, RegexScript
from carddraft.plan.scheduler import (
    cycle_message,
    detect_cycle,
    missing_dependencies,
    missing_dependency_message,
    normalize_vibe_plan,
)
from carddraft.validator.diagnostics import Diagnostic, DiagnosticSeverity

Rule = Callable[[CardDraft], list[Diagnostic]]

REGEX_PLACEMENT_ALLOWED = frozenset({0, 1, 2, 3, 5, 6})
REGEX_PLACEMENT_DEPRECATED = frozenset({0})
SUBSTITUTE_REGEX_ALLOWED = frozenset({0, 1, 2})

VIBE_PLAN_PATH = "raw.dataExtensions.vibePlan"


def _make(
    code: str,
    severity: DiagnosticSeverity,
    message: str,
    path: str,
    suggestion: str | None = None,
    rule: str = "",
) -> Diagnostic:
    return Diagnostic(
        severity=severity,
        code=code,
        message=message,
        path=path,
        suggestion=suggestion,
        rule=rule,
    )


# ---------------------------------------------------------------------------
# VCD001-VCD005: card text fields
# ---------------------------------------------------------------------------

_REQUIRED_CARD_FIELDS = (
    ("VCD001", "name"),
    ("VCD002", "description"),
    ("VCD003", "first_mes"),
)

_RECOMMENDED_CARD_FIELDS = (
    ("VCD004", "personality"),
    ("VCD005", "scenario"),
)


def rule_required_card_fields(draft: CardDraft) -> list[Diagnostic]:
    """VCD001-VCD003: name, description and first_mes must be non-blank."""
    diagnostics: list[Diagnostic] = []
    for code, key in _REQUIRED_CARD_FIELDS:
        if not getattr(draft.card, key).strip():
            diagnostics.append(_make(
                code,
                DiagnosticSeverity.ERROR,
                f"card.{key} must not be empty.",
                f"card.{key}",
                suggestion=f"Fill in card.{key}",
                rule="required_card_fields",
            ))
    return diagnostics


def rule_recommended_card_fields(draft: CardDraft) -> list[Diagnostic]:
    """VCD004-VCD005: personality and scenario should be filled in."""
    diagnostics: list[Diagnostic] = []
    for code, key in _RECOMMENDED_CARD_FIELDS:
        if not getattr(draft.card, key).strip():
            diagnostics.append(_make(
                code,
                DiagnosticSeverity.WARNING,
                f"card.{key} is empty (recommended).",
                f"card.{key}",
                rule="recommended_card_fields",
            ))
    return diagnostics


# ---------------------------------------------------------------------------
# VCD010-VCD012: worldbook entries
# ---------------------------------------------------------------------------

def rule_worldbook_entries(draft: CardDraft) -> list[Diagnostic]:
    """VCD010-VCD012: per-entry activation, depth and content checks."""
    diagnostics: list[Diagnostic] = []
    for idx, entry in enumerate(draft.worldbook.entries):
        prefix = f"Worldbook entry {idx + 1}"
        path = f"worldbook.entries[{idx}]"
        if entry.light is Light.GREEN and not entry.keys:
            diagnostics.append(_make(
                "VCD010",
                DiagnosticSeverity.ERROR,
                f"{prefix}: green (selective) entries must have keys.",
                f"{path}.keys",
                suggestion="Add trigger keys or switch the entry to blue (constant)",
                rule="worldbook_entries",
            ))
        if entry.position.is_at_depth and entry.at_depth is None:
            diagnostics.append(_make(
                "VCD011",
                DiagnosticSeverity.ERROR,
                f"{prefix}: at_depth positions require a depth.",
                f"{path}.at_depth",
                suggestion="Set at_depth.depth to a non-negative integer",
                rule="worldbook_entries",
            ))
        if not entry.content.strip():
            diagnostics.append(_make(
                "VCD012",
                DiagnosticSeverity.WARNING,
                f"{prefix}: content is empty (nothing will be injected).",
                f"{path}.content",
                rule="worldbook_entries",
            ))
    return diagnostics


# ---------------------------------------------------------------------------
# VCD020-VCD028: regex scripts
# ---------------------------------------------------------------------------

def _script_label(script: RegexScript, idx: int) -> str:
    return script.name or script.id or f"#{idx + 1}"


def _joined(values: list[int]) -> str:
    return ", ".join(str(v) for v in values)


def rule_regex_placement(draft: CardDraft) -> list[Diagnostic]:
    """VCD020-VCD022: placement must be non-empty and use supported codes."""
    diagnostics: list[Diagnostic] = []
    for idx, script in enumerate(draft.regex_scripts):
        name = _script_label(script, idx)
        path = f"regex_scripts[{idx}].placement"
        if not script.placement:
            diagnostics.append(_make(
                "VCD020",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: placement is empty (the script never runs).",
                path,
                rule="regex_placement",
            ))
        invalid = [p for p in script.placement if p not in REGEX_PLACEMENT_ALLOWED]
        if invalid:
            diagnostics.append(_make(
                "VCD021",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: placement contains invalid values: {_joined(invalid)}.",
                path,
                suggestion="Use placement codes 1, 2, 3, 5 or 6",
                rule="regex_placement",
            ))
        deprecated = [p for p in script.placement if p in REGEX_PLACEMENT_DEPRECATED]
        if deprecated:
            diagnostics.append(_make(
                "VCD022",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: placement contains deprecated values: "
                f"{_joined(deprecated)} (MD_DISPLAY is deprecated).",
                path,
                rule="regex_placement",
            ))
    return diagnostics


def rule_regex_depth_range(draft: CardDraft) -> list[Diagnostic]:
    """VCD023-VCD025: minDepth/maxDepth must describe a usable range."""
    diagnostics: list[Diagnostic] = []
    for idx, script in enumerate(draft.regex_scripts):
        name = _script_label(script, idx)
        path = f"regex_scripts[{idx}].options"
        min_depth = script.options.min_depth
        max_depth = script.options.max_depth
        if min_depth is not None and min_depth < -1:
            diagnostics.append(_make(
                "VCD023",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: minDepth is below -1 (may be treated as invalid).",
                f"{path}.minDepth",
                rule="regex_depth_range",
            ))
        if max_depth is not None and max_depth < 0:
            diagnostics.append(_make(
                "VCD024",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: maxDepth is below 0 (may be treated as invalid).",
                f"{path}.maxDepth",
                rule="regex_depth_range",
            ))
        if min_depth is not None and max_depth is not None and max_depth < min_depth:
            diagnostics.append(_make(
                "VCD025",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: maxDepth < minDepth (empty depth range).",
                path,
                rule="regex_depth_range",
            ))
    return diagnostics


def rule_regex_substitute(draft: CardDraft) -> list[Diagnostic]:
    """VCD026: substituteRegex accepts only 0, 1 or 2."""
    diagnostics: list[Diagnostic] = []
    for idx, script in enumerate(draft.regex_scripts):
        if script.options.substitute_regex not in SUBSTITUTE_REGEX_ALLOWED:
            diagnostics.append(_make(
                "VCD026",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {_script_label(script, idx)}: substituteRegex is invalid "
                "(only 0/1/2 are allowed).",
                f"regex_scripts[{idx}].options.substituteRegex",
                rule="regex_substitute",
            ))
    return diagnostics


def rule_regex_find(draft: CardDraft) -> list[Diagnostic]:
    """VCD027-VCD028: the find pattern must normalize cleanly and compile.

    A compile failure is an error for enabled scripts and a warning for
    disabled ones.
    """
    diagnostics: list[Diagnostic] = []
    for idx, script in enumerate(draft.regex_scripts):
        name = _script_label(script, idx)
        path = f"regex_scripts[{idx}].find"
        resolved = resolve_find_regex(script.find)
        for warning in resolved.warnings:
            diagnostics.append(_make(
                "VCD027",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: {warning}",
                path,
                rule="regex_find",
            ))
        compiled = try_compile_regex(resolved.pattern, resolved.flags)
        if compiled.ok:
            continue
        if script.enabled:
            diagnostics.append(_make(
                "VCD028",
                DiagnosticSeverity.ERROR,
                f"regex_scripts {name}: findRegex does not compile: {compiled.error}",
                path,
                suggestion="Fix the pattern or disable the script",
                rule="regex_find",
            ))
        else:
            diagnostics.append(_make(
                "VCD028",
                DiagnosticSeverity.WARNING,
                f"regex_scripts {name}: findRegex does not compile (script disabled): {compiled.error}",
                path,
                rule="regex_find",
            ))
    return diagnostics


# ---------------------------------------------------------------------------
# VCD030-VCD031: embedded vibe plan
# ---------------------------------------------------------------------------

def rule_vibe_plan_graph(draft: CardDraft) -> list[Diagnostic]:
    """VCD030-VCD031: plan dependencies must exist and must not form a cycle."""
    raw_plan = draft.vibe_plan_raw
    if not raw_plan:
        return []
    plan = normalize_vibe_plan(raw_plan)
    diagnostics: list[Diagnostic] = []
    for task_id, dep_id in missing_dependencies(plan):
        diagnostics.append(_make(
            "VCD030",
            DiagnosticSeverity.WARNING,
            missing_dependency_message(task_id, dep_id),
            VIBE_PLAN_PATH,
            suggestion=f"Add a task {dep_id!r} or remove it from dependsOn",
            rule="vibe_plan_graph",
        ))
    cycle = detect_cycle(plan)
    if cycle is not None:
        diagnostics.append(_make(
            "VCD031",
            DiagnosticSeverity.WARNING,
            cycle_message(cycle),
            VIBE_PLAN_PATH,
            suggestion="Remove one of the dependsOn links in the cycle",
            rule="vibe_plan_graph",
        ))
    return diagnostics


# ---------------------------------------------------------------------------
# Rule registry
# ---------------------------------------------------------------------------

DEFAULT_RULES: list[Rule] = [
    rule_required_card_fields,
    rule_recommended_card_fields,
    rule_worldbook_entries,
    rule_regex_placement,
    rule_regex_depth_range,
    rule_regex_substitute,
    rule_regex_find,
    rule_vibe_plan_graph,
]
