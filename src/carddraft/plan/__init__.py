"""Vibe-plan module.

Exports the task-graph scheduler and the post-apply runtime that moves
the embedded plan forward.
"""
from __future__ import annotations

from carddraft.plan.runtime import (
    AdvanceOutcome,
    advance_vibe_plan_after_apply,
    vibe_plan_from_draft,
    with_vibe_plan,
)
from carddraft.plan.scheduler import (
    Resolution,
    ResolutionType,
    advance_vibe_plan,
    detect_cycle,
    normalize_vibe_plan,
    pick_vibe_plan_current,
    summarize_vibe_plan_issues,
    vibe_plan_to_dict,
)

__all__ = [
    "Resolution",
    "ResolutionType",
    "normalize_vibe_plan",
    "vibe_plan_to_dict",
    "detect_cycle",
    "pick_vibe_plan_current",
    "advance_vibe_plan",
    "summarize_vibe_plan_issues",
    "AdvanceOutcome",
    "advance_vibe_plan_after_apply",
    "vibe_plan_from_draft",
    "with_vibe_plan",
]
