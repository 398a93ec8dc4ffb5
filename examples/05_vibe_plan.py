#!/usr/bin/env python3
"""Example: VibePlan scheduling

Embed a task plan in a Draft, pick the current task, and let an edit
that changes the artifact advance the plan.

Usage:
    python examples/05_vibe_plan.py

Requirements:
    pip install carddraft
"""
from __future__ import annotations

import dataclasses

import carddraft
from carddraft.plan import advance_vibe_plan_after_apply, pick_vibe_plan_current, vibe_plan_from_draft

PLAN = {
    "version": "v1",
    "goal": "Build a tavern keeper",
    "tasks": [
        {"id": "T1", "title": "Name and describe the keeper"},
        {"id": "T2", "title": "Write the greeting", "dependsOn": ["T1"]},
        {"id": "T3", "title": "Add tavern lore", "dependsOn": ["T1"]},
    ],
}


def main() -> None:
    draft = carddraft.normalize({"raw": {"dataExtensions": {"vibePlan": PLAN}}})

    plan = vibe_plan_from_draft(draft)
    picked = pick_vibe_plan_current(plan)
    print(f"Current: {picked.type.value} {picked.task_id}")

    # An edit that touches the artifact finishes the current task
    edited = dataclasses.replace(
        draft,
        card=dataclasses.replace(draft.card, name="Bram", description="Keeps the Rusty Anchor."),
    )
    changed = carddraft.diff(draft, edited)
    print(f"Changed paths: {list(changed.changed_paths)}")

    advanced, outcome = advance_vibe_plan_after_apply(edited, changed.artifact_changed)
    print(f"Advanced: {outcome.from_task} -> {outcome.to_task}")

    for task in vibe_plan_from_draft(advanced).tasks:
        print(f"  {task.id} [{task.status.value}] {task.title}")

    progress = carddraft.lint(advanced).progress
    total = progress.total_steps or len(progress.steps) or 1
    print(f"\nProgress: step {progress.step_index}/{total} {progress.step_name}")


if __name__ == "__main__":
    main()
