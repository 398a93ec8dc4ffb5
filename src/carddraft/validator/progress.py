"""Progress state machine derived from the embedded vibe plan.

The progress banner is the machine-readable instruction surface of a
Draft: ``progress.nextAction`` tells the driving loop whether to prompt
the model (and with what) or to hand control back to the user.  Every
text here is templated from the plan, so the same plan always yields the
same progress.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from carddraft.model.nodes import (
    NextAction,
    NextActionType,
    Progress,
    ProgressStep,
    TaskStatus,
    VibePlan,
)
from carddraft.plan.scheduler import (
    Resolution,
    ResolutionType,
    normalize_vibe_plan,
    pick_vibe_plan_current,
)

_MAX_PATCH_HINTS = 10
_MAX_DONE_CRITERIA = 6


class ProgressState(Enum):
    """States of the progress state machine."""

    NO_PLAN = "no_plan"
    ALL_DONE = "all_done"
    DEPENDENCY_CYCLE = "dependency_cycle"
    DEPENDENCY_MISSING = "dependency_missing"
    EXECUTING = "executing"


def _need_plan_progress() -> Progress:
    next_action = NextAction(
        type=NextActionType.ASK_MODEL,
        text="\n".join(
            [
                "Create the task list first: emit a card.patch that only sets raw.dataExtensions.vibePlan.",
                "Use as many tasks as needed; each task should fit in one turn; express ordering with "
                "dependsOn; point cursor.currentTaskId at the first actionable task.",
                "Do not modify card/worldbook/regex_scripts/tavern_helper in this turn.",
            ]
        ),
    )
    step = ProgressStep(
        index=1,
        name="Generate the task list (vibePlan)",
        status=TaskStatus.TODO,
        done_criteria=("vibePlan has been generated",),
        next_action=next_action,
    )
    return Progress(
        step_index=1,
        step_name="Task planning",
        total_steps=1,
        steps=(step,),
        next_action=next_action,
    )


def _task_steps(plan: VibePlan, current_task_id: str) -> tuple[ProgressStep, ...]:
    steps = []
    for idx, task in enumerate(plan.tasks):
        if task.status in (TaskStatus.DONE, TaskStatus.BLOCKED):
            status = task.status
        elif current_task_id and task.id == current_task_id:
            status = TaskStatus.DOING
        else:
            status = TaskStatus.TODO
        blockers: tuple[str, ...] = ()
        if task.status is TaskStatus.BLOCKED:
            blockers = (task.notes.strip() or "The task is blocked.",)
        steps.append(
            ProgressStep(
                index=idx + 1,
                name=task.title or f"Task {idx + 1}",
                status=status,
                done_criteria=task.done_criteria,
                blockers=blockers,
                next_action=NextAction(type=NextActionType.ASK_USER, text=""),
            )
        )
    return tuple(steps)


def build_task_instruction(plan: VibePlan, task_id: str) -> str:
    """Render the model instruction for working on ``task_id``."""
    task = plan.task_by_id(task_id)
    if task is None:
        return "The task does not exist: repair the vibePlan."
    lines = [f"Work on the current task: {task.title} ({task.id})"]
    if task.depends_on:
        lines.append(f"Depends on: {', '.join(task.depends_on)}")
    if task.kind_hint:
        lines.append(f"Suggested kind: {task.kind_hint}")
    if task.patch_hints:
        lines.append(f"Suggested paths: {', '.join(task.patch_hints[:_MAX_PATCH_HINTS])}")
    if task.done_criteria:
        lines.append(f"Done when: {'; '.join(task.done_criteria[:_MAX_DONE_CRITERIA])}")
    lines.append(
        "Make the smallest patch that completes this task; do not edit raw.dataExtensions.vibePlan "
        "(the task is marked done and the plan advances automatically)."
    )
    return "\n".join(lines)


def _all_done_progress(plan: VibePlan) -> Progress:
    steps = _task_steps(plan, "")
    return Progress(
        step_index=len(steps) or 1,
        step_name="All done",
        total_steps=len(steps) or 1,
        steps=steps,
        next_action=NextAction(
            type=NextActionType.ASK_USER,
            text="All tasks are done. Export the card as JSON/PNG, or keep refining it.",
        ),
    )


def _cycle_progress(plan: VibePlan, picked: Resolution) -> Progress:
    steps = _task_steps(plan, "")
    return Progress(
        step_index=1,
        step_name="Task dependency problem",
        total_steps=len(steps) or 1,
        steps=steps,
        next_action=NextAction(
            type=NextActionType.ASK_MODEL,
            text=(
                f"vibePlan has a dependency cycle: {' -> '.join(picked.cycle)}\n"
                "Emit a card.patch that repairs raw.dataExtensions.vibePlan (remove or reorder dependsOn)."
            ),
        ),
    )


def _invalid_dep_progress(plan: VibePlan, picked: Resolution) -> Progress:
    steps = _task_steps(plan, "")
    return Progress(
        step_index=1,
        step_name="Task dependency missing",
        total_steps=len(steps) or 1,
        steps=steps,
        next_action=NextAction(
            type=NextActionType.ASK_MODEL,
            text=(
                f"vibePlan dependency missing: task {picked.task_id} depends on {picked.missing_id}, "
                "which does not exist\n"
                "Emit a card.patch that repairs raw.dataExtensions.vibePlan (add the task or fix dependsOn)."
            ),
        ),
    )


def _current_task_progress(plan: VibePlan, picked: Resolution) -> Progress:
    steps = _task_steps(plan, picked.task_id)
    # A blocked resolution names a task that is never marked doing.
    current_index = next((i + 1 for i, t in enumerate(plan.tasks) if t.id == picked.task_id), 1)
    title = plan.tasks[current_index - 1].title if plan.tasks else "Task execution"
    if picked.type is ResolutionType.BLOCKED:
        next_action = NextAction(
            type=NextActionType.ASK_USER,
            text=(
                f"Task blocked: {title} ({picked.task_id}). Ask the user for the missing information "
                "or adjust the task list manually, then continue."
            ),
        )
    else:
        next_action = NextAction(type=NextActionType.ASK_MODEL, text=build_task_instruction(plan, picked.task_id))
    return Progress(
        step_index=current_index,
        step_name=title,
        total_steps=len(steps) or 1,
        steps=steps,
        next_action=next_action,
    )


def build_progress(plan_raw: Any) -> tuple[ProgressState, Progress]:
    """Derive the progress banner from a raw (or normalized) vibe plan.

    Parameters
    ----------
    plan_raw:
        The value stored under ``raw.dataExtensions.vibePlan``; ``None``
        and empty plans both mean no plan yet.

    Returns
    -------
    tuple[ProgressState, Progress]
        The state machine state and its fully populated progress.
    """
    plan = plan_raw if isinstance(plan_raw, VibePlan) else normalize_vibe_plan(plan_raw)
    if not plan.tasks:
        return ProgressState.NO_PLAN, _need_plan_progress()

    picked = pick_vibe_plan_current(plan)
    if picked.type is ResolutionType.ALL_DONE:
        return ProgressState.ALL_DONE, _all_done_progress(plan)
    if picked.type is ResolutionType.CYCLE:
        return ProgressState.DEPENDENCY_CYCLE, _cycle_progress(plan, picked)
    if picked.type is ResolutionType.INVALID_DEP:
        return ProgressState.DEPENDENCY_MISSING, _invalid_dep_progress(plan, picked)
    return ProgressState.EXECUTING, _current_task_progress(plan, picked)
