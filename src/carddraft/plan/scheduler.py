"""Vibe-plan task graph: normalization, cycle detection, current-task resolution.

A plan is a list of tasks linked by ``dependsOn``.  The graph may name
missing tasks or contain cycles; both are detected and reported, never
repaired.  All traversals are iterative so a deep or cyclic graph cannot
exhaust the interpreter stack.

Usage
-----
::

    from carddraft.plan import normalize_vibe_plan, pick_vibe_plan_current

    plan = normalize_vibe_plan(draft.vibe_plan_raw)
    resolution = pick_vibe_plan_current(plan)
    if resolution.type is ResolutionType.OK:
        print(resolution.task_id)
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from carddraft.model.nodes import Task, TaskStatus, VibePlan
from carddraft.model.normalize import as_mapping, enum_or, now_iso, to_str, to_str_list

PLAN_VERSION = "v1"


class ResolutionType(Enum):
    """Outcome kinds of ``pick_vibe_plan_current``."""

    NEED_PLAN = "need_plan"
    OK = "ok"
    BLOCKED = "blocked"
    INVALID_DEP = "invalid_dep"
    CYCLE = "cycle"
    ALL_DONE = "all_done"


@dataclass(frozen=True)
class Resolution:
    """The task the driving loop should work on next, or why there is none.

    ``task_id`` is set for ``ok``, ``blocked`` and ``invalid_dep``;
    ``missing_id`` for ``invalid_dep``; ``cycle`` (ids in order, first id
    repeated at the end) for ``cycle``.
    """

    type: ResolutionType
    task_id: str = ""
    missing_id: str = ""
    cycle: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.task_id:
            out["taskId"] = self.task_id
        if self.missing_id:
            out["missingId"] = self.missing_id
        if self.cycle:
            out["cycle"] = list(self.cycle)
        return out


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _normalize_task(raw: Any, idx: int, used_ids: set[str]) -> Task:
    obj = as_mapping(raw)
    base_id = to_str(obj.get("id")).strip() or f"task_{idx + 1}"

    task_id = base_id
    bump = 1
    while task_id in used_ids:
        bump += 1
        task_id = f"{base_id}_{bump}"
    used_ids.add(task_id)

    title = (to_str(obj.get("title")) or to_str(obj.get("name"))).strip() or f"Task {idx + 1}"
    return Task(
        id=task_id,
        title=title,
        status=enum_or(TaskStatus, obj.get("status"), TaskStatus.TODO),
        depends_on=to_str_list(obj.get("dependsOn")),
        kind_hint=to_str(obj.get("kindHint")).strip(),
        patch_hints=to_str_list(obj.get("patchHints")),
        done_criteria=to_str_list(obj.get("doneCriteria")),
        notes=to_str(obj.get("notes")),
    )


def normalize_vibe_plan(raw: Any, now: str | None = None) -> VibePlan:
    """Normalize any value into a ``VibePlan``.

    Duplicate or blank task ids are made unique by numeric suffixing
    (``a``, ``a_2``, ``a_3``); statuses outside the four known values
    become ``todo``.  ``dependsOn`` is kept as given, dangling ids
    included.
    """
    if isinstance(raw, VibePlan):
        raw = vibe_plan_to_dict(raw)
    obj = as_mapping(raw)
    tasks_raw = obj.get("tasks")
    used_ids: set[str] = set()
    tasks = tuple(
        _normalize_task(t, idx, used_ids)
        for idx, t in enumerate(tasks_raw if isinstance(tasks_raw, list) else [])
    )
    cursor = as_mapping(obj.get("cursor"))
    stamp = now or now_iso()
    return VibePlan(
        version=to_str(obj.get("version")) or PLAN_VERSION,
        goal=to_str(obj.get("goal")).strip(),
        created_at=to_str(obj.get("createdAt")) or stamp,
        updated_at=to_str(obj.get("updatedAt")) or stamp,
        tasks=tasks,
        current_task_id=to_str(cursor.get("currentTaskId")).strip(),
    )


def task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status.value,
        "dependsOn": list(task.depends_on),
        "kindHint": task.kind_hint,
        "patchHints": list(task.patch_hints),
        "doneCriteria": list(task.done_criteria),
        "notes": task.notes,
    }


def vibe_plan_to_dict(plan: VibePlan) -> dict[str, Any]:
    """Serialize a plan to its wire shape (``cursor.currentTaskId`` included)."""
    return {
        "version": plan.version,
        "goal": plan.goal,
        "createdAt": plan.created_at,
        "updatedAt": plan.updated_at,
        "tasks": [task_to_dict(t) for t in plan.tasks],
        "cursor": {"currentTaskId": plan.current_task_id},
    }


# ---------------------------------------------------------------------------
# Graph analysis
# ---------------------------------------------------------------------------


def _task_map(plan: VibePlan) -> dict[str, Task]:
    return {task.id: task for task in plan.tasks}


def detect_cycle(plan: VibePlan) -> tuple[str, ...] | None:
    """Return the first dependency cycle found, or ``None``.

    Depth-first search from every task in list order, with an explicit
    path stack, an on-path set and a finished (visited) set.  Edges to
    missing tasks are ignored here; ``summarize_vibe_plan_issues``
    reports them.  The cycle is returned with its first id repeated at
    the end, e.g. ``("A", "B", "A")``.
    """
    by_id = _task_map(plan)
    visited: set[str] = set()

    for root in by_id:
        if root in visited:
            continue
        path = [root]
        on_path = {root}
        frames: list[Iterator[str]] = [iter(by_id[root].depends_on)]

        while frames:
            descended = False
            for dep in frames[-1]:
                if dep not in by_id or dep in visited:
                    continue
                if dep in on_path:
                    start = path.index(dep)
                    return tuple(path[start:]) + (dep,)
                path.append(dep)
                on_path.add(dep)
                frames.append(iter(by_id[dep].depends_on))
                descended = True
                break
            if not descended:
                frames.pop()
                finished = path.pop()
                on_path.discard(finished)
                visited.add(finished)

    return None


def _resolve_actionable(task_id: str, by_id: dict[str, Task]) -> Resolution | None:
    """Walk ``dependsOn`` from ``task_id`` to the nearest actionable task.

    Returns ``None`` when the walk ends on a task that is already done.
    The trail of ids visited in this walk bounds it even if the graph is
    cyclic.
    """
    trail: list[str] = []
    current = task_id
    while True:
        if current in trail:
            return Resolution(ResolutionType.CYCLE, cycle=tuple(trail) + (current,))
        task = by_id.get(current)
        if task is None:
            return Resolution(ResolutionType.INVALID_DEP, task_id=task_id, missing_id=current or "(empty id)")
        if task.status is TaskStatus.BLOCKED:
            return Resolution(ResolutionType.BLOCKED, task_id=current)
        if task.status is TaskStatus.DONE:
            return None

        next_id = ""
        for dep_id in task.depends_on:
            dep = by_id.get(dep_id)
            if dep is None:
                return Resolution(ResolutionType.INVALID_DEP, task_id=current, missing_id=dep_id)
            if dep.status is not TaskStatus.DONE:
                next_id = dep_id
                break
        if not next_id:
            return Resolution(ResolutionType.OK, task_id=current)
        trail.append(current)
        current = next_id


def pick_vibe_plan_current(plan: Any) -> Resolution:
    """Resolve the task the plan should work on next.

    Parameters
    ----------
    plan:
        A ``VibePlan`` or any raw value ``normalize_vibe_plan`` accepts.

    Returns
    -------
    Resolution
        ``need_plan`` for an empty plan; ``cycle`` if the graph has one
        anywhere; otherwise the resolution of the first non-done task,
        scanning circularly from the cursor, which may be an ancestor
        of that task.  ``all_done`` when every task is done.
    """
    norm = plan if isinstance(plan, VibePlan) else normalize_vibe_plan(plan)
    tasks = norm.tasks
    if not tasks:
        return Resolution(ResolutionType.NEED_PLAN)

    cycle = detect_cycle(norm)
    if cycle is not None:
        return Resolution(ResolutionType.CYCLE, cycle=cycle)

    by_id = _task_map(norm)
    start = 0
    if norm.current_task_id:
        for idx, task in enumerate(tasks):
            if task.id == norm.current_task_id:
                start = idx
                break

    for task in tasks[start:] + tasks[:start]:
        if task.status is TaskStatus.DONE:
            continue
        resolution = _resolve_actionable(task.id, by_id)
        if resolution is not None:
            return resolution

    return Resolution(ResolutionType.ALL_DONE)


def missing_dependencies(plan: VibePlan) -> list[tuple[str, str]]:
    """Return ``(task_id, missing_dep_id)`` pairs in task order."""
    by_id = _task_map(plan)
    return [(task.id, dep_id) for task in plan.tasks for dep_id in task.depends_on if dep_id not in by_id]


def missing_dependency_message(task_id: str, dep_id: str) -> str:
    return f"vibePlan: task {task_id} depends on a missing task: {dep_id}"


def cycle_message(cycle: tuple[str, ...]) -> str:
    return f"vibePlan: dependency cycle: {' -> '.join(cycle)}"


def summarize_vibe_plan_issues(plan: Any) -> tuple[str, ...]:
    """Return warning messages for dangling dependencies and cycles."""
    norm = plan if isinstance(plan, VibePlan) else normalize_vibe_plan(plan)
    warnings = [missing_dependency_message(t, d) for t, d in missing_dependencies(norm)]
    cycle = detect_cycle(norm)
    if cycle is not None:
        warnings.append(cycle_message(cycle))
    return tuple(warnings)


# ---------------------------------------------------------------------------
# Advancement
# ---------------------------------------------------------------------------


def advance_vibe_plan(plan: Any, finished_task_id: str, now: str | None = None) -> VibePlan:
    """Mark ``finished_task_id`` done and move the cursor to the next actionable task.

    The cursor first shifts to the task after the finished one (wrapping
    around), then re-seats on whatever ``pick_vibe_plan_current``
    resolves from there.  It is cleared when nothing is actionable.
    """
    norm = plan if isinstance(plan, VibePlan) else normalize_vibe_plan(plan, now=now)
    finished = to_str(finished_task_id).strip()

    tasks = tuple(
        dataclasses.replace(t, status=TaskStatus.DONE) if t.id == finished and t.status is not TaskStatus.DONE else t
        for t in norm.tasks
    )
    cursor = norm.current_task_id
    for idx, task in enumerate(tasks):
        if task.id == finished:
            cursor = tasks[(idx + 1) % len(tasks)].id
            break

    shifted = dataclasses.replace(norm, tasks=tasks, current_task_id=cursor)
    picked = pick_vibe_plan_current(shifted)
    if picked.type in (ResolutionType.OK, ResolutionType.BLOCKED):
        cursor = picked.task_id
    else:
        cursor = ""
    return dataclasses.replace(shifted, current_task_id=cursor, updated_at=now or now_iso())
