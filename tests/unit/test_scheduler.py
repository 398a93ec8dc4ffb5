"""Unit tests for carddraft.plan (scheduler and post-apply runtime)."""
from __future__ import annotations

from typing import Any

from carddraft.model import CardDraft, TaskStatus, normalize_card_draft
from carddraft.plan import (
    ResolutionType,
    advance_vibe_plan,
    advance_vibe_plan_after_apply,
    detect_cycle,
    normalize_vibe_plan,
    pick_vibe_plan_current,
    summarize_vibe_plan_issues,
    vibe_plan_from_draft,
    vibe_plan_to_dict,
)

from conftest import FIXED_NOW, make_draft_dict, make_plan


def _draft_with_plan(plan: dict[str, Any]) -> CardDraft:
    return normalize_card_draft(make_draft_dict(raw={"dataExtensions": {"vibePlan": plan}}))


# ===========================================================================
# Normalization
# ===========================================================================


class TestNormalizeVibePlan:
    def test_duplicate_ids_suffixed(self) -> None:
        plan = normalize_vibe_plan(make_plan({"id": "a"}, {"id": "a"}, {"id": "a"}))
        assert [t.id for t in plan.tasks] == ["a", "a_2", "a_3"]

    def test_blank_id_and_title(self) -> None:
        plan = normalize_vibe_plan(make_plan({}, {"name": "Legacy name"}))
        assert [t.id for t in plan.tasks] == ["task_1", "task_2"]
        assert [t.title for t in plan.tasks] == ["Task 1", "Legacy name"]

    def test_unknown_status_is_todo(self) -> None:
        plan = normalize_vibe_plan(make_plan({"id": "a", "status": "paused"}))
        assert plan.tasks[0].status is TaskStatus.TODO

    def test_garbage(self) -> None:
        plan = normalize_vibe_plan(42, now=FIXED_NOW)
        assert plan.tasks == ()
        assert plan.version == "v1"
        assert plan.created_at == FIXED_NOW

    def test_dict_round_trip(self, chain_plan: dict[str, Any]) -> None:
        plan = normalize_vibe_plan(chain_plan)
        assert normalize_vibe_plan(vibe_plan_to_dict(plan)) == plan

    def test_cursor(self) -> None:
        plan = normalize_vibe_plan(make_plan({"id": "a"}, current="a"))
        assert plan.current_task_id == "a"


# ===========================================================================
# Graph analysis
# ===========================================================================


class TestDetectCycle:
    def test_two_cycle(self) -> None:
        plan = normalize_vibe_plan(
            make_plan({"id": "A", "dependsOn": ["B"]}, {"id": "B", "dependsOn": ["A"]})
        )
        assert detect_cycle(plan) == ("A", "B", "A")

    def test_self_loop(self) -> None:
        plan = normalize_vibe_plan(make_plan({"id": "A", "dependsOn": ["A"]}))
        assert detect_cycle(plan) == ("A", "A")

    def test_dag(self, chain_plan: dict[str, Any]) -> None:
        assert detect_cycle(normalize_vibe_plan(chain_plan)) is None

    def test_diamond_is_not_a_cycle(self) -> None:
        plan = normalize_vibe_plan(
            make_plan(
                {"id": "D", "dependsOn": ["B", "C"]},
                {"id": "B", "dependsOn": ["A"]},
                {"id": "C", "dependsOn": ["A"]},
                {"id": "A"},
            )
        )
        assert detect_cycle(plan) is None

    def test_deep_chain(self) -> None:
        tasks = [{"id": f"t{i}", "dependsOn": [f"t{i + 1}"]} for i in range(5000)]
        plan = normalize_vibe_plan(make_plan(*tasks))
        assert detect_cycle(plan) is None
        resolution = pick_vibe_plan_current(plan)
        assert resolution.type is ResolutionType.INVALID_DEP
        assert (resolution.task_id, resolution.missing_id) == ("t4999", "t5000")


class TestIssues:
    def test_missing_dependency_message(self) -> None:
        plan = make_plan({"id": "T1", "dependsOn": ["X"]})
        assert summarize_vibe_plan_issues(plan) == (
            "vibePlan: task T1 depends on a missing task: X",
        )

    def test_cycle_message(self) -> None:
        plan = make_plan({"id": "A", "dependsOn": ["B"]}, {"id": "B", "dependsOn": ["A"]})
        assert summarize_vibe_plan_issues(plan) == ("vibePlan: dependency cycle: A -> B -> A",)

    def test_clean(self, chain_plan: dict[str, Any]) -> None:
        assert summarize_vibe_plan_issues(chain_plan) == ()


# ===========================================================================
# Resolution
# ===========================================================================


class TestPickCurrent:
    def test_need_plan(self) -> None:
        assert pick_vibe_plan_current(make_plan()).type is ResolutionType.NEED_PLAN

    def test_first_actionable(self, chain_plan: dict[str, Any]) -> None:
        resolution = pick_vibe_plan_current(chain_plan)
        assert resolution.type is ResolutionType.OK
        assert resolution.task_id == "T1"

    def test_cursor_walks_to_ancestor(self, chain_plan: dict[str, Any]) -> None:
        chain_plan["cursor"] = {"currentTaskId": "T3"}
        assert pick_vibe_plan_current(chain_plan).task_id == "T1"

    def test_cycle(self) -> None:
        plan = make_plan({"id": "A", "dependsOn": ["B"]}, {"id": "B", "dependsOn": ["A"]})
        resolution = pick_vibe_plan_current(plan)
        assert resolution.type is ResolutionType.CYCLE
        assert resolution.cycle == ("A", "B", "A")

    def test_invalid_dep(self) -> None:
        resolution = pick_vibe_plan_current(make_plan({"id": "T1", "dependsOn": ["X"]}))
        assert resolution.type is ResolutionType.INVALID_DEP
        assert resolution.task_id == "T1"
        assert resolution.missing_id == "X"
        assert resolution.to_dict() == {"type": "invalid_dep", "taskId": "T1", "missingId": "X"}

    def test_blocked(self) -> None:
        plan = make_plan(
            {"id": "T1", "status": "blocked"},
            {"id": "T2", "dependsOn": ["T1"]},
        )
        resolution = pick_vibe_plan_current(plan)
        assert resolution.type is ResolutionType.BLOCKED
        assert resolution.task_id == "T1"

    def test_all_done(self) -> None:
        plan = make_plan({"id": "T1", "status": "done"}, {"id": "T2", "status": "done"})
        assert pick_vibe_plan_current(plan).type is ResolutionType.ALL_DONE

    def test_doing_counts_as_actionable(self) -> None:
        plan = make_plan({"id": "T1", "status": "done"}, {"id": "T2", "status": "doing"})
        assert pick_vibe_plan_current(plan).task_id == "T2"


# ===========================================================================
# Advancement
# ===========================================================================


class TestAdvance:
    def test_progression(self, chain_plan: dict[str, Any]) -> None:
        plan = advance_vibe_plan(chain_plan, "T1", now=FIXED_NOW)
        assert plan.tasks[0].status is TaskStatus.DONE
        assert plan.current_task_id == "T2"
        plan = advance_vibe_plan(plan, "T2", now=FIXED_NOW)
        assert plan.current_task_id == "T3"
        plan = advance_vibe_plan(plan, "T3", now=FIXED_NOW)
        assert plan.current_task_id == ""
        assert pick_vibe_plan_current(plan).type is ResolutionType.ALL_DONE

    def test_unknown_task_leaves_statuses(self, chain_plan: dict[str, Any]) -> None:
        plan = advance_vibe_plan(chain_plan, "nope", now=FIXED_NOW)
        assert all(t.status is TaskStatus.TODO for t in plan.tasks)
        assert plan.current_task_id == "T1"


class TestRuntime:
    def test_no_plan(self, draft: CardDraft) -> None:
        after, outcome = advance_vibe_plan_after_apply(draft, artifact_changed=True, now=FIXED_NOW)
        assert after is draft
        assert not outcome.advanced and not outcome.synced

    def test_advance_on_change(self, chain_plan: dict[str, Any]) -> None:
        draft = _draft_with_plan({**chain_plan, "cursor": {"currentTaskId": "T1"}})
        after, outcome = advance_vibe_plan_after_apply(draft, artifact_changed=True, now=FIXED_NOW)
        assert outcome.advanced
        assert (outcome.from_task, outcome.to_task) == ("T1", "T2")
        plan = vibe_plan_from_draft(after)
        assert plan is not None
        assert plan.current_task_id == "T2"
        assert plan.tasks[0].status is TaskStatus.DONE

    def test_sync_without_change(self, chain_plan: dict[str, Any]) -> None:
        draft = _draft_with_plan(chain_plan)
        after, outcome = advance_vibe_plan_after_apply(draft, artifact_changed=False, now=FIXED_NOW)
        assert not outcome.advanced
        assert outcome.synced
        plan = vibe_plan_from_draft(after)
        assert plan is not None and plan.current_task_id == "T1"

    def test_nothing_to_sync(self, chain_plan: dict[str, Any]) -> None:
        draft = _draft_with_plan({**chain_plan, "cursor": {"currentTaskId": "T1"}})
        after, outcome = advance_vibe_plan_after_apply(draft, artifact_changed=False, now=FIXED_NOW)
        assert after is draft
        assert outcome.synced is False

    def test_other_extensions_preserved(self, chain_plan: dict[str, Any]) -> None:
        data = make_draft_dict(raw={"dataExtensions": {"vibePlan": chain_plan, "custom": {"a": 1}}})
        after, _ = advance_vibe_plan_after_apply(normalize_card_draft(data), True, now=FIXED_NOW)
        assert after.raw.data_extensions["custom"] == {"a": 1}
