"""Plan advancement after an edit has been applied to a Draft.

The embedded plan only moves forward when an applied edit actually
changed an artifact subtree; otherwise its cursor is merely re-seated on
the task the scheduler resolves.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from carddraft.model.nodes import CardDraft, RawBag, VibePlan
from carddraft.model.normalize import now_iso
from carddraft.plan.scheduler import (
    ResolutionType,
    advance_vibe_plan,
    normalize_vibe_plan,
    pick_vibe_plan_current,
    vibe_plan_to_dict,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdvanceOutcome:
    """What ``advance_vibe_plan_after_apply`` did.

    Parameters
    ----------
    advanced:
        True when a task was marked done.
    from_task / to_task:
        The finished task and the new cursor (only when ``advanced``).
    synced:
        True when the stored plan was rewritten.
    """

    advanced: bool = False
    from_task: str = ""
    to_task: str = ""
    synced: bool = False


def vibe_plan_from_draft(draft: CardDraft, now: str | None = None) -> VibePlan | None:
    """Return the normalized embedded plan, or ``None`` when the Draft has none."""
    raw = draft.vibe_plan_raw
    if not raw:
        return None
    return normalize_vibe_plan(raw, now=now)


def with_vibe_plan(draft: CardDraft, plan: VibePlan) -> CardDraft:
    """Return a copy of ``draft`` storing ``plan`` under ``raw.dataExtensions.vibePlan``."""
    extensions = dict(draft.raw.data_extensions)
    extensions["vibePlan"] = vibe_plan_to_dict(plan)
    return dataclasses.replace(draft, raw=RawBag(data_extensions=extensions))


def _sync_cursor(plan: VibePlan, now: str | None) -> VibePlan | None:
    picked = pick_vibe_plan_current(plan)
    if picked.type in (ResolutionType.OK, ResolutionType.BLOCKED):
        if plan.current_task_id != picked.task_id:
            return dataclasses.replace(plan, current_task_id=picked.task_id, updated_at=now or now_iso())
    elif picked.type is ResolutionType.ALL_DONE and plan.current_task_id:
        return dataclasses.replace(plan, current_task_id="", updated_at=now or now_iso())
    return None


def advance_vibe_plan_after_apply(
    draft: CardDraft,
    artifact_changed: bool,
    now: str | None = None,
) -> tuple[CardDraft, AdvanceOutcome]:
    """Advance the embedded plan once an edit has been applied.

    Parameters
    ----------
    draft:
        The Draft after the edit.
    artifact_changed:
        Whether the edit changed ``card``, ``worldbook``,
        ``regex_scripts`` or ``tavern_helper`` (see
        ``carddraft.diff.draft_artifact_diff``).
    now:
        Timestamp for ``updatedAt``; defaults to the current time.

    Returns
    -------
    tuple[CardDraft, AdvanceOutcome]
        The (possibly) updated Draft and a description of the change.
        The input Draft is returned as-is when nothing changed.
    """
    plan = vibe_plan_from_draft(draft, now=now)
    if plan is None:
        return draft, AdvanceOutcome()

    picked = pick_vibe_plan_current(plan)
    if artifact_changed and picked.type is ResolutionType.OK and picked.task_id:
        next_plan = advance_vibe_plan(plan, picked.task_id, now=now)
        logger.info("Plan advanced: %s -> %s", picked.task_id, next_plan.current_task_id or "(none)")
        outcome = AdvanceOutcome(
            advanced=True,
            from_task=picked.task_id,
            to_task=next_plan.current_task_id,
            synced=True,
        )
        return with_vibe_plan(draft, next_plan), outcome

    synced = _sync_cursor(plan, now)
    if synced is None:
        return draft, AdvanceOutcome()
    logger.debug("Plan cursor re-seated on %r", synced.current_task_id)
    return with_vibe_plan(draft, synced), AdvanceOutcome(synced=True)
