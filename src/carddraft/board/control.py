"""Control messages injected into the transcript by the driving loop.

A control message tells the model which step it is on and what to do
next, using ``progress.nextAction.text`` unless the caller supplies a
more specific reason.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from carddraft.model.nodes import CardDraft
from carddraft.model.normalize import normalize_card_draft, to_str

VCARD_CONTROL_PREFIX = "【VCARD_CTRL】"

ALLOWED_KINDS = (
    "card.patch",
    "worldbook.patch",
    "worldbook.target",
    "regex_scripts.patch",
    "tavern_helper.patch",
    "regex_scripts.set",
    "client_scripts.set",
)


class ControlIntent(Enum):
    """Why the control message was sent."""

    RUN = "run"
    AUTO = "auto"
    RETRY = "retry"


_INTENT_LABELS = {
    ControlIntent.RUN: "Run",
    ControlIntent.AUTO: "Auto-advance",
    ControlIntent.RETRY: "Corrective retry",
}


def is_control_message_text(text: Any) -> bool:
    """Return True if ``text`` is a control message (leading whitespace ignored)."""
    return isinstance(text, str) and text.lstrip().startswith(VCARD_CONTROL_PREFIX)


def build_control_text(
    draft: Any,
    intent: ControlIntent | str = ControlIntent.RUN,
    reason: str = "",
) -> str:
    """Render the control message for the current state of ``draft``.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or any value ``normalize_card_draft`` accepts;
        its ``meta.progress`` supplies the step and default task text.
    intent:
        ``run``, ``auto`` or ``retry``; unknown values render as ``run``.
    reason:
        Task description that overrides ``progress.nextAction.text``.
    """
    card_draft = draft if isinstance(draft, CardDraft) else normalize_card_draft(draft)
    if not isinstance(intent, ControlIntent):
        try:
            intent = ControlIntent(to_str(intent))
        except ValueError:
            intent = ControlIntent.RUN

    progress = card_draft.meta.progress
    total = progress.total_steps or len(progress.steps) or 1
    next_text = progress.next_action.text.strip() if progress.next_action else ""
    task = reason.strip() or next_text

    lines = [
        f"{VCARD_CONTROL_PREFIX}{_INTENT_LABELS[intent]}",
        "",
        f"Current: Step {progress.step_index}/{total} - {progress.step_name}",
        f"Task: {task}" if task else "Task: fill in what this step is missing on the draft board, then move on.",
        "",
        "Output protocol (follow strictly):",
        "1) To change the draft: output exactly one patch block, with no explanation or Markdown around it.",
        "2) To ask or explain without changing anything: answer in plain text and output no patch block.",
        f"3) Allowed kinds: {' / '.join(ALLOWED_KINDS)}",
        "4) kind=*.patch must carry patch[]; op is set or remove only.",
        "5) kind=worldbook.target must carry the complete worldbook (all entries); the patch is derived for you.",
        "6) Do not output a full CardDraft; the system applies the patch and rewrites the board.",
        "7) raw may only change raw.dataExtensions.vibePlan, and never in the same patch as other fields.",
    ]
    return "\n".join(lines).strip()
