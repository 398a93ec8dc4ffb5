"""Draft board: a full Draft snapshot embedded in a chat transcript.

A board is a Markdown message with three sections: a progress banner,
a human-readable card preview and the normalized Draft as JSON inside a
fenced block wrapped by two sentinel comments.  Boards are appended to a
transcript over time; only the last anchored block is authoritative.

Inside the JSON payload every ``<`` and every backtick is written as a
``\\uXXXX`` escape, so neither a sentinel comment nor a code fence can
appear verbatim in the payload whatever the card text contains.
``json.loads`` restores the characters when the board is parsed.

Usage
-----
::

    from carddraft.board import build_draft_board_markdown, parse_draft_from_board_markdown

    text = build_draft_board_markdown(draft)
    result = parse_draft_from_board_markdown(transcript + text)
    if result.ok:
        draft = result.draft
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from carddraft.errors import ProtocolParseError
from carddraft.model.nodes import CardDraft, TaskStatus, Validation
from carddraft.model.normalize import create_empty_card_draft, normalize_card_draft
from carddraft.model.serializer import draft_to_dict
from carddraft.plan.scheduler import normalize_vibe_plan
from carddraft.validator.validator import apply_lint, lint_card_draft

logger = logging.getLogger(__name__)

VCARD_DRAFT_JSON_START = "<!-- VCARD_DRAFT_JSON_START -->"
VCARD_DRAFT_JSON_END = "<!-- VCARD_DRAFT_JSON_END -->"
JSON_FENCE = "``````"

UNINITIALIZED = "uninitialized"

_FENCED_JSON = re.compile(r"(`{3,})json\s*([\s\S]*?)\s*\1", re.IGNORECASE)
_PAYLOAD_ESCAPES = {ord(c): "\\u%04x" % ord(c) for c in "<`"}

_FIRST_MES_PREVIEW = 280
_LIST_LIMIT = 5
_TASK_LIST_LIMIT = 8


@dataclass(frozen=True)
class BoardParseResult:
    """Outcome of ``parse_draft_from_board_markdown``.

    ``error`` is ``"uninitialized"`` when the text holds no board at all.
    ``raw_json`` carries the payload text whenever one was found, even if
    it failed to parse.
    """

    ok: bool
    draft: CardDraft | None = None
    error: str | None = None
    raw_json: str | None = None


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def escape_board_payload(json_text: str) -> str:
    """Escape ``<`` and backticks in serialized JSON as ``\\uXXXX`` sequences."""
    return json_text.translate(_PAYLOAD_ESCAPES)


def _neutralize_comments(markdown: str) -> str:
    # Card text shown outside the payload must not open a sentinel comment.
    return markdown.replace("<!--", "&lt;!--")


def _code_fence_json(text: str) -> str:
    return "\n".join([f"{JSON_FENCE}json", text.strip(), JSON_FENCE])


def _bullet_list(title: str, items: tuple[str, ...], limit: int) -> str:
    lines = [f"**{title}**"]
    lines.extend(f"- {item}" for item in items[:limit])
    if len(items) > limit:
        lines.append(f"- ... ({len(items) - limit} more)")
    return "\n".join(lines)


def render_preview(draft: CardDraft) -> str:
    """Render the human-readable card preview section."""
    card = draft.card
    name = card.name.strip() or "(unnamed)"
    one_line = card.description.strip().split("\n")[0]

    core = "\n\n".join(
        f"### {key}\n\n{value.strip()}"
        for key, value in (
            ("description", card.description),
            ("personality", card.personality),
            ("scenario", card.scenario),
        )
        if value.strip()
    )

    first_mes = card.first_mes.strip()
    if len(first_mes) > _FIRST_MES_PREVIEW:
        first_mes = first_mes[:_FIRST_MES_PREVIEW] + "…"

    return "\n".join(
        [
            "### Header",
            f"- Name: {name}",
            f"- Tags: {' / '.join(card.tags) if card.tags else '(none)'}",
            f"- Tagline: {one_line or '(not set)'}",
            "",
            "### Body",
            core or "(description/personality/scenario not set)",
            "",
            "### Dialogue",
            f"**first_mes**\n\n{first_mes}" if first_mes else "(first_mes not set)",
        ]
    )


def _render_vibe_tasks(draft: CardDraft) -> str:
    raw_plan = draft.vibe_plan_raw
    if not isinstance(raw_plan, dict):
        return ""
    plan = normalize_vibe_plan(raw_plan)
    if not plan.tasks:
        return ""

    done = sum(1 for t in plan.tasks if t.status is TaskStatus.DONE)
    marks = {TaskStatus.DONE: "x", TaskStatus.BLOCKED: "!"}
    lines = [f"**Vibe Tasks**: {done}/{len(plan.tasks)}"]
    current = plan.task_by_id(plan.current_task_id) if plan.current_task_id else None
    if current is not None:
        lines.append(f"- Current: {current.title} ({current.id})")
    lines.extend(f"- [{marks.get(t.status, ' ')}] {t.title}" for t in plan.tasks[:_TASK_LIST_LIMIT])
    if len(plan.tasks) > _TASK_LIST_LIMIT:
        lines.append(f"- ... ({len(plan.tasks) - _TASK_LIST_LIMIT} more)")
    return "\n".join(lines)


def render_progress_header(draft: CardDraft) -> str:
    """Render the progress banner: current step, output protocol, tasks, lint results."""
    progress = draft.meta.progress
    total = progress.total_steps or len(progress.steps) or 1
    protocol = "\n".join(
        [
            "**Output protocol (for the model)**",
            "- To change the draft: output exactly one patch block and no prose around it.",
            "- To ask or explain without changing anything: answer in plain text.",
            "- Patch roots: card/raw, worldbook, regex_scripts, tavern_helper; ops are set/remove only.",
        ]
    )
    tasks = _render_vibe_tasks(draft)
    return "\n".join(
        [
            f"**Current step**: Step {progress.step_index}/{total} - {progress.step_name}",
            f"**Updated at**: {draft.meta.updated_at}",
            protocol,
            f"\n{tasks}" if tasks else "",
            "",
            _bullet_list("Errors", draft.validation.errors, _LIST_LIMIT),
            "",
            _bullet_list("Warnings", draft.validation.warnings, _LIST_LIMIT),
        ]
    )


def build_draft_board_markdown(draft: Any, now: str | None = None) -> str:
    """Render a board for ``draft``.

    The Draft is normalized and re-linted first, so the embedded snapshot
    carries a fresh ``updatedAt``, ``validation`` and ``progress``.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or any value ``normalize_card_draft`` accepts.
    now:
        Timestamp for ``updatedAt``; defaults to the current time.

    Returns
    -------
    str
        The board Markdown, ending with a newline.
    """
    snapshot = apply_lint(draft, now=now)
    payload = escape_board_payload(json.dumps(draft_to_dict(snapshot), indent=2, ensure_ascii=False))
    return "\n".join(
        [
            "## Vibe Progress",
            _neutralize_comments(render_progress_header(snapshot)),
            "",
            "## Card Preview",
            _neutralize_comments(render_preview(snapshot)),
            "",
            "## CardDraft JSON",
            "",
            VCARD_DRAFT_JSON_START,
            _code_fence_json(payload),
            VCARD_DRAFT_JSON_END,
            "",
        ]
    )


def build_initial_draft_board_message(now: str | None = None) -> str:
    """Render the board for a brand-new empty Draft."""
    return build_draft_board_markdown(create_empty_card_draft(now=now), now=now)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def find_all_anchors(text: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` offsets of every complete sentinel pair, in order."""
    anchors: list[tuple[int, int]] = []
    pos = 0
    while True:
        start = text.find(VCARD_DRAFT_JSON_START, pos)
        if start < 0:
            break
        end = text.find(VCARD_DRAFT_JSON_END, start + len(VCARD_DRAFT_JSON_START))
        if end < 0:
            break
        end += len(VCARD_DRAFT_JSON_END)
        anchors.append((start, end))
        pos = end
    return anchors


def extract_json_from_anchored_block(block: str) -> str | None:
    """Return the body of the first ```` ```json ```` fence in ``block``, or ``None``."""
    match = _FENCED_JSON.search(block)
    if match is None:
        return None
    return match.group(2).strip() or None


def _load_last_board(markdown: str) -> tuple[Any, str]:
    anchors = find_all_anchors(markdown)
    if not anchors:
        raise ProtocolParseError(UNINITIALIZED)

    start, end = anchors[-1]
    json_text = extract_json_from_anchored_block(markdown[start:end])
    if json_text is None:
        raise ProtocolParseError("Board anchors found, but no ```json fenced block inside them.")

    try:
        return json.loads(json_text), json_text
    except json.JSONDecodeError as exc:
        raise ProtocolParseError(f"Draft JSON could not be parsed: {exc}", raw_text=json_text) from exc


def parse_draft_from_board_markdown(markdown: Any) -> BoardParseResult:
    """Parse the Draft out of the last board in ``markdown``.

    The Draft is normalized and re-linted; its ``updatedAt`` is kept.
    Never raises: every failure becomes ``BoardParseResult(ok=False)``.
    """
    text = markdown if isinstance(markdown, str) else ""
    try:
        value, json_text = _load_last_board(text)
    except ProtocolParseError as exc:
        if exc.message != UNINITIALIZED:
            logger.warning("Board parse failed: %s", exc.message)
        return BoardParseResult(ok=False, error=exc.message, raw_json=exc.raw_text)

    draft = normalize_card_draft(value)
    result = lint_card_draft(draft)
    draft = dataclasses.replace(
        draft,
        meta=dataclasses.replace(draft.meta, progress=result.progress),
        validation=Validation(errors=result.errors, warnings=result.warnings),
    )
    return BoardParseResult(ok=True, draft=draft, raw_json=json_text)
