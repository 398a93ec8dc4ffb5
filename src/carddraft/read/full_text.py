"""Full-text rendering of the readable sections.

Where the index lists only names and lengths, the full text carries every
body, each under a header naming the read path that addresses it::

    [Alice/worldbook/[0] comment="Backstory" enabled=true position="after_char"]
    Alice grew up in the archive.

The driving loop can inject it instead of the index when the whole card is
small enough; ``build_auto_full_text`` makes that call with a conservative
token estimate.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping

from carddraft.read.index_text import CARD_TEXT_KEYS, EMPTY_MARK
from carddraft.read.paths import normalize_path_segment, pick_root_name
from carddraft.read.resolver import build_readable_snapshot

logger = logging.getLogger(__name__)

FULL_TEXT_OPEN = "[VCARD: full text]"
FULL_TEXT_CLOSE = "[/VCARD: full text]"
FULL_TEXT_NOTE = (
    "Note: a path-labelled snapshot of the card, for locating read and patch paths. "
    "Do not repeat it in your reply unless the user asks for a verbatim quote."
)

BYTES_PER_TOKEN = 3


def estimate_tokens(text: Any) -> int:
    """Estimate the token count of ``text`` from its UTF-8 size.

    Three bytes per token overestimates for both English and CJK text,
    so a budget check against this number errs on the side of skipping.
    """
    data = ("" if text is None else str(text)).encode("utf-8")
    return math.ceil(len(data) / BYTES_PER_TOKEN)


def _inline(text: Any) -> str:
    value = "" if text is None else str(text)
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"').strip()


def _enabled(value: Any) -> str:
    return "enabled=true" if value else "enabled=false"


def _json_text(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _push(lines: list[str], path: str, value: Any, meta: str = "") -> None:
    header = f"[{path} {meta}]" if meta else f"[{path}]"
    text = "" if value is None else str(value)
    lines.extend([header, text if text.strip() else EMPTY_MARK, ""])


def _card_lines(snapshot: Mapping[str, Any], root: str) -> list[str]:
    card = snapshot.get("card") or {}
    lines: list[str] = []
    for key in CARD_TEXT_KEYS:
        _push(lines, f"{root}/{key}", card.get(key))

    greetings = list(card.get("alternate_greetings") or [])
    if not greetings:
        _push(lines, f"{root}/alternate_greetings/", EMPTY_MARK)
    for i, text in enumerate(greetings):
        _push(lines, f"{root}/alternate_greetings/[{i}]", text)
    return lines


def _worldbook_name(snapshot: Mapping[str, Any]) -> str:
    return normalize_path_segment((snapshot.get("worldbook") or {}).get("name"))


def _worldbook_lines(snapshot: Mapping[str, Any], root: str) -> list[str]:
    worldbook = snapshot.get("worldbook") or {}
    entries = list(worldbook.get("entries") or [])
    lines: list[str] = []
    if not entries:
        _push(lines, f"{root}/worldbook/entries/", EMPTY_MARK)

    for i, entry in enumerate(entries):
        meta = []
        comment = normalize_path_segment(entry.get("comment"))
        if comment:
            meta.append(f'comment="{_inline(comment)}"')
        meta.append(_enabled(entry.get("enabled")))
        position = normalize_path_segment(entry.get("position"))
        if position:
            meta.append(f'position="{_inline(position)}"')
        _push(lines, f"{root}/worldbook/[{i}]", entry.get("content"), " ".join(meta))
    return lines


def _regex_lines(snapshot: Mapping[str, Any], root: str) -> list[str]:
    scripts = list(snapshot.get("regex_scripts") or [])
    lines: list[str] = []
    if not scripts:
        _push(lines, f"{root}/regex_scripts/", EMPTY_MARK)

    # Scripts are structured, so the body is the script's JSON.
    for i, script in enumerate(scripts):
        meta = []
        name = normalize_path_segment(script.get("name"))
        if name:
            meta.append(f'name="{_inline(name)}"')
        meta.append(_enabled(script.get("enabled")))
        placement = list(script.get("placement") or [])
        if placement:
            meta.append(f"placement={json.dumps(placement)}")
        _push(lines, f"{root}/regex_scripts/[{i}]", _json_text(script), " ".join(meta))
    return lines


def _tavern_helper_lines(snapshot: Mapping[str, Any], root: str) -> list[str]:
    pack = snapshot.get("tavern_helper") or {}
    scripts = list(pack.get("scripts") or [])
    variables = pack.get("variables") or {}
    lines: list[str] = []

    if not scripts:
        _push(lines, f"{root}/tavern_helper/scripts/", EMPTY_MARK)
    for i, script in enumerate(scripts):
        meta = []
        name = normalize_path_segment(script.get("name") or script.get("id"))
        if name:
            meta.append(f'name="{_inline(name)}"')
        meta.append(_enabled(script.get("enabled")))
        _push(lines, f"{root}/tavern_helper/scripts/[{i}]", script.get("content"), " ".join(meta))

    if not variables:
        _push(lines, f"{root}/tavern_helper/variables/", EMPTY_MARK)
    for key, value in variables.items():
        _push(lines, f"{root}/tavern_helper/variables/{normalize_path_segment(key)}", _json_text(value))
    return lines


def build_full_text(snapshot: Mapping[str, Any]) -> str:
    """Render every readable body of ``snapshot`` under its read path.

    Parameters
    ----------
    snapshot:
        A readable snapshot from ``build_readable_snapshot``.

    Returns
    -------
    str
        The text between ``FULL_TEXT_OPEN`` and ``FULL_TEXT_CLOSE``.
        Nothing is truncated.
    """
    root = pick_root_name(snapshot)
    lines = [FULL_TEXT_OPEN, f'root="{_inline(root)}"', "", FULL_TEXT_NOTE, ""]
    sections = (
        ("card/", _card_lines),
        (f'worldbook/ name="{_inline(_worldbook_name(snapshot)) or EMPTY_MARK}"', _worldbook_lines),
        ("regex_scripts/", _regex_lines),
        ("tavern_helper/", _tavern_helper_lines),
    )
    for title, build in sections:
        lines.extend([f"[{title}]", ""])
        lines.extend(build(snapshot, root))
    lines.append(FULL_TEXT_CLOSE)
    return "\n".join(lines).strip()


def build_auto_full_text(draft: Any, token_limit: int | None = None) -> str:
    """Return the full text of ``draft`` when it fits ``token_limit``.

    ``None`` (or a non-positive limit) always returns the full text; an
    empty string means the text is over budget and should not be injected.
    """
    text = build_full_text(build_readable_snapshot(draft))
    if token_limit is None or token_limit <= 0:
        return text
    tokens = estimate_tokens(text)
    if tokens > token_limit:
        logger.debug("Full text skipped: ~%d tokens over the %d token limit", tokens, token_limit)
        return ""
    return text
