"""Plain-text index of the readable sections.

The index lists what exists (names, lengths, enabled flags, positions)
without any body text, so a model can decide which paths to read.
All builders take the readable snapshot produced by
``build_readable_snapshot``.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from carddraft.read.paths import normalize_path_segment, pick_root_name

CARD_TEXT_KEYS = (
    "description",
    "personality",
    "scenario",
    "first_mes",
    "mes_example",
    "system_prompt",
    "creator_notes",
    "post_history_instructions",
)

ALTERNATE_GREETINGS_CAP = 12
WORLDBOOK_ENTRIES_CAP = 60
REGEX_SCRIPTS_CAP = 80
HELPER_SCRIPTS_CAP = 60
HELPER_VARIABLES_CAP = 40

EMPTY_MARK = "(empty)"


def _length_mark(value: Any) -> str:
    text = ("" if value is None else str(value)).strip()
    return f"{len(text)} chars" if text else EMPTY_MARK


def _bool_text(value: Any) -> str:
    return "true" if value else "false"


def _name_or_index(name: Any, index: int) -> str:
    return normalize_path_segment(name) or f"[{index}]"


def _take(items: Sequence[Any], cap: int) -> tuple[Sequence[Any], int]:
    return items[:cap], max(0, len(items) - cap)


def _more_line(more: int, indent: str = "    ") -> list[str]:
    return [f"{indent}- … and {more} more"] if more else []


def _indent(text: str, spaces: int) -> str:
    pad = " " * spaces
    return "\n".join(f"{pad}{line}" if line else line for line in text.split("\n"))


def build_card_index_text(snapshot: Mapping[str, Any]) -> str:
    card = snapshot.get("card") or {}
    lines = ["card/"]
    lines.extend(f"  - {key}: {_length_mark(card.get(key))}" for key in CARD_TEXT_KEYS)

    greetings = list(card.get("alternate_greetings") or [])
    if not greetings:
        lines.append(f"  - alternate_greetings/: {EMPTY_MARK}")
    else:
        shown, more = _take(greetings, ALTERNATE_GREETINGS_CAP)
        lines.append(f"  - alternate_greetings/: {len(greetings)} items")
        lines.extend(f"    - [{i}]: {_length_mark(text)}" for i, text in enumerate(shown))
        lines.extend(_more_line(more))
    return "\n".join(lines)


def build_worldbook_index_text(snapshot: Mapping[str, Any]) -> str:
    worldbook = snapshot.get("worldbook") or {}
    entries = list(worldbook.get("entries") or [])
    lines = ["worldbook/", f"  - name: {normalize_path_segment(worldbook.get('name')) or EMPTY_MARK}"]
    if not entries:
        lines.append(f"  - entries/: {EMPTY_MARK}")
        return "\n".join(lines)

    shown, more = _take(entries, WORLDBOOK_ENTRIES_CAP)
    lines.append(f"  - entries/: {len(entries)} items")
    for index, entry in enumerate(shown):
        position = normalize_path_segment(entry.get("position"))
        position_text = f", position={position}" if position else ""
        lines.append(
            f"    - {_name_or_index(entry.get('comment'), index)}: "
            f"enabled={_bool_text(entry.get('enabled'))}{position_text}, "
            f"len={_length_mark(entry.get('content'))}"
        )
    lines.extend(_more_line(more))
    return "\n".join(lines)


def build_regex_scripts_index_text(snapshot: Mapping[str, Any]) -> str:
    scripts = list(snapshot.get("regex_scripts") or [])
    lines = ["regex_scripts/"]
    if not scripts:
        lines.append(f"  - {EMPTY_MARK}")
        return "\n".join(lines)

    shown, more = _take(scripts, REGEX_SCRIPTS_CAP)
    lines.append(f"  - {len(scripts)} items")
    lines.extend(
        f"    - {_name_or_index(s.get('name'), i)}: enabled={_bool_text(s.get('enabled'))}"
        for i, s in enumerate(shown)
    )
    lines.extend(_more_line(more))
    return "\n".join(lines)


def build_tavern_helper_index_text(snapshot: Mapping[str, Any]) -> str:
    pack = snapshot.get("tavern_helper") or {}
    scripts = list(pack.get("scripts") or [])
    variables = list((pack.get("variables") or {}).keys())
    lines = ["tavern_helper/"]

    if not scripts:
        lines.append(f"  - scripts/: {EMPTY_MARK}")
    else:
        shown, more = _take(scripts, HELPER_SCRIPTS_CAP)
        lines.append(f"  - scripts/: {len(scripts)} items")
        lines.extend(
            f"    - {_name_or_index(s.get('name') or s.get('id'), i)}: "
            f"enabled={_bool_text(s.get('enabled'))}, len={_length_mark(s.get('content'))}"
            for i, s in enumerate(shown)
        )
        lines.extend(_more_line(more))

    if not variables:
        lines.append(f"  - variables/: {EMPTY_MARK}")
    else:
        shown, more = _take(variables, HELPER_VARIABLES_CAP)
        lines.append(f"  - variables/: {len(variables)} keys")
        lines.extend(f"    - {normalize_path_segment(key)}" for key in shown)
        lines.extend(_more_line(more))
    return "\n".join(lines)


def build_read_index_text(snapshot: Mapping[str, Any]) -> str:
    """Render the full index: the root folder with every section beneath it."""
    sections = (
        build_card_index_text(snapshot),
        build_worldbook_index_text(snapshot),
        build_regex_scripts_index_text(snapshot),
        build_tavern_helper_index_text(snapshot),
    )
    lines = ["[VCARD: readable index]", "", f"{pick_root_name(snapshot)}/"]
    for section in sections:
        lines.append(_indent(section, 2))
        lines.append("")
    lines.append(f'Hint: entries marked "{EMPTY_MARK}" need no read; read a path only when you need its body.')
    return "\n".join(lines)
